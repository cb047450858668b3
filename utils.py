def quote_string(value: str) -> str:
    """
    Quote a string as a MySQL literal.
    """

    return "'" + value.replace('\\', '\\\\').replace("'", "''") + "'"


def hex_literal(value: str | bytes) -> str:
    if isinstance(value, bytes):
        value = value.hex().upper()
    return f'0x{value}'
