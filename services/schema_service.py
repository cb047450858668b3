import logging
from collections.abc import Sequence

from sentry_sdk import trace
from sqlalchemy import Column, Connection, Index, Table

from services.spatial_column_service import SpatialColumnCache, split_table_name


def _spatial_columns(connection: Connection) -> SpatialColumnCache | None:
    return getattr(connection.dialect, 'spatial_columns', None)


def _invalidate(connection: Connection, table: Table | str, schema: str | None = None) -> None:
    if (cache := _spatial_columns(connection)) is not None:
        cache.invalidate(table, schema)


def _format_table(connection: Connection, table: Table | str, schema: str | None = None) -> str:
    preparer = connection.dialect.identifier_preparer
    if isinstance(table, Table):
        return preparer.format_table(table)
    name, schema = split_table_name(table, schema)
    if schema:
        return f'{preparer.quote_schema(schema)}.{preparer.quote(name)}'
    return preparer.quote(name)


class SchemaService:
    @staticmethod
    @trace
    def create_table(connection: Connection, table: Table, *, force: bool = False) -> None:
        """
        Create the table, dropping an existing one first when force is set.
        """

        if force:
            table.drop(connection, checkfirst=True)
        table.create(connection)
        _invalidate(connection, table)

    @staticmethod
    @trace
    def drop_table(connection: Connection, table: Table, *, if_exists: bool = False) -> None:
        table.drop(connection, checkfirst=if_exists)
        _invalidate(connection, table)

    @staticmethod
    @trace
    def rename_table(
        connection: Connection,
        table: Table | str,
        new_name: str,
        *,
        schema: str | None = None,
    ) -> None:
        old_name, schema = split_table_name(table, schema)
        old = _format_table(connection, old_name, schema)
        new = _format_table(connection, new_name, schema)
        connection.exec_driver_sql(f'ALTER TABLE {old} RENAME TO {new}')
        _invalidate(connection, old_name, schema)
        _invalidate(connection, new_name, schema)
        logging.info('Renamed table %s to %s', old, new)

    @staticmethod
    @trace
    def add_column(
        connection: Connection,
        table: Table | str,
        column: Column,
        *,
        schema: str | None = None,
    ) -> None:
        """
        Add a column with ALTER TABLE.

        Spatial columns are declared with their SRID and without DEFAULT.
        """

        dialect = connection.dialect
        ddl_compiler = dialect.ddl_compiler(dialect, None)
        column_spec = ddl_compiler.get_column_specification(column)
        connection.exec_driver_sql(f'ALTER TABLE {_format_table(connection, table, schema)} ADD {column_spec}')
        _invalidate(connection, table, schema)

    @staticmethod
    @trace
    def add_spatial_index(
        connection: Connection,
        table: Table,
        column_names: Sequence[str],
        name: str | None = None,
    ) -> Index:
        if name is None:
            name = f'index_{table.name}_on_{"_and_".join(column_names)}'
        index = Index(name, *(table.c[column_name] for column_name in column_names), mysql_prefix='SPATIAL')
        index.create(connection)
        return index

    @staticmethod
    def clear_spatial_cache(connection: Connection) -> None:
        if (cache := _spatial_columns(connection)) is not None:
            cache.clear()
