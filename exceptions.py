from sqlalchemy.exc import ArgumentError, InvalidRequestError


class ParseError(ValueError):
    """
    Malformed WKT, WKB, EWKT, EWKB, hex or GeoJSON input.
    """


class UnsupportedTypeError(ArgumentError):
    """
    A declared column type is not one of the spatial kinds.
    """


class DialectUnsupportedFeatureError(InvalidRequestError):
    """
    A spatial capability was requested from a server that lacks it.
    """
