from collections.abc import Mapping

from shapely.geometry.base import BaseGeometry
from sqlalchemy import Boolean, Float, Integer, LargeBinary, String, Text, literal, null
from sqlalchemy.sql.elements import ClauseElement, ColumnElement
from sqlalchemy.sql.functions import GenericFunction

from codec import DEFAULT_CODEC, is_wkt, split_ewkt, srid_of
from expressions import GeometryConstructor
from models.geometry import GeometryType


def spatial(value) -> ColumnElement:
    """
    Turn a geometry value into a SQL expression.

    Accepts shapely geometries, WKT/EWKT and hex WKB strings, WKB bytes and GeoJSON
    mappings. Malformed input raises ParseError.
    """

    if isinstance(value, ClauseElement):
        return value

    if isinstance(value, str):
        srid, wkt = split_ewkt(value)
        if is_wkt(wkt):
            srid = srid or 0
            return GeometryConstructor(literal(wkt.strip(), String()), srid, text=True, type_=GeometryType(srid))

    geometry = DEFAULT_CODEC.parse(value)
    if geometry is None:
        return null()

    srid = srid_of(geometry)
    if not srid:
        wkt = DEFAULT_CODEC.generate_wkt(geometry)
        return GeometryConstructor(literal(wkt, String()), 0, text=True, type_=GeometryType())
    return literal(geometry, GeometryType(srid))


def _is_spatial_argument(arg) -> bool:
    match arg:
        case BaseGeometry():
            return True
        case str():
            srid, wkt = split_ewkt(arg)
            return srid is not None or is_wkt(wkt)
        case Mapping():
            return 'type' in arg and 'coordinates' in arg
    return False


class SpatialFunction(GenericFunction):
    """
    Base of MySQL spatial functions.

    Geometry, WKT/EWKT and GeoJSON arguments are converted with ``spatial()``,
    other arguments are bound as usual.
    """

    _register = False
    inherit_cache = True
    spatial_arguments = True

    def __init__(self, *args, **kwargs):
        if self.spatial_arguments:
            args = tuple(spatial(arg) if _is_spatial_argument(arg) else arg for arg in args)
        super().__init__(*args, **kwargs)


class ST_Contains(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Crosses(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Disjoint(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Equals(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Intersects(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Overlaps(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Touches(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Within(SpatialFunction):
    type = Boolean()
    inherit_cache = True


class ST_Distance(SpatialFunction):
    type = Float()
    inherit_cache = True


class ST_Distance_Sphere(SpatialFunction):
    type = Float()
    inherit_cache = True


class ST_Area(SpatialFunction):
    type = Float()
    inherit_cache = True


class ST_Length(SpatialFunction):
    type = Float()
    inherit_cache = True


class ST_Buffer(SpatialFunction):
    type = GeometryType()
    inherit_cache = True


class ST_Centroid(SpatialFunction):
    type = GeometryType()
    inherit_cache = True


class ST_Envelope(SpatialFunction):
    type = GeometryType()
    inherit_cache = True


class ST_GeomFromText(SpatialFunction):
    type = GeometryType()
    inherit_cache = True
    spatial_arguments = False


class ST_GeomFromWKB(SpatialFunction):
    type = GeometryType()
    inherit_cache = True
    spatial_arguments = False


class ST_AsText(SpatialFunction):
    type = Text()
    inherit_cache = True


class ST_AsBinary(SpatialFunction):
    type = LargeBinary()
    inherit_cache = True


class ST_SRID(SpatialFunction):
    type = Integer()
    inherit_cache = True


SPATIAL_FUNCTION_CLASSES: dict[str, type[SpatialFunction]] = {
    cls.name.lower(): cls
    for cls in (
        ST_Contains,
        ST_Crosses,
        ST_Disjoint,
        ST_Equals,
        ST_Intersects,
        ST_Overlaps,
        ST_Touches,
        ST_Within,
        ST_Distance,
        ST_Distance_Sphere,
        ST_Area,
        ST_Length,
        ST_Buffer,
        ST_Centroid,
        ST_Envelope,
        ST_GeomFromText,
        ST_GeomFromWKB,
        ST_AsText,
        ST_AsBinary,
        ST_SRID,
    )
}
