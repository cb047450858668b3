import re
from threading import Lock
from typing import NamedTuple

from cachetools import LRUCache, cached
from shapely import GeometryCollection, LineString, MultiLineString, MultiPoint, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry

from config import DECLARED_TYPE_CACHE_SIZE

SPATIAL_COLUMN_TYPES = (
    'geometry',
    'point',
    'linestring',
    'polygon',
    'multipoint',
    'multilinestring',
    'multipolygon',
    'geometrycollection',
)

# MySQL 8 reports GEOMETRYCOLLECTION columns as geomcollection
SPATIAL_TYPE_ALIASES = {'geomcollection': 'geometrycollection'}

_DECLARED_TYPE_RE = re.compile(r'^\s*(\w+)\s*(?:\(\s*(\w+)\s*(?:,\s*(\d+)\s*)?\))?\s*$')


class SpatialTypeDescriptor(NamedTuple):
    geo_type: str
    srid: int = 0

    @property
    def is_spatial(self) -> bool:
        return is_spatial_type(self.geo_type)


def normalize_geo_type(name: str) -> str:
    name = name.replace('_', '').lower()
    return SPATIAL_TYPE_ALIASES.get(name, name)


def is_spatial_type(name: str) -> bool:
    return normalize_geo_type(name) in SPATIAL_COLUMN_TYPES


@cached(LRUCache(maxsize=DECLARED_TYPE_CACHE_SIZE), lock=Lock())
def parse_declared_type(sql_type: str) -> SpatialTypeDescriptor:
    """
    Derive the geometry kind and SRID from a declared column type.

    >>> parse_declared_type('geometry(Point,4326)')
    SpatialTypeDescriptor(geo_type='point', srid=4326)

    Non-spatial types are returned lowercased with SRID 0.
    """

    sql_type = sql_type.lower()
    match = _DECLARED_TYPE_RE.match(sql_type)
    if match is None or not is_spatial_type(match[1]):
        return SpatialTypeDescriptor(sql_type)

    base, subtype, srid = match.groups()
    geo_type = subtype if subtype is not None and is_spatial_type(subtype) else base
    return SpatialTypeDescriptor(normalize_geo_type(geo_type), int(srid) if srid else 0)


def spatial_sql_type(base: str, subtype: str | None = None) -> str:
    """
    Render the MySQL type keyword, e.g. multi_polygon -> MULTIPOLYGON.
    """

    sql = base.replace('_', '').upper()
    if subtype:
        sql += f'({subtype.replace("_", "").upper()})'
    return sql


def column_type_sql(geo_type: str, srid: int = 0) -> str:
    sql = spatial_sql_type(geo_type)
    return f'{sql} SRID {srid}' if srid else sql


GEOMETRIC_TYPES: dict[str, type[BaseGeometry]] = {
    'geometry': BaseGeometry,
    'point': Point,
    'linestring': LineString,
    'polygon': Polygon,
    'multipoint': MultiPoint,
    'multilinestring': MultiLineString,
    'multipolygon': MultiPolygon,
    'geometrycollection': GeometryCollection,
}
