from shapely.geometry.base import BaseGeometry
from sqlalchemy import BindParameter
from sqlalchemy.exc import ArgumentError
from sqlalchemy.types import UserDefinedType
from typing_extensions import override

from codec import GeometryCodec, codec_for, srid_of
from exceptions import UnsupportedTypeError
from expressions import GeometryConstructor
from models.spatial_type import GEOMETRIC_TYPES, column_type_sql, parse_declared_type
from sql_emitter import spatial_emitter_for
from utils import hex_literal


class SpatialType(UserDefinedType):
    """
    Base type of MySQL spatial columns.

    Columns declared with an SRID receive values through ``ST_GeomFromText``/``ST_GeomFromWKB``.
    Columns without one receive the MySQL internal format so the value keeps its own SRID.
    """

    geometry_type = 'geometry'
    cache_ok = True

    def __init__(self, srid: int = 0):
        self.srid = srid

    @classmethod
    def from_sql_type(cls, sql_type: str) -> 'SpatialType':
        descriptor = parse_declared_type(sql_type)
        if not descriptor.is_spatial:
            raise UnsupportedTypeError(f'{sql_type!r} is not a spatial column type')
        return SPATIAL_TYPES[descriptor.geo_type](srid=descriptor.srid)

    @property
    @override
    def python_type(self):
        return GEOMETRIC_TYPES[self.geometry_type]

    def get_col_spec(self, **kw):
        return column_type_sql(self.geometry_type, self.srid)

    def coerce_value(self, value, codec: GeometryCodec) -> BaseGeometry | None:
        """
        Cast the value leniently and reconcile its SRID with the column SRID.
        """

        geometry = codec.cast(value, default_srid=self.srid)
        if geometry is None:
            return None

        srid = srid_of(geometry)
        if self.srid and srid != self.srid:
            raise ArgumentError(
                f'Geometry SRID {srid} does not match the {self.geometry_type} column SRID {self.srid}'
            )
        return geometry

    @override
    def bind_processor(self, dialect):
        codec = codec_for(dialect)
        wkb = spatial_emitter_for(dialect).uses_wkb(self.srid)

        def process(value):
            geometry = self.coerce_value(value, codec)
            if geometry is None:
                return None
            if not self.srid:
                return codec.generate_internal(geometry)
            if wkb:
                return codec.generate_wkb(geometry)
            return codec.generate_wkt(geometry)

        return process

    @override
    def bind_expression(self, bindvalue: BindParameter):
        if not self.srid:
            return bindvalue
        return GeometryConstructor(bindvalue, self.srid, type_=self)

    @override
    def literal_processor(self, dialect):
        codec = codec_for(dialect)
        emitter = spatial_emitter_for(dialect)

        def process(value):
            geometry = self.coerce_value(value, codec)
            if geometry is None:
                return 'NULL'
            if not self.srid:
                return hex_literal(codec.generate_internal(geometry))
            return emitter.payload_sql(geometry, wkb=emitter.uses_wkb(self.srid))

        return process

    @override
    def result_processor(self, dialect, coltype):
        codec = codec_for(dialect)

        def process(value):
            if value is None:
                return None
            return codec.cast(value, default_srid=self.srid)

        return process

    @override
    def compare_values(self, x, y):
        if isinstance(x, BaseGeometry) and isinstance(y, BaseGeometry):
            return srid_of(x) == srid_of(y) and x.equals_exact(y, 0)
        return x == y

    class Comparator(UserDefinedType.Comparator):
        def _call(self, name: str, *args):
            from functions import SPATIAL_FUNCTION_CLASSES

            return SPATIAL_FUNCTION_CLASSES[name](self.expr, *args)

        def st_contains(self, other):
            return self._call('st_contains', other)

        def st_crosses(self, other):
            return self._call('st_crosses', other)

        def st_disjoint(self, other):
            return self._call('st_disjoint', other)

        def st_equals(self, other):
            return self._call('st_equals', other)

        def st_intersects(self, other):
            return self._call('st_intersects', other)

        def st_overlaps(self, other):
            return self._call('st_overlaps', other)

        def st_touches(self, other):
            return self._call('st_touches', other)

        def st_within(self, other):
            return self._call('st_within', other)

        def st_distance(self, other):
            return self._call('st_distance', other)

        def st_distance_sphere(self, other, radius: float | None = None):
            if radius is None:
                return self._call('st_distance_sphere', other)
            return self._call('st_distance_sphere', other, radius)

        def st_area(self):
            return self._call('st_area')

        def st_length(self):
            return self._call('st_length')

        def st_buffer(self, distance: float):
            return self._call('st_buffer', distance)

        def st_centroid(self):
            return self._call('st_centroid')

        def st_envelope(self):
            return self._call('st_envelope')

        def st_astext(self):
            return self._call('st_astext')

        def st_asbinary(self):
            return self._call('st_asbinary')

        def st_srid(self):
            return self._call('st_srid')

    comparator_factory = Comparator


class GeometryType(SpatialType):
    geometry_type = 'geometry'
    cache_ok = True


class PointType(SpatialType):
    geometry_type = 'point'
    cache_ok = True


class LineStringType(SpatialType):
    geometry_type = 'linestring'
    cache_ok = True


class PolygonType(SpatialType):
    geometry_type = 'polygon'
    cache_ok = True


class MultiPointType(SpatialType):
    geometry_type = 'multipoint'
    cache_ok = True


class MultiLineStringType(SpatialType):
    geometry_type = 'multilinestring'
    cache_ok = True


class MultiPolygonType(SpatialType):
    geometry_type = 'multipolygon'
    cache_ok = True


class GeometryCollectionType(SpatialType):
    geometry_type = 'geometrycollection'
    cache_ok = True


SPATIAL_TYPES: dict[str, type[SpatialType]] = {
    cls.geometry_type: cls
    for cls in (
        GeometryType,
        PointType,
        LineStringType,
        PolygonType,
        MultiPointType,
        MultiLineStringType,
        MultiPolygonType,
        GeometryCollectionType,
    )
}
