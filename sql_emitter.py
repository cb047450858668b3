from collections.abc import Callable, Mapping
from typing import assert_never

from shapely.geometry.base import BaseGeometry
from sqlalchemy import literal
from sqlalchemy.dialects import mysql

from codec import GeometryCodec, is_wkt, split_ewkt, srid_of
from config import AXIS_ORDER_LONG_LAT, DEFAULT_SRID
from models.sql_node import EWKTString, GeometryLiteral, NamedFunction, RawSQL, SQLNode, WKTString
from srid import DEFAULT_SELECTOR, FactorySelector
from utils import hex_literal, quote_string

# lowercase name -> MySQL casing
SPATIAL_FUNCTIONS = {
    name.lower(): name
    for name in (
        'ST_Contains',
        'ST_Crosses',
        'ST_Disjoint',
        'ST_Distance',
        'ST_Distance_Sphere',
        'ST_Equals',
        'ST_Intersects',
        'ST_Overlaps',
        'ST_Touches',
        'ST_Within',
        'ST_Area',
        'ST_Length',
        'ST_Buffer',
        'ST_Centroid',
        'ST_Envelope',
        'ST_GeomFromText',
        'ST_GeomFromWKB',
        'ST_AsText',
        'ST_AsBinary',
        'ST_SRID',
    )
}

_MYSQL_DIALECT = mysql.dialect()


def render_literal(value) -> str:
    return str(literal(value).compile(dialect=_MYSQL_DIALECT, compile_kwargs={'literal_binds': True}))


class SpatialEmitter:
    """
    Translate geometries, WKT/EWKT literals and spatial function calls into MySQL SQL text.

    Geographic SRIDs get the long-lat axis-order hint when ``axis_order_hint`` is set.
    The hint is attached to ``ST_GeomFromWKB`` only when ``supports_wkb_axis_order`` is set,
    otherwise geographic values are sent as text.
    """

    def __init__(
        self,
        selector: FactorySelector | None = None,
        *,
        axis_order_hint: bool = True,
        supports_wkb_axis_order: bool = False,
    ):
        self.selector = selector if selector is not None else DEFAULT_SELECTOR
        self.codec = GeometryCodec(self.selector)
        self.axis_order_hint = axis_order_hint
        self.supports_wkb_axis_order = supports_wkb_axis_order

    def __repr__(self) -> str:
        return (
            f'{type(self).__name__}(axis_order_hint={self.axis_order_hint}, '
            f'supports_wkb_axis_order={self.supports_wkb_axis_order})'
        )

    @staticmethod
    def function_name(name: str) -> str | None:
        return SPATIAL_FUNCTIONS.get(name.lower())

    def wants_axis_hint(self, srid: int) -> bool:
        return self.axis_order_hint and self.selector.is_geographic(srid)

    def uses_wkb(self, srid: int) -> bool:
        if srid == 0:
            return False
        if self.wants_axis_hint(srid):
            return self.supports_wkb_axis_order
        return True

    def constructor_sql(self, payload_sql: str, srid: int, *, wkb: bool) -> str:
        args = [payload_sql, str(srid)]
        if self.wants_axis_hint(srid) and (not wkb or self.supports_wkb_axis_order):
            args.append(AXIS_ORDER_LONG_LAT)
        name = 'ST_GeomFromWKB' if wkb else 'ST_GeomFromText'
        return f'{name}({", ".join(args)})'

    def payload_sql(self, geometry: BaseGeometry, *, wkb: bool) -> str:
        if wkb:
            return hex_literal(self.codec.generate_wkb_hex(geometry))
        return quote_string(self.codec.generate_wkt(geometry))

    def quote(self, geometry: BaseGeometry) -> str:
        srid = srid_of(geometry)
        wkb = self.uses_wkb(srid)
        return self.constructor_sql(self.payload_sql(geometry, wkb=wkb), srid, wkb=wkb)

    def translate_wkt_literal(self, text: str) -> str:
        srid, wkt = split_ewkt(text)
        if srid is None:
            srid = DEFAULT_SRID
        return self.constructor_sql(quote_string(wkt.strip()), srid, wkb=False)

    def to_node(self, value) -> SQLNode | None:
        match value:
            case GeometryLiteral() | WKTString() | EWKTString() | RawSQL() | NamedFunction():
                return value
            case BaseGeometry():
                return GeometryLiteral(value)
            case str() if split_ewkt(value)[0] is not None:
                return EWKTString(value)
            case str() if is_wkt(value):
                return WKTString(value)
            case Mapping() if 'type' in value and 'coordinates' in value:
                return GeometryLiteral(self.codec.parse_geojson(value))
        return None

    def emit(self, value, fallback: Callable[[object], str] | None = None) -> str:
        """
        Render a node or a plain value as SQL.

        Values that are not spatial are rendered by ``fallback``, which defaults to
        SQLAlchemy's MySQL literal rendering.
        """

        node = self.to_node(value)
        if node is None:
            return (fallback or render_literal)(value)

        match node:
            case GeometryLiteral(geometry=geometry):
                return self.quote(geometry)
            case WKTString(text=text) | EWKTString(text=text):
                return self.translate_wkt_literal(text)
            case RawSQL(sql=sql):
                return sql
            case NamedFunction(name=name, args=args):
                rendered = ', '.join(self.emit(arg, fallback) for arg in args)
                return f'{self.function_name(name) or name}({rendered})'
            case _:
                assert_never(node)


DEFAULT_EMITTER = SpatialEmitter()


def spatial_emitter_for(dialect) -> SpatialEmitter:
    return getattr(dialect, 'spatial_emitter', None) or DEFAULT_EMITTER
