from dataclasses import dataclass

from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True, slots=True)
class GeometryLiteral:
    geometry: BaseGeometry


@dataclass(frozen=True, slots=True)
class WKTString:
    text: str


@dataclass(frozen=True, slots=True)
class EWKTString:
    text: str


@dataclass(frozen=True, slots=True)
class RawSQL:
    sql: str


@dataclass(frozen=True, slots=True)
class NamedFunction:
    name: str
    args: tuple = ()


SQLNode = GeometryLiteral | WKTString | EWKTString | RawSQL | NamedFunction
