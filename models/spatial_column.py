from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from shapely.geometry.base import BaseGeometry
from sqlalchemy.engine.interfaces import ReflectedColumn

from models.geometry import SpatialType
from models.spatial_type import GEOMETRIC_TYPES, SpatialTypeDescriptor, column_type_sql, parse_declared_type
from services.spatial_column_service import SpatialColumnInfo


@runtime_checkable
class SpatialAware(Protocol):
    @property
    def spatial(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    name: str
    sql_type: str
    nullable: bool = True
    comment: str | None = None

    @property
    def spatial(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class SpatialColumn(ColumnInfo):
    geo_type: str = 'geometry'
    srid: int = 0

    has_z = False
    has_m = False

    @property
    def spatial(self) -> bool:
        return True

    @property
    def geometric_type(self) -> type[BaseGeometry]:
        return GEOMETRIC_TYPES[self.geo_type]

    @property
    def limit(self) -> dict:
        """
        Type options as written to schema dumps.
        """

        limit = {'type': self.geo_type}
        if self.srid:
            limit['srid'] = self.srid
        return limit

    @property
    def column_type_sql(self) -> str:
        return column_type_sql(self.geo_type, self.srid)


def describe_column(reflected: ReflectedColumn, spatial_info: SpatialColumnInfo | None = None) -> ColumnInfo:
    """
    Build the column descriptor, preferring metadata from INFORMATION_SCHEMA over the declared type.
    """

    name = reflected['name']
    column_type = reflected['type']
    nullable = reflected.get('nullable', True)
    comment = reflected.get('comment')

    if isinstance(column_type, SpatialType):
        sql_type = column_type.geometry_type
        descriptor = SpatialTypeDescriptor(column_type.geometry_type, column_type.srid)
    else:
        sql_type = str(column_type).lower()
        descriptor = parse_declared_type(sql_type)

    if spatial_info is not None:
        return SpatialColumn(name, sql_type, nullable, comment, geo_type=spatial_info.geo_type, srid=spatial_info.srid)
    if descriptor.is_spatial:
        return SpatialColumn(name, sql_type, nullable, comment, geo_type=descriptor.geo_type, srid=descriptor.srid)

    return ColumnInfo(name, sql_type, nullable, comment)
