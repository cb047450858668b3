from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from threading import Lock

from cachetools import LRUCache, cached
from pyproj import CRS
from shapely import Point, force_2d, from_wkb, from_wkt, set_srid
from shapely.errors import ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from config import FACTORY_CACHE_SIZE, GEOGRAPHIC_SRIDS
from exceptions import ParseError

# shapely stores SRIDs as int32
MAX_SRID = 2**31 - 1


def is_geographic(srid: int) -> bool:
    """
    Check whether the SRID uses long-lat coordinates on an ellipsoid.
    """

    return srid in GEOGRAPHIC_SRIDS


@cached(LRUCache(maxsize=64), lock=Lock())
def _crs_from_srid(srid: int) -> CRS:
    return CRS.from_epsg(srid)


@dataclass(frozen=True, slots=True)
class GeometryFactory:
    srid: int
    geographic: bool

    has_z = False
    has_m = False

    @property
    def axis_order(self) -> str:
        return 'long-lat' if self.geographic else 'x-y'

    @property
    def crs(self) -> CRS | None:
        return _crs_from_srid(self.srid) if self.srid else None

    def stamp(self, geometry: BaseGeometry) -> BaseGeometry:
        """
        Drop Z/M ordinates and attach this factory's SRID.
        """

        return set_srid(force_2d(geometry), self.srid)

    def point(self, x: float, y: float) -> BaseGeometry:
        return self.stamp(Point(x, y))

    def parse_wkt(self, text: str) -> BaseGeometry:
        try:
            geometry = from_wkt(text)
        except ShapelyError as e:
            raise ParseError(f'Invalid WKT: {e}') from e
        return self.stamp(geometry)

    def parse_wkb(self, data: bytes) -> BaseGeometry:
        try:
            geometry = from_wkb(data)
        except ShapelyError as e:
            raise ParseError(f'Invalid WKB: {e}') from e
        return self.stamp(geometry)

    def from_geojson(self, value: Mapping) -> BaseGeometry:
        if 'type' not in value or not ('coordinates' in value or 'geometries' in value):
            raise ParseError('GeoJSON geometry requires "type" and "coordinates" members')
        try:
            geometry = shape(value)
        except (ShapelyError, KeyError, IndexError, TypeError, ValueError) as e:
            raise ParseError(f'Invalid GeoJSON geometry: {e}') from e
        return self.stamp(geometry)


class FactorySelector:
    """
    Pick the geometry factory for an SRID.

    Factories are memoized per SRID, the geometry kind does not change the choice.
    """

    def __init__(self, geographic_srids: Iterable[int] = GEOGRAPHIC_SRIDS, *, cache_size: int = FACTORY_CACHE_SIZE):
        self.geographic_srids = frozenset(geographic_srids)
        self._factories: LRUCache[int, GeometryFactory] = LRUCache(maxsize=cache_size)
        self._lock = Lock()

    def is_geographic(self, srid: int) -> bool:
        return srid in self.geographic_srids

    def select(self, srid: int, geo_type: str = 'geometry') -> GeometryFactory:
        if not 0 <= srid <= MAX_SRID:
            raise ParseError(f'SRID must be between 0 and {MAX_SRID}, got {srid}')

        with self._lock:
            factory = self._factories.get(srid)
            if factory is None:
                factory = GeometryFactory(srid, self.is_geographic(srid))
                self._factories[srid] = factory

        return factory


DEFAULT_SELECTOR = FactorySelector()
