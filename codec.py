import logging
import re
import reprlib
import struct
from collections.abc import Mapping

from shapely import get_srid, to_wkb, to_wkt
from shapely.geometry.base import BaseGeometry

from config import DEFAULT_SRID
from exceptions import ParseError
from srid import DEFAULT_SELECTOR, FactorySelector

_EWKT_RE = re.compile(r'^\s*SRID=(\d+);(.*)$', re.IGNORECASE | re.DOTALL)
_WKT_RE = re.compile(
    r'^\s*(?:POINT|LINESTRING|POLYGON|MULTIPOINT|MULTILINESTRING|MULTIPOLYGON|GEOMETRYCOLLECTION)\b'
)
_HEX_RE = re.compile(r'^[0-9A-Fa-f]+$')

_WKB_Z = 0x80000000
_WKB_M = 0x40000000
_WKB_SRID = 0x20000000
_WKB_MAX_DEPTH = 32


def split_ewkt(text: str) -> tuple[int | None, str]:
    """
    Split an optional EWKT SRID prefix from the geometry text.
    """

    if match := _EWKT_RE.match(text):
        return int(match[1]), match[2]
    return None, text


def is_wkt(text: str) -> bool:
    return _WKT_RE.match(text) is not None


def srid_of(geometry: BaseGeometry) -> int:
    srid = int(get_srid(geometry))
    return srid if srid > 0 else 0


def _scan_wkb(data: bytes, offset: int = 0, depth: int = 0) -> tuple[int, int | None]:
    """
    Walk one WKB/EWKB geometry starting at offset.

    Returns the offset just past the geometry and its embedded SRID, if any.
    """

    if depth > _WKB_MAX_DEPTH:
        raise ParseError('WKB nesting is too deep')
    if offset >= len(data):
        raise ParseError('Truncated WKB')

    byte_order = data[offset]
    if byte_order not in (0, 1):
        raise ParseError(f'Invalid WKB byte order {byte_order:#x}')
    uint = '<I' if byte_order else '>I'

    def read_uint() -> int:
        nonlocal offset
        (value,) = struct.unpack_from(uint, data, offset)
        offset += 4
        return value

    try:
        offset += 1
        code = read_uint()
        srid = read_uint() if code & _WKB_SRID else None

        has_z = bool(code & _WKB_Z)
        has_m = bool(code & _WKB_M)
        dims, kind = divmod(code & 0x0FFFFFFF, 1000)
        if dims > 3:
            raise ParseError(f'Invalid WKB geometry type {code:#x}')
        has_z = has_z or dims in (1, 3)
        has_m = has_m or dims in (2, 3)
        point_size = 8 * (2 + has_z + has_m)

        match kind:
            case 1:
                offset += point_size
            case 2:
                count = read_uint()
                offset += count * point_size
            case 3:
                for _ in range(read_uint()):
                    count = read_uint()
                    offset += count * point_size
                    if offset > len(data):
                        break
            case 4 | 5 | 6 | 7:
                for _ in range(read_uint()):
                    offset, _ = _scan_wkb(data, offset, depth + 1)
            case _:
                raise ParseError(f'Invalid WKB geometry type {code:#x}')
    except struct.error as e:
        raise ParseError('Truncated WKB') from e

    if offset > len(data):
        raise ParseError('Truncated WKB')
    return offset, srid


def _is_complete_wkb(data: bytes, offset: int) -> bool:
    try:
        end, _ = _scan_wkb(data, offset)
    except ParseError:
        return False
    return end == len(data)


class GeometryCodec:
    """
    Convert between geometries and their WKT, EWKT, WKB, EWKB and MySQL internal forms.
    """

    def __init__(self, selector: FactorySelector | None = None):
        self.selector = selector if selector is not None else DEFAULT_SELECTOR

    def parse(self, value, default_srid: int = DEFAULT_SRID) -> BaseGeometry | None:
        match value:
            case None:
                return None
            case BaseGeometry():
                srid = srid_of(value) or default_srid
                return self.selector.select(srid).stamp(value)
            case str():
                return self.parse_text(value, default_srid)
            case bytes() | bytearray() | memoryview():
                return self.parse_binary(bytes(value), default_srid)
            case Mapping():
                return self.parse_geojson(value, default_srid)
            case _:
                raise ParseError(f'Unsupported geometry input of type {type(value).__qualname__}')

    def cast(self, value, default_srid: int = DEFAULT_SRID) -> BaseGeometry | None:
        try:
            return self.parse(value, default_srid)
        except ParseError as e:
            logging.warning('Discarding unparsable geometry %s: %s', reprlib.repr(value), e)
            return None

    def parse_text(self, text: str, default_srid: int = DEFAULT_SRID) -> BaseGeometry | None:
        if not text or text.isspace():
            return None

        srid, text = split_ewkt(text)
        if srid is None:
            srid = default_srid
        elif not text or text.isspace():
            raise ParseError('EWKT is missing the geometry after the SRID prefix')

        if is_wkt(text):
            return self.selector.select(srid).parse_wkt(text)
        if _HEX_RE.match(text.strip()):
            return self.parse_hex(text, srid)

        raise ParseError(f'Unrecognized geometry text {reprlib.repr(text)}')

    def parse_hex(self, text: str, default_srid: int = DEFAULT_SRID) -> BaseGeometry | None:
        text = text.strip()
        if not text:
            return None
        if not _HEX_RE.match(text):
            raise ParseError(f'Invalid hex WKB {reprlib.repr(text)}')
        try:
            data = bytes.fromhex(text)
        except ValueError as e:
            raise ParseError(f'Invalid hex WKB: {e}') from e
        return self.parse_binary(data, default_srid)

    def parse_binary(self, data: bytes, default_srid: int = DEFAULT_SRID) -> BaseGeometry | None:
        if not data:
            return None

        # MySQL internal layout: 4-byte little-endian SRID followed by WKB
        if len(data) >= 5 and _is_complete_wkb(data, 4):
            (srid,) = struct.unpack_from('<I', data)
            return self.selector.select(srid).parse_wkb(data[4:])

        end, embedded_srid = _scan_wkb(data)
        if end != len(data):
            raise ParseError(f'Unexpected {len(data) - end} trailing bytes after WKB')

        srid = embedded_srid if embedded_srid is not None else default_srid
        return self.selector.select(srid).parse_wkb(data)

    def parse_geojson(self, value: Mapping, default_srid: int = DEFAULT_SRID) -> BaseGeometry | None:
        if not value:
            return None
        return self.selector.select(default_srid).from_geojson(value)

    @staticmethod
    def generate_wkt(geometry: BaseGeometry) -> str:
        return to_wkt(geometry, rounding_precision=-1, trim=True, output_dimension=2)

    @classmethod
    def generate_ewkt(cls, geometry: BaseGeometry) -> str:
        return f'SRID={srid_of(geometry)};{cls.generate_wkt(geometry)}'

    @staticmethod
    def generate_wkb(geometry: BaseGeometry, little_endian: bool = True) -> bytes:
        return to_wkb(geometry, output_dimension=2, byte_order=int(little_endian))

    @staticmethod
    def generate_wkb_hex(geometry: BaseGeometry, little_endian: bool = True) -> str:
        return to_wkb(geometry, hex=True, output_dimension=2, byte_order=int(little_endian))

    @staticmethod
    def generate_ewkb(geometry: BaseGeometry, *, hex: bool = False) -> bytes | str:
        return to_wkb(geometry, hex=hex, output_dimension=2, byte_order=1, include_srid=True)

    @classmethod
    def generate_internal(cls, geometry: BaseGeometry) -> bytes:
        return struct.pack('<I', srid_of(geometry)) + cls.generate_wkb(geometry)


DEFAULT_CODEC = GeometryCodec()


def codec_for(dialect) -> GeometryCodec:
    return getattr(dialect, 'spatial_codec', None) or DEFAULT_CODEC
