import struct
from unittest import TestCase

from shapely import LineString, MultiPolygon, Point, Polygon, get_srid, set_srid, to_wkb
from sqlalchemy import Column, Integer, MetaData, Table, insert, select
from sqlalchemy.exc import ArgumentError

from dialect import MySQLSpatialDialect
from exceptions import UnsupportedTypeError
from models.geometry import GeometryType, PointType, SpatialType

DIALECT = MySQLSpatialDialect()
WKB_DIALECT = MySQLSpatialDialect(supports_wkb_axis_order=True)

metadata = MetaData()
places = Table(
    'places',
    metadata,
    Column('id', Integer, primary_key=True),
    Column('location', PointType(4326)),
    Column('shape', GeometryType()),
)


class TestGeometryType(TestCase):
    def test_get_col_spec(self):
        self.assertEqual(PointType(4326).get_col_spec(), 'POINT SRID 4326')
        self.assertEqual(GeometryType().get_col_spec(), 'GEOMETRY')

    def test_from_sql_type(self):
        sql_type = SpatialType.from_sql_type('geometry(Point,4326)')
        self.assertIsInstance(sql_type, PointType)
        self.assertEqual(sql_type.srid, 4326)
        self.assertIsInstance(SpatialType.from_sql_type('geomcollection'), SpatialType)

    def test_from_sql_type__not_spatial(self):
        with self.assertRaises(UnsupportedTypeError):
            SpatialType.from_sql_type('varchar(10)')

    def test_python_type(self):
        self.assertIs(PointType().python_type, Point)

    def test_bind_processor__geographic_text(self):
        process = PointType(4326).bind_processor(DIALECT)
        self.assertEqual(process(Point(1, 2)), 'POINT (1 2)')
        self.assertEqual(process('SRID=4326;POINT(1 2)'), 'POINT (1 2)')
        self.assertIsNone(process(None))

    def test_bind_processor__geographic_wkb(self):
        process = PointType(4326).bind_processor(WKB_DIALECT)
        self.assertEqual(process(Point(1, 2)), to_wkb(Point(1, 2), byte_order=1))

    def test_bind_processor__projected_wkb(self):
        process = PointType(3857).bind_processor(DIALECT)
        self.assertEqual(process(Point(1, 2)), to_wkb(Point(1, 2), byte_order=1))

    def test_bind_processor__internal_format(self):
        process = GeometryType().bind_processor(DIALECT)
        data = process(set_srid(Point(1, 2), 4326))
        self.assertEqual(data, struct.pack('<I', 4326) + to_wkb(Point(1, 2), byte_order=1))

    def test_bind_processor__srid_mismatch(self):
        process = PointType(4326).bind_processor(DIALECT)
        with self.assertRaises(ArgumentError):
            process('SRID=3857;POINT(1 2)')

    def test_bind_processor__malformed(self):
        process = PointType(4326).bind_processor(DIALECT)
        with self.assertLogs(level='WARNING'):
            self.assertIsNone(process('POINT(1'))

    def test_bind_processor__srid_out_of_range(self):
        process = PointType(4326).bind_processor(DIALECT)
        with self.assertLogs(level='WARNING'):
            self.assertIsNone(process('SRID=99999999999;POINT(1 2)'))

    def test_result_processor(self):
        process = GeometryType().result_processor(DIALECT, None)
        geometry = process(struct.pack('<I', 4326) + to_wkb(Point(1, 2), byte_order=1))
        self.assertEqual(geometry, Point(1, 2))
        self.assertEqual(get_srid(geometry), 4326)
        self.assertIsNone(process(None))

    def test_result_processor__all_kinds(self):
        process = GeometryType().result_processor(DIALECT, None)
        geometries = (
            LineString([(0, 0), (1, 1), (2, 0.5)]),
            Polygon([(0, 0), (4, 0), (4, 4), (0, 4), (0, 0)], [[(1, 1), (2, 1), (2, 2), (1, 1)]]),
            MultiPolygon([Polygon([(0, 0), (1, 0), (1, 1), (0, 0)]), Polygon([(5, 5), (6, 5), (6, 6), (5, 5)])]),
        )
        for expected in geometries:
            with self.subTest(geom_type=expected.geom_type):
                geometry = process(struct.pack('<I', 4326) + to_wkb(expected, byte_order=1))
                self.assertIsNotNone(geometry)
                self.assertTrue(geometry.equals_exact(expected, 0))
                self.assertEqual(get_srid(geometry), 4326)

    def test_result_processor__column_srid(self):
        process = PointType(3857).result_processor(DIALECT, None)
        self.assertEqual(get_srid(process('POINT(1 2)')), 3857)

    def test_result_processor__malformed(self):
        process = GeometryType().result_processor(DIALECT, None)
        with self.assertLogs(level='WARNING'):
            self.assertIsNone(process(b'\x07\x07\x07'))

    def test_compare_values(self):
        sql_type = GeometryType()
        self.assertTrue(sql_type.compare_values(set_srid(Point(1, 2), 4326), set_srid(Point(1, 2), 4326)))
        self.assertFalse(sql_type.compare_values(set_srid(Point(1, 2), 4326), set_srid(Point(1, 2), 3857)))
        self.assertFalse(sql_type.compare_values(Point(1, 2), Point(2, 1)))
        self.assertTrue(sql_type.compare_values(None, None))

    def test_literal_processor(self):
        self.assertEqual(PointType(4326).literal_processor(DIALECT)(Point(1, 2)), "'POINT (1 2)'")
        self.assertEqual(
            PointType(3857).literal_processor(DIALECT)(Point(1, 2)),
            '0x0101000000000000000000F03F0000000000000040',
        )
        self.assertEqual(
            GeometryType().literal_processor(DIALECT)(set_srid(Point(1, 2), 4326)),
            '0xE61000000101000000000000000000F03F0000000000000040',
        )
        self.assertEqual(GeometryType().literal_processor(DIALECT)(None), 'NULL')

    def test_insert__srid_column(self):
        sql = str(insert(places).values(location=Point(1, 2)).compile(dialect=DIALECT))
        self.assertEqual(sql, "INSERT INTO places (location) VALUES (ST_GeomFromText(%s, 4326, 'axis-order=long-lat'))")

    def test_insert__srid_column_wkb(self):
        sql = str(insert(places).values(location=Point(1, 2)).compile(dialect=WKB_DIALECT))
        self.assertEqual(sql, "INSERT INTO places (location) VALUES (ST_GeomFromWKB(%s, 4326, 'axis-order=long-lat'))")

    def test_insert__no_srid_column(self):
        sql = str(insert(places).values(shape=Point(1, 2)).compile(dialect=DIALECT))
        self.assertEqual(sql, 'INSERT INTO places (shape) VALUES (%s)')

    def test_select__literal_comparison(self):
        stmt = select(places.c.id).where(places.c.location == Point(1, 2))
        sql = str(stmt.compile(dialect=DIALECT, compile_kwargs={'literal_binds': True}))
        self.assertIn("places.location = ST_GeomFromText('POINT (1 2)', 4326, 'axis-order=long-lat')", sql)

    def test_cache_key__includes_srid(self):
        self.assertNotEqual(PointType(4326)._static_cache_key, PointType(3857)._static_cache_key)
        self.assertEqual(PointType(4326)._static_cache_key, PointType(4326)._static_cache_key)
