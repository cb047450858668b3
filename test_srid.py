from unittest import TestCase

from shapely import Point, get_srid

from exceptions import ParseError
from srid import DEFAULT_SELECTOR, MAX_SRID, FactorySelector, is_geographic


class TestSRID(TestCase):
    def test_is_geographic(self):
        for _ in range(3):
            for srid in (4326, 4269, 4267, 4258, 4019):
                self.assertTrue(is_geographic(srid), srid)
            for srid in (0, 3857, 2000):
                self.assertFalse(is_geographic(srid), srid)

    def test_select__memoized(self):
        selector = FactorySelector()
        self.assertIs(selector.select(4326), selector.select(4326))
        self.assertEqual(selector.select(4326), FactorySelector().select(4326))

    def test_select__geographic_factory(self):
        factory = DEFAULT_SELECTOR.select(4326, 'point')
        self.assertTrue(factory.geographic)
        self.assertEqual(factory.axis_order, 'long-lat')
        self.assertFalse(factory.has_z)
        self.assertFalse(factory.has_m)

    def test_select__projected_factory(self):
        factory = DEFAULT_SELECTOR.select(3857)
        self.assertFalse(factory.geographic)
        self.assertEqual(factory.axis_order, 'x-y')

    def test_select__negative_srid(self):
        with self.assertRaises(ParseError):
            DEFAULT_SELECTOR.select(-1)

    def test_select__custom_geographic_srids(self):
        selector = FactorySelector({4326, 7844})
        self.assertTrue(selector.select(7844).geographic)
        self.assertFalse(selector.select(4269).geographic)

    def test_factory__crs(self):
        self.assertEqual(DEFAULT_SELECTOR.select(4326).crs.to_epsg(), 4326)
        self.assertTrue(DEFAULT_SELECTOR.select(4326).crs.is_geographic)
        self.assertTrue(DEFAULT_SELECTOR.select(3857).crs.is_projected)
        self.assertIsNone(DEFAULT_SELECTOR.select(0).crs)

    def test_factory__point(self):
        point = DEFAULT_SELECTOR.select(4326).point(139.7, 35.7)
        self.assertEqual(point, Point(139.7, 35.7))
        self.assertEqual(get_srid(point), 4326)

    def test_factory__parse_wkt_invalid(self):
        with self.assertRaises(ParseError):
            DEFAULT_SELECTOR.select(0).parse_wkt('POLYGON((0 0, 1 1')

    def test_select__srid_out_of_range(self):
        for srid in (MAX_SRID + 1, 4294967295, 99999999999):
            with self.subTest(srid=srid), self.assertRaises(ParseError):
                DEFAULT_SELECTOR.select(srid)
        self.assertEqual(DEFAULT_SELECTOR.select(MAX_SRID).point(1, 2), Point(1, 2))
