from unittest import TestCase
from unittest.mock import MagicMock

from sqlalchemy import Column, Integer, MetaData, Table
from sqlalchemy.schema import CreateIndex

from dialect import MySQLSpatialDialect
from models.geometry import PointType
from services.schema_service import SchemaService
from services.spatial_column_service import SpatialColumnCache, SpatialColumnInfo


class TestSchemaService(TestCase):
    def setUp(self):
        self.dialect = MySQLSpatialDialect()
        self.dialect.spatial_columns = SpatialColumnCache(
            lambda connection, table_name, schema=None: [SpatialColumnInfo('location', 4326, 'point')]
        )
        self.connection = MagicMock(dialect=self.dialect)
        self.table = Table(
            'places',
            MetaData(),
            Column('id', Integer, primary_key=True),
            Column('location', PointType(4326), nullable=False),
        )

    def _warm_cache(self, *tables: str):
        for table in tables:
            self.dialect.spatial_columns.all(self.connection, table)
            self.assertIn(table, self.dialect.spatial_columns)

    def test_add_column(self):
        self._warm_cache('places')
        column = Column('location', PointType(4326), nullable=False, server_default='POINT(0 0)')

        SchemaService.add_column(self.connection, 'places', column)

        self.connection.exec_driver_sql.assert_called_once_with('ALTER TABLE places ADD location POINT SRID 4326 NOT NULL')
        self.assertNotIn('places', self.dialect.spatial_columns)

    def test_add_column__schema(self):
        SchemaService.add_column(self.connection, 'places', Column('area', PointType()), schema='gis')
        self.connection.exec_driver_sql.assert_called_once_with('ALTER TABLE gis.places ADD area POINT')

    def test_rename_table(self):
        self._warm_cache('places', 'venues')

        SchemaService.rename_table(self.connection, 'places', 'venues')

        self.connection.exec_driver_sql.assert_called_once_with('ALTER TABLE places RENAME TO venues')
        self.assertNotIn('places', self.dialect.spatial_columns)
        self.assertNotIn('venues', self.dialect.spatial_columns)

    def test_create_table__force(self):
        self._warm_cache('places')

        SchemaService.create_table(self.connection, self.table, force=True)

        self.assertEqual(self.connection._run_ddl_visitor.call_count, 2)
        self.assertNotIn('places', self.dialect.spatial_columns)

    def test_drop_table(self):
        self._warm_cache('places')
        SchemaService.drop_table(self.connection, self.table, if_exists=True)
        self.assertNotIn('places', self.dialect.spatial_columns)

    def test_add_spatial_index(self):
        index = SchemaService.add_spatial_index(self.connection, self.table, ['location'])

        self.assertEqual(index.name, 'index_places_on_location')
        self.connection._run_ddl_visitor.assert_called_once()
        self.assertEqual(
            str(CreateIndex(index).compile(dialect=self.dialect)),
            'CREATE SPATIAL INDEX index_places_on_location ON places (location)',
        )

    def test_clear_spatial_cache(self):
        self._warm_cache('places', 'venues')
        SchemaService.clear_spatial_cache(self.connection)
        self.assertEqual(len(self.dialect.spatial_columns), 0)
