import logging
from collections.abc import Iterable

from sqlalchemy import Connection, Index, Table, event
from sqlalchemy.dialects.mysql.base import MySQLCompiler, MySQLDDLCompiler
from sqlalchemy.dialects.mysql.pymysql import MySQLDialect_pymysql

import functions  # noqa: F401
from codec import GeometryCodec
from config import AXIS_ORDER_HINT, AXIS_ORDER_MIN_MYSQL_VERSION, SUPPORTS_WKB_AXIS_ORDER
from exceptions import DialectUnsupportedFeatureError
from models.geometry import SPATIAL_TYPES, SpatialType
from models.spatial_column import ColumnInfo, describe_column
from models.spatial_type import SPATIAL_TYPE_ALIASES
from services.spatial_column_service import SpatialColumnCache
from sql_emitter import SPATIAL_FUNCTIONS, SpatialEmitter
from srid import DEFAULT_SELECTOR, FactorySelector


class SpatialCompiler(MySQLCompiler):
    pass


def _function_visitor(mapped_name: str):
    def visit(self, func, **kw):
        return mapped_name + self.function_argspec(func, **kw)

    return visit


# func.st_contains(...) and friends render with MySQL casing
for _name, _mapped_name in SPATIAL_FUNCTIONS.items():
    setattr(SpatialCompiler, f'visit_{_name}_func', _function_visitor(_mapped_name))


def is_spatial_index(index: Index) -> bool:
    prefix = index.dialect_options['mysql']['prefix']
    if prefix:
        return prefix.upper() == 'SPATIAL'
    expressions = index.expressions
    return bool(expressions) and all(isinstance(getattr(expr, 'type', None), SpatialType) for expr in expressions)


class SpatialDDLCompiler(MySQLDDLCompiler):
    def get_column_default_string(self, column):
        # MySQL rejects defaults on spatial columns
        if isinstance(column.type, SpatialType):
            if column.server_default is not None:
                logging.debug('Skipping DEFAULT of spatial column %s', column.name)
            return None
        return super().get_column_default_string(column)

    def visit_create_index(self, create, **kw):
        index = create.element
        if not is_spatial_index(index):
            return super().visit_create_index(create, **kw)

        self._verify_index_table(index)
        columns = ', '.join(
            self.sql_compiler.process(expr, include_table=False, literal_binds=True) for expr in index.expressions
        )

        text = 'CREATE SPATIAL INDEX '
        if create.if_not_exists:
            text += 'IF NOT EXISTS '
        text += f'{self._prepared_index_name(index)} ON {self.preparer.format_table(index.table)} ({columns})'
        return text


class MySQLSpatialDialect(MySQLDialect_pymysql):
    """
    MySQL dialect with spatial column types, spatial DDL and axis-order aware geometry constructors.

    ``axis_order_hint`` and ``supports_wkb_axis_order`` left as None are resolved from the
    server version on first connect.
    """

    supports_statement_cache = True

    statement_compiler = SpatialCompiler
    ddl_compiler = SpatialDDLCompiler

    ischema_names = {
        **MySQLDialect_pymysql.ischema_names,
        **SPATIAL_TYPES,
        **{alias: SPATIAL_TYPES[name] for alias, name in SPATIAL_TYPE_ALIASES.items()},
    }

    def __init__(
        self,
        axis_order_hint: bool | None = None,
        supports_wkb_axis_order: bool | None = None,
        geographic_srids: Iterable[int] | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._axis_order_hint = axis_order_hint if axis_order_hint is not None else AXIS_ORDER_HINT
        self._supports_wkb_axis_order = (
            supports_wkb_axis_order if supports_wkb_axis_order is not None else SUPPORTS_WKB_AXIS_ORDER
        )

        self.spatial_selector = FactorySelector(geographic_srids) if geographic_srids is not None else DEFAULT_SELECTOR
        self.spatial_codec = GeometryCodec(self.spatial_selector)
        self.spatial_emitter = SpatialEmitter(
            self.spatial_selector,
            axis_order_hint=self._axis_order_hint is not False,
            supports_wkb_axis_order=bool(self._supports_wkb_axis_order),
        )
        self.spatial_columns = SpatialColumnCache()

    def resolve_spatial_capabilities(self, server_version_info: tuple | None, is_mariadb: bool) -> SpatialEmitter:
        supported = not is_mariadb and server_version_info is not None and server_version_info >= AXIS_ORDER_MIN_MYSQL_VERSION

        def resolve(name: str, requested: bool | None) -> bool:
            if requested is None:
                return supported
            if requested and not supported:
                server = 'MariaDB' if is_mariadb else 'MySQL'
                version = '.'.join(map(str, server_version_info or ()))
                raise DialectUnsupportedFeatureError(
                    f'{name} requires MySQL {".".join(map(str, AXIS_ORDER_MIN_MYSQL_VERSION))} or newer, '
                    f'connected to {server} {version}'
                )
            return requested

        return SpatialEmitter(
            self.spatial_selector,
            axis_order_hint=resolve('axis_order_hint', self._axis_order_hint),
            supports_wkb_axis_order=resolve('supports_wkb_axis_order', self._supports_wkb_axis_order),
        )

    def initialize(self, connection: Connection) -> None:
        super().initialize(connection)
        self.spatial_emitter = self.resolve_spatial_capabilities(self.server_version_info, self.is_mariadb)
        logging.info('Spatial support for server %s: %r', self.server_version_info, self.spatial_emitter)

    def get_columns(self, connection, table_name, schema=None, **kw):
        columns = super().get_columns(connection, table_name, schema, **kw)
        if not any(isinstance(column['type'], SpatialType) for column in columns):
            return columns

        spatial_info = self.spatial_columns.all(connection, table_name, schema)
        result = []
        for column in columns:
            info = spatial_info.get(column['name'])
            if info is not None and isinstance(column['type'], SpatialType):
                column = {**column, 'type': SPATIAL_TYPES[info.geo_type](srid=info.srid)}
            result.append(column)
        return result

    def get_indexes(self, connection, table_name, schema=None, **kw):
        result = []
        for index in super().get_indexes(connection, table_name, schema, **kw):
            options = index.get('dialect_options', {})
            if options.get('mysql_prefix') == 'SPATIAL' and 'mysql_length' in options:
                options = {key: value for key, value in options.items() if key != 'mysql_length'}
                index = {**index, 'dialect_options': options}
            result.append(index)
        return result

    def get_spatial_columns(self, connection, table_name, schema=None, **kw) -> list[ColumnInfo]:
        spatial_info = self.spatial_columns.all(connection, table_name, schema)
        return [
            describe_column(column, spatial_info.get(column['name']))
            for column in super().get_columns(connection, table_name, schema, **kw)
        ]


dialect = MySQLSpatialDialect


@event.listens_for(Table, 'after_create')
@event.listens_for(Table, 'after_drop')
def _invalidate_spatial_columns(table: Table, connection: Connection, **kw) -> None:
    if isinstance(connection.dialect, MySQLSpatialDialect):
        connection.dialect.spatial_columns.invalidate(table)
