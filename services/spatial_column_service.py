import logging
from collections.abc import Callable, Iterable, Mapping
from threading import Lock
from types import MappingProxyType
from typing import NamedTuple

from sentry_sdk import trace
from sqlalchemy import Connection, Table, text

from models.spatial_type import normalize_geo_type

_SPATIAL_COLUMNS_QUERY = text(
    """
    SELECT
        gc.COLUMN_NAME AS column_name,
        gc.SRS_ID AS srs_id,
        gc.GEOMETRY_TYPE_NAME AS geometry_type
    FROM INFORMATION_SCHEMA.ST_GEOMETRY_COLUMNS gc
    WHERE gc.TABLE_SCHEMA = COALESCE(:schema, DATABASE())
    AND gc.TABLE_NAME = :table_name
    """
)


class SpatialColumnInfo(NamedTuple):
    name: str
    srid: int
    geo_type: str


@trace
def fetch_spatial_columns(connection: Connection, table_name: str, schema: str | None = None) -> list[SpatialColumnInfo]:
    rows = connection.execute(_SPATIAL_COLUMNS_QUERY, {'table_name': table_name, 'schema': schema}).all()
    return [
        SpatialColumnInfo(
            name=row.column_name,
            srid=int(row.srs_id or 0),
            geo_type=normalize_geo_type(row.geometry_type),
        )
        for row in rows
    ]


def split_table_name(table: Table | str | bytes, schema: str | None = None) -> tuple[str, str | None]:
    if isinstance(table, Table):
        name = table.name
        schema = schema or table.schema
    elif isinstance(table, bytes):
        name = table.decode()
    elif isinstance(table, str):
        name = table
    else:
        raise TypeError(f'Unsupported table reference of type {type(table).__qualname__}')

    # quoted_name and other str subclasses collapse to plain str
    name = str(name).strip().strip('`')
    if schema is not None:
        schema = str(schema).strip().strip('`') or None
    return name, schema


def table_key(table: Table | str | bytes, schema: str | None = None) -> str:
    name, schema = split_table_name(table, schema)
    return f'{schema}.{name}' if schema else name


_Fetch = Callable[[Connection, str, str | None], Iterable[SpatialColumnInfo]]


class SpatialColumnCache:
    """
    Spatial column metadata per table, loaded lazily.

    Entries are immutable mappings replaced as a whole. At most one query per table
    runs at a time, and a query that overlaps an invalidation does not publish its result.
    """

    def __init__(self, fetch: _Fetch = fetch_spatial_columns):
        self._fetch = fetch
        self._entries: dict[str, Mapping[str, SpatialColumnInfo]] = {}
        self._table_locks: dict[str, Lock] = {}
        self._generation = 0
        self._lock = Lock()

    def __contains__(self, table) -> bool:
        return table_key(table) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _table_lock(self, key: str) -> Lock:
        with self._lock:
            return self._table_locks.setdefault(key, Lock())

    def all(
        self,
        connection: Connection,
        table: Table | str | bytes,
        schema: str | None = None,
    ) -> Mapping[str, SpatialColumnInfo]:
        name, schema = split_table_name(table, schema)
        key = table_key(name, schema)

        if (entry := self._entries.get(key)) is not None:
            return entry

        with self._table_lock(key):
            if (entry := self._entries.get(key)) is not None:
                return entry

            with self._lock:
                generation = self._generation

            entry = MappingProxyType({info.name: info for info in self._fetch(connection, name, schema)})
            logging.debug('Loaded %d spatial columns for %r', len(entry), key)

            with self._lock:
                if self._generation == generation:
                    self._entries[key] = entry
                else:
                    logging.debug('Not caching spatial columns for %r, invalidated during load', key)

        return entry

    def get(
        self,
        connection: Connection,
        table: Table | str | bytes,
        column_name: str,
        schema: str | None = None,
    ) -> SpatialColumnInfo | None:
        return self.all(connection, table, schema).get(column_name)

    def invalidate(self, table: Table | str | bytes, schema: str | None = None) -> None:
        key = table_key(table, schema)
        with self._lock:
            self._generation += 1
            if self._entries.pop(key, None) is not None:
                logging.debug('Invalidated spatial columns for %r', key)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
