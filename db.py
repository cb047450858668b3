from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.dialects import registry
from sqlalchemy.orm import Session

from config import MYSQL_URL

registry.register('mysql.spatial', 'dialect', 'MySQLSpatialDialect')


def create_spatial_engine(url: str = MYSQL_URL, **kwargs) -> Engine:
    """
    Create an engine for a mysql+spatial:// URL.

    Spatial dialect options (axis_order_hint, supports_wkb_axis_order, geographic_srids)
    are passed through kwargs.
    """

    kwargs.setdefault('query_cache_size', 128)
    kwargs.setdefault('pool_size', 10)
    kwargs.setdefault('max_overflow', -1)
    kwargs.setdefault('pool_pre_ping', True)
    return create_engine(url, **kwargs)


_db_engine: Engine | None = None


def get_engine() -> Engine:
    global _db_engine
    if _db_engine is None:
        _db_engine = create_spatial_engine()
    return _db_engine


@contextmanager
def db_read():
    """
    Get a database session for reading.
    """
    with Session(
        get_engine(),
        expire_on_commit=False,
        close_resets_only=False,
    ) as session:
        yield session


@contextmanager
def db_write():
    """
    Get a database session for writing, automatically committing on exit.
    """
    with Session(
        get_engine(),
        expire_on_commit=False,
        close_resets_only=False,
    ) as session:
        yield session
        session.commit()
