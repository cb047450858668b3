import os
from logging.config import dictConfig

import sentry_sdk


def _env_flag(name: str, default: str) -> bool | None:
    value = os.getenv(name, default).strip().lower()
    if value in ('', 'auto'):
        return None
    return value in ('1', 'true', 'yes')


NAME = 'mysql-spatial'
VERSION = '1.4.0'

ENVIRONMENT = os.getenv('ENVIRONMENT')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').strip().upper()

MYSQL_LOG = os.getenv('MYSQL_LOG', '0').strip().lower() in ('1', 'true', 'yes')
MYSQL_URL = os.getenv('MYSQL_URL', 'mysql+spatial://root@127.0.0.1:3306/spatial')

DEFAULT_SRID = 0

# EPSG codes using long-lat coordinates on an ellipsoid
GEOGRAPHIC_SRIDS = frozenset(
    (
        4326,  # WGS 84
        4269,  # NAD83
        4267,  # NAD27
        4258,  # ETRS89
        4019,  # GRS 1980
        *(int(srid) for srid in os.getenv('EXTRA_GEOGRAPHIC_SRIDS', '').replace(',', ' ').split()),
    )
)

FACTORY_CACHE_SIZE = int(os.getenv('FACTORY_CACHE_SIZE', '256'))
DECLARED_TYPE_CACHE_SIZE = 1024

AXIS_ORDER_LONG_LAT = "'axis-order=long-lat'"
AXIS_ORDER_MIN_MYSQL_VERSION = (8, 0, 1)

# None means resolved from the server version on first connect
AXIS_ORDER_HINT = _env_flag('AXIS_ORDER_HINT', 'auto')
SUPPORTS_WKB_AXIS_ORDER = _env_flag('SUPPORTS_WKB_AXIS_ORDER', 'auto')

# Logging configuration
dictConfig(
    {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '%(levelname)s | %(asctime)s | %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'default': {
                'formatter': 'default',
                'class': 'logging.StreamHandler',
                'stream': 'ext://sys.stderr',
            },
        },
        'loggers': {
            'root': {'handlers': ['default'], 'level': LOG_LEVEL},
            **{
                # conditional database logging
                module: {'handlers': [], 'level': 'INFO'}
                for module in (
                    'sqlalchemy.engine',
                    'sqlalchemy.pool',
                )
                if MYSQL_LOG
            },
        },
    }
)

if SENTRY_DSN := os.getenv('SENTRY_DSN'):
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        release=VERSION,
        environment=ENVIRONMENT,
        enable_tracing=True,
        traces_sample_rate=0.2,
        trace_propagation_targets=None,
    )
