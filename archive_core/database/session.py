"""
Engine and session wiring for the archive database.

The engine is built lazily from the `database` section of the loaded
configuration and shared by everything in the process:

- `database.url` (any SQLAlchemy URL, e.g. sqlite for local runs) wins;
- otherwise a PostgreSQL URL is assembled from host/port/user/password/database
  and connected through psycopg2 with the configured pool settings.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.engine.url import URL
from sqlalchemy.orm import Session, sessionmaker

from archive_core.utils.config import load_config
from archive_core.utils.logger import setup_worker_logger

logger = setup_worker_logger('database')

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def database_url(db_config: Dict[str, Any]) -> URL:
    """Connection URL for a `database` config section."""
    if db_config.get('url'):
        return make_url(db_config['url'])

    missing = [key for key in ('host', 'user', 'database') if not db_config.get(key)]
    if missing:
        raise ValueError(f"Database configuration is missing: {', '.join(missing)}")

    return URL.create(
        'postgresql+psycopg2',
        username=db_config['user'],
        password=db_config.get('password') or None,
        host=db_config['host'],
        port=db_config.get('port'),
        database=db_config['database'],
    )


def _engine_options(db_config: Dict[str, Any], url: URL) -> Dict[str, Any]:
    # SQLite takes neither pool sizing nor psycopg2 connect arguments
    if url.get_backend_name() == 'sqlite':
        return {}

    connection = db_config.get('connection', {})
    options: Dict[str, Any] = {
        'connect_args': {
            'connect_timeout': connection.get('timeout', 10),
            'application_name': connection.get('application_name', 'archive-core'),
        }
    }
    pool = db_config.get('pool', {})
    if pool.get('enabled', True):
        options.update(
            pool_size=pool.get('size', 5),
            max_overflow=pool.get('max_overflow', 5),
            pool_timeout=pool.get('timeout', 30),
            pool_recycle=pool.get('recycle', 1800),
            pool_pre_ping=pool.get('pre_ping', True),
        )
    return options


def create_archive_engine(db_config: Dict[str, Any]) -> Engine:
    """Create an engine for a `database` config section and check that it connects."""
    url = database_url(db_config)
    logger.info(f"Connecting to {url.render_as_string(hide_password=True)}")
    engine = create_engine(url, **_engine_options(db_config, url))

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Could not connect to the database: {e}")
        engine.dispose()
        raise
    return engine


def get_engine() -> Engine:
    """The process-wide engine, created on first use."""
    global _engine, _session_factory
    if _engine is None:
        _engine = create_archive_engine(load_config()['database'])
        _session_factory = sessionmaker(bind=_engine)
    return _engine


@contextmanager
def get_session() -> Iterator[Session]:
    """Session bound to the shared engine, closed on exit."""
    get_engine()
    session = _session_factory()
    try:
        yield session
    finally:
        session.close()


def dispose_engine() -> None:
    """Close pooled connections and forget the shared engine."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def init_db() -> None:
    """Create any missing tables (development and tests; deployments use alembic)."""
    from .models import Base
    Base.metadata.create_all(get_engine())
    logger.info("Database schema initialized")
