import logging

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from studyplanner.core.config import get_settings
from studyplanner.db.base import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    # SQLite connections are shared across threads by the session factory
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    logger.debug(f"Time-block store backend: {'SQLite' if is_sqlite else 'PostgreSQL'}")
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(get_settings().database_url)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


def create_tables(bind: Engine | None = None) -> list[str]:
    """Create any missing tables and return the ones that were absent."""
    import studyplanner.models  # noqa: F401  (registers the mappers)

    target = bind or engine
    existing = set(inspect(target).get_table_names())
    missing = [name for name in Base.metadata.tables if name not in existing]
    if missing:
        logger.info(f"Creating tables: {', '.join(sorted(missing))}")
        Base.metadata.create_all(bind=target)
    return missing


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
