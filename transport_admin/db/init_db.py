# transport_admin/db/init_db.py
"""Database initialization utilities."""
import logging
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from transport_admin.config.database import get_engine
from transport_admin.config.settings import settings
from transport_admin.db.base import Base

logger = logging.getLogger(__name__)


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Create any missing tables.

    Skipped when no database is configured; requests that need the
    database then fail with a configuration error instead.
    """
    if engine is None:
        if not settings.is_database_configured():
            logger.warning("DATABASE_URL not configured; skipping database initialization")
            return
        engine = get_engine()

    try:
        existing_tables = set(inspect(engine).get_table_names())
        Base.metadata.create_all(bind=engine)
        created = set(Base.metadata.tables) - existing_tables
        if created:
            logger.info(f"Created {len(created)} database tables")
        else:
            logger.info(f"Database already initialized with {len(existing_tables)} tables")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def drop_db(engine: Optional[Engine] = None) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data! Development and tests only.
    """
    engine = engine or get_engine()
    try:
        Base.metadata.drop_all(bind=engine)
        logger.warning("All database tables dropped")
    except Exception as e:
        logger.error(f"Error dropping database: {e}")
        raise
