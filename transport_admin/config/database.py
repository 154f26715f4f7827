"""
Database connection settings for the transport administration backend.
Provides SQLAlchemy session management and connection pooling.
"""

import time
import logging
from typing import Generator, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine

from transport_admin.config.settings import settings
from transport_admin.core.exceptions import MissingConfigurationError

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def build_engine(database_url: str, **engine_kwargs) -> Engine:
    """Create an engine for the given URL with the configured pool settings"""
    if database_url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = create_engine(database_url, echo=settings.DB_ECHO, **engine_kwargs)
        _enable_sqlite_savepoints(engine)
        return engine
    engine_kwargs.setdefault("pool_pre_ping", True)  # Check connection before using it
    engine_kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
    engine_kwargs.setdefault("max_overflow", settings.DB_POOL_OVERFLOW)
    engine_kwargs.setdefault("pool_recycle", 3600)  # Recycle connections after 1 hour
    return create_engine(database_url, echo=settings.DB_ECHO, **engine_kwargs)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on pysqlite"""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def get_engine() -> Engine:
    """
    Return the process-wide engine, creating it on first use.

    Raises:
        MissingConfigurationError: If DATABASE_URL is not configured
    """
    global _engine
    if _engine is None:
        database_url = settings.get_database_url()
        if not database_url:
            raise MissingConfigurationError(
                "Database connection not configured",
                config_key="DATABASE_URL",
            )
        _engine = build_engine(database_url)
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
        )
    return _session_factory


# Event listeners for performance monitoring
@event.listens_for(Engine, "before_cursor_execute")
def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - start timer"""
    conn.info.setdefault('query_start_time', []).append(time.time())


@event.listens_for(Engine, "after_cursor_execute")
def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - stop timer and log if slow query"""
    total_time = time.time() - conn.info['query_start_time'].pop()

    if total_time > settings.SLOW_QUERY_THRESHOLD_SECONDS:
        logger.warning(
            f"Slow query detected ({total_time:.4f}s): "
            f"{statement[:100]}..."
        )


def get_db_session() -> Generator[Session, None, None]:
    """Get database session with automatic cleanup"""
    session = get_session_factory()()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {str(e)}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions"""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error(f"Database context error: {str(e)}")
        session.rollback()
        raise
    finally:
        session.close()
