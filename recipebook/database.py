"""Database connection and session management."""

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """Tell a unique constraint violation apart from other integrity errors."""
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    # SQLite reports constraint failures by message only
    return "UNIQUE constraint failed" in str(exc.orig)


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on FK enforcement (and ON DELETE CASCADE) for every SQLite connection."""

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_engine(settings: Settings | None = None) -> Engine:
    """Create SQLAlchemy engine with connection pooling.

    PostgreSQL connections run at the configured isolation level and with a
    per-statement timeout so no query blocks indefinitely.
    """
    settings = settings or get_settings()

    kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,  # Set to True for SQL debugging
    }
    if settings.is_postgres:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            isolation_level=settings.db_isolation_level,
            connect_args={
                "options": f"-c statement_timeout={settings.db_statement_timeout_ms}"
            },
        )

    engine = create_engine(settings.database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(engine)
    return engine


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    return create_db_engine()


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    """Return the process-wide session factory bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


@contextmanager
def transaction(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Run a unit of work in a single transaction.

    Commits when the block exits normally; rolls back and re-raises on any
    exception so partially applied writes are never committed.

    Usage:
        with transaction() as db:
            db.execute(...)
    """
    factory = session_factory or get_session_factory()
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_database_health() -> bool:
    """Verify database connection is working.

    Returns:
        True if database is healthy, False otherwise.
    """
    try:
        with transaction() as db:
            db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return False


def dispose_engine() -> None:
    """Dispose of the engine and all connections.

    Call this during graceful shutdown.
    """
    if get_engine.cache_info().currsize:
        get_engine().dispose()
