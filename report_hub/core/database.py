"""
Database configuration and session management.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from report_hub.core.config import settings


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def create_db_engine(url: str, **kwargs) -> Engine:
    """
    Create a synchronous engine for the given URL.

    Pool sizing from settings is only applied to server databases.
    """
    options = {"echo": settings.database.echo}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
        )
    options.update(kwargs)
    return create_engine(url, **options)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite only enforces ON DELETE rules with the foreign_keys pragma."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_db_engine(settings.database.url)

SessionLocal = sessionmaker(
    engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


@contextmanager
def get_db_context() -> Iterator[Session]:
    """
    Get database session as a context manager.

    Yields:
        Session: Database session

    Example:
        with get_db_context() as session:
            ReportIngestionService(session).ingest(text)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Engine | None = None) -> None:
    """Initialize database (create tables if they don't exist)."""
    # Import models here to ensure they are registered with Base
    from report_hub.models import report  # noqa: F401

    Base.metadata.create_all(bind or engine)


def close_db() -> None:
    """Close database connections."""
    engine.dispose()
