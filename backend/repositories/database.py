"""
Database configuration with connection pooling and the unit-of-work boundary.
"""

from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, QueuePool

from models.config import settings
from models.exceptions import StorageException


def create_db_engine(database_url: str | None = None):
    """
    Create database engine with appropriate configuration.

    Uses QueuePool for PostgreSQL/production and NullPool for SQLite.
    """
    database_url = database_url or settings.DATABASE_URL

    if "sqlite" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Get database session with automatic cleanup."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a block as one unit of work: commit on success, roll back on any error.

    Domain exceptions propagate unchanged. SQLAlchemy errors are wrapped in a
    StorageException so callers see a single failure kind for a torn write.

    Args:
        db: Database session owned by the calling service.

    Yields:
        The same session.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Transaction rolled back after storage failure: {exc}")
        raise StorageException("A storage error occurred; no changes were saved") from exc
    except Exception:
        db.rollback()
        raise
