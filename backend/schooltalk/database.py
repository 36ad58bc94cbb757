"""
Database connection and session management module.

Uses SQLAlchemy for ORM operations. Supports PostgreSQL (production/Docker)
and SQLite (local development fallback).
Provides session factory and dependency injection for FastAPI routes.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session

from schooltalk.config import DATABASE_URL
from schooltalk.errors import SchoolTalkError, InvalidArgument, StorageUnavailable
from schooltalk.logging_config import get_logger, log_with_context

db_logger = get_logger("db")


def build_engine(url: str = DATABASE_URL, **overrides):
    """
    Create an engine with the pool settings that suit the database type.

    SQLite does not support pool_size, max_overflow, or pool_pre_ping, and
    needs foreign keys switched on per connection so that student rows
    cannot point at a missing account.
    """
    engine_kwargs = {"echo": False}

    if url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        })
    elif url.startswith("sqlite"):
        # SQLite needs check_same_thread=False for FastAPI (multi-threaded)
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine_kwargs.update(overrides)
    new_engine = create_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            if ":memory:" not in url:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine()

# Session factory - creates new database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def get_db():
    """
    FastAPI dependency that provides a database session.

    Yields a session and ensures proper cleanup after request completion.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def storage_guard(db: Session, operation: str):
    """
    Wrap a unit of work so that any failure leaves prior state unchanged.

    Domain errors are re-raised after rollback. Integrity violations that a
    service did not handle itself become InvalidArgument; every other
    SQLAlchemy error becomes a retryable StorageUnavailable.
    """
    try:
        yield
    except SchoolTalkError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        log_with_context(db_logger, "WARNING", "Integrity violation during {}".format(operation),
                         extra_data={"error": str(e.orig)})
        raise InvalidArgument("Write rejected by a storage constraint.") from e
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(db_logger, "ERROR", "Storage failure during {}: {}".format(operation, str(e)),
                         extra_data={"operation": operation})
        raise StorageUnavailable("Storage is temporarily unavailable. Please try again.") from e


def create_tables(bind=None):
    """
    Create all database tables directly (used for SQLite local dev).
    For PostgreSQL, use Alembic migrations instead.
    """
    # Models must be imported so they are registered with Base.metadata
    import schooltalk.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind=None):
    """Drop every table known to the ORM metadata."""
    import schooltalk.models  # noqa: F401

    Base.metadata.drop_all(bind=bind or engine)
