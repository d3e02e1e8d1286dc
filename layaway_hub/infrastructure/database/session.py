"""Database session management with connection pooling"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from layaway_hub.config import settings
from layaway_hub.domain.exceptions import StoreUnavailable
from layaway_hub.infrastructure.database.models import Base


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the given URL.

    SQLite connections start every transaction with BEGIN IMMEDIATE so that
    concurrent writers queue on the busy timeout instead of deadlocking when
    they upgrade from a read lock.
    """
    if not database_url.startswith("sqlite"):
        # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
        return create_engine(
            database_url,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=10,
            pool_recycle=3600,
        )

    engine = create_engine(
        database_url,
        connect_args={
            "check_same_thread": False,
            "timeout": settings.sqlite_busy_timeout_seconds,
        },
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_db(engine: Engine) -> None:
    """Create any missing tables"""
    Base.metadata.create_all(bind=engine)


engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    One transaction per block: commit on success, roll back on any error.

    Raises:
        StoreUnavailable: wrapping any SQLAlchemy failure, after rollback
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Persistence failure: {e}") from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
