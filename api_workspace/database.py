"""
Database configuration for the API Workspace.

Uses SQLite with SQLAlchemy ORM as the durable backend behind the
persistence adapter. The whole workspace is stored as JSON documents keyed
by a storage key, so the schema is a single key/value table.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are opened with ``check_same_thread=False`` because
    writes happen on the background persistence thread.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    db_engine = create_engine(database_url, connect_args=connect_args, echo=False)

    if database_url.startswith("sqlite"):
        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            """Use WAL so reads are not blocked by an in-flight write."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return db_engine


engine = create_db_engine(get_settings().database_url)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(db_engine: Engine | None = None):
    """
    Initialize the database by creating all tables.

    Called at application startup; existing tables are left untouched.
    """
    # Import models so they register with Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=db_engine or engine)
