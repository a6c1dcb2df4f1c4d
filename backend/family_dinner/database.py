"""SQLAlchemy engine, session factory and declarative base.

The engine and session factory are built by the application entry point
(`create_app`) and stored on ``app.state``; request handlers receive a
session through the ``get_db`` dependency.
"""
import os
from datetime import datetime, timezone
from typing import Generator

from fastapi import Request
from sqlalchemy import DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamp column.

    SQLite drops tzinfo on the way back out, so values are normalised to UTC
    on write and re-tagged as UTC on read.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = ensure_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return ensure_utc(value)


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _ensure_sqlite_dir(database_url: str) -> None:
    """Create the parent folder for file-based SQLite URLs."""
    if not database_url.startswith("sqlite:///"):
        return
    folder = os.path.dirname(database_url.replace("sqlite:///", "", 1))
    if folder:
        os.makedirs(folder, exist_ok=True)


def _sqlite_pragmas(engine: Engine) -> None:
    """Per-connection SQLite setup.

    pysqlite's own transaction handling is switched off so that every
    transaction starts with BEGIN IMMEDIATE. That takes the database write
    lock up front, which is how SQLite serialises the check-then-write
    sequences that Postgres covers with SELECT ... FOR UPDATE.
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=30000;")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for ``database_url``."""
    connect_args = {}
    if _is_sqlite(database_url):
        _ensure_sqlite_dir(database_url)
        connect_args = {"check_same_thread": False, "timeout": 30}

    engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)

    if _is_sqlite(database_url):
        _sqlite_pragmas(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def register_models() -> None:
    """Import all models so Base.metadata knows about them."""
    from family_dinner.models.user import User  # noqa: F401
    from family_dinner.models.event import Event, EventCuisine, EventDietaryAccommodation  # noqa: F401
    from family_dinner.models.reservation import Reservation  # noqa: F401
    from family_dinner.models.poll import ProposedDate, AvailabilityResponse  # noqa: F401


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session bound to the app's engine."""
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
