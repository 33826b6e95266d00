"""SQLite engine and session helpers for the establishment store."""

from __future__ import annotations

import os
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cityscraper.logging_config import get_logger

from .models_sql import Base

LOGGER = get_logger(__name__)
DEFAULT_BUSY_TIMEOUT_S = 30.0


def _register_sqlite_pragmas(engine: Engine, timeout_value: float) -> None:
    """Apply WAL journaling and the busy timeout on every new connection."""

    busy_ms = int(timeout_value * 1000)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute(f"PRAGMA busy_timeout = {busy_ms}")
        except Exception as exc:  # pragma: no cover - best-effort tuning
            LOGGER.warning("Unable to configure SQLite pragmas: %s", exc)
        finally:
            cursor.close()


def get_engine(sqlite_path: str, *, busy_timeout: int | float | None = None) -> Engine:
    """Create a SQLAlchemy engine for *sqlite_path*, creating its directory."""

    timeout_value = float(busy_timeout) if busy_timeout is not None else DEFAULT_BUSY_TIMEOUT_S

    parent = os.path.dirname(os.path.abspath(sqlite_path))
    os.makedirs(parent, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{sqlite_path}",
        future=True,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False, "timeout": timeout_value},
    )
    _register_sqlite_pragmas(engine, timeout_value)
    return engine


def make_session(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create the establishments table when it does not exist yet."""

    Base.metadata.create_all(engine, checkfirst=True)


def open_session_factory(
    sqlite_path: str, *, busy_timeout: int | float | None = None
) -> sessionmaker[Session]:
    """Engine, schema and session factory for a store at *sqlite_path*."""

    engine = get_engine(sqlite_path, busy_timeout=busy_timeout)
    init_db(engine)
    LOGGER.info("Database initialized at %s", sqlite_path)
    return make_session(engine)
