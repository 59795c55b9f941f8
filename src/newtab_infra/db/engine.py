"""Async database engine factory."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from newtab_core.config.settings import Settings


def _enable_wal(dbapi_connection: Any, _connection_record: Any) -> None:
    """Let the sweep and page reads proceed while a cache write is in progress."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def sqlite_file_path(database_url: str) -> Path | None:
    """Return the database file for a file-backed SQLite URL, else None."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return None
    if not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create an async SQLAlchemy engine for the cache's key-value table.

    File-backed SQLite gets its directory created and WAL journaling.
    Other databases use a pre-pinged default pool.
    """
    url = make_url(settings.database_url)
    if url.get_backend_name() != "sqlite":
        return create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)

    path = sqlite_file_path(settings.database_url)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_async_engine(
        settings.database_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    if path is not None:
        event.listen(engine.sync_engine, "connect", _enable_wal)
    return engine
