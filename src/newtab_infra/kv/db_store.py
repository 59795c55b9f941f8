"""Database-backed implementation of KeyValueStore using the kv_records table."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newtab_core.exceptions import PersistenceReadError, PersistenceWriteError
from newtab_infra.db.models import KVRecordModel


class DBKeyValueStore:
    """Store backed by the application's database.

    Each call opens its own session so the store can be shared by
    concurrent coroutines.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize with an async session factory."""
        self._session_factory = session_factory

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Retrieve the values for the keys that exist."""
        wanted = list(keys)
        if not wanted:
            return {}
        try:
            async with self._session_factory() as session:
                stmt = select(KVRecordModel).where(KVRecordModel.key.in_(wanted))
                result = await session.execute(stmt)
                return {row.key: row.value for row in result.scalars()}
        except SQLAlchemyError as e:
            msg = f"database read failed: {e}"
            raise PersistenceReadError(msg) from e

    async def set(self, items: Mapping[str, Any]) -> None:
        """Upsert all pairs in one transaction."""
        if not items:
            return
        try:
            async with self._session_factory() as session:
                for key, value in items.items():
                    record = await session.get(KVRecordModel, key)
                    if record is None:
                        session.add(KVRecordModel(key=key, value=value))
                    else:
                        record.value = value
                await session.commit()
        except SQLAlchemyError as e:
            msg = f"database write failed: {e}"
            raise PersistenceWriteError(msg) from e

    async def delete(self, keys: Iterable[str]) -> None:
        """Delete keys in one statement."""
        wanted = list(keys)
        if not wanted:
            return
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(KVRecordModel).where(KVRecordModel.key.in_(wanted))
                )
                await session.commit()
        except SQLAlchemyError as e:
            msg = f"database delete failed: {e}"
            raise PersistenceWriteError(msg) from e
