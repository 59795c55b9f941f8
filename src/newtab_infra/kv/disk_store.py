"""diskcache-backed implementation of KeyValueStore."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import diskcache

from newtab_core.exceptions import PersistenceReadError, PersistenceWriteError


class DiskKeyValueStore:
    """Persistent store backed by diskcache (SQLite under the hood)."""

    def __init__(self, cache_dir: Path) -> None:
        """Initialize with a cache directory."""
        cache_dir.mkdir(parents=True, exist_ok=True)
        self._cache = diskcache.Cache(str(cache_dir))

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Retrieve the values for the keys that exist."""
        wanted = list(keys)

        def _get() -> dict[str, Any]:
            found: dict[str, Any] = {}
            for key in wanted:
                value = self._cache.get(key, default=None)
                if value is not None:
                    found[key] = value
            return found

        try:
            return await asyncio.to_thread(_get)
        except (OSError, sqlite3.Error, diskcache.Timeout) as e:
            msg = f"diskcache read failed: {e}"
            raise PersistenceReadError(msg) from e

    async def set(self, items: Mapping[str, Any]) -> None:
        """Store all pairs in one diskcache transaction."""
        pairs = dict(items)

        def _set() -> None:
            with self._cache.transact():
                for key, value in pairs.items():
                    self._cache.set(key, value)

        try:
            await asyncio.to_thread(_set)
        except (OSError, sqlite3.Error, diskcache.Timeout) as e:
            msg = f"diskcache write failed: {e}"
            raise PersistenceWriteError(msg) from e

    async def delete(self, keys: Iterable[str]) -> None:
        """Delete keys from the cache."""
        wanted = list(keys)

        def _delete() -> None:
            for key in wanted:
                self._cache.delete(key)

        try:
            await asyncio.to_thread(_delete)
        except (OSError, sqlite3.Error, diskcache.Timeout) as e:
            msg = f"diskcache delete failed: {e}"
            raise PersistenceWriteError(msg) from e

    def close(self) -> None:
        """Close the cache."""
        self._cache.close()
