"""Redis-backed implementation of KeyValueStore."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from newtab_core.exceptions import PersistenceReadError, PersistenceWriteError

logger = structlog.get_logger()


class RedisKeyValueStore:
    """Persistent store backed by Redis; values are JSON strings."""

    def __init__(self, redis: Redis, prefix: str = "newtab:") -> None:  # type: ignore[type-arg]
        """Initialize with a redis-py asyncio client."""
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Retrieve and decode the values for the keys that exist."""
        wanted = list(keys)
        if not wanted:
            return {}
        try:
            raw_values = await self._redis.mget([self._key(k) for k in wanted])
        except RedisError as e:
            msg = f"redis read failed: {e}"
            raise PersistenceReadError(msg) from e
        found: dict[str, Any] = {}
        for key, raw in zip(wanted, raw_values, strict=True):
            if raw is None:
                continue
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            try:
                found[key] = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("kv_value_undecodable", backend="redis", key=key)
        return found

    async def set(self, items: Mapping[str, Any]) -> None:
        """Store all pairs with a single MSET."""
        if not items:
            return
        payload = {self._key(k): json.dumps(v) for k, v in items.items()}
        try:
            await self._redis.mset(payload)
        except RedisError as e:
            msg = f"redis write failed: {e}"
            raise PersistenceWriteError(msg) from e

    async def delete(self, keys: Iterable[str]) -> None:
        """Delete keys from Redis."""
        wanted = [self._key(k) for k in keys]
        if not wanted:
            return
        try:
            await self._redis.delete(*wanted)
        except RedisError as e:
            msg = f"redis delete failed: {e}"
            raise PersistenceWriteError(msg) from e
