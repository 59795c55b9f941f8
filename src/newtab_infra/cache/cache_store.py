"""Bounded, persistent cache of binary payloads.

Entries are evicted least-recently-used first (ties broken by oldest
``cached_at``) whenever an insert or a config change would break the size or
count bounds, and expire ``max_age_ms`` after creation. Memory is the source
of truth; every mutation commits to memory first and is then mirrored to the
key-value store on a best-effort basis.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable, Mapping
from dataclasses import replace
from types import TracebackType

import structlog

from newtab_core.constants import IMAGE_CACHE_NAMESPACE, MS_PER_SECOND
from newtab_core.exceptions import (
    CapacityExceededError,
    PersistenceReadError,
    PersistenceWriteError,
)
from newtab_core.interfaces.kv_store import KeyValueStore
from newtab_core.models.cache import (
    CacheConfig,
    CacheCounters,
    CacheEntry,
    CacheRecord,
    CacheStats,
)

logger = structlog.get_logger()


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def format_size(num_bytes: int) -> str:
    """Render a byte count as a short human-readable string."""
    units = ("B", "KB", "MB", "GB")
    size = float(num_bytes)
    unit = 0
    while size >= 1024 and unit < len(units) - 1:
        size /= 1024
        unit += 1
    return f"{size:.1f} {units[unit]}"


def _lru_order(entry: CacheEntry) -> tuple[int, int]:
    return (entry.last_accessed_at, entry.cached_at)


class CacheStore:
    """Size-, count-, and age-bounded cache persisted through a KeyValueStore.

    Mutations (put, eviction, sweep, config changes) are serialized by a
    single lock. Reads never await between looking an entry up and touching
    it, so they always observe a whole entry.
    """

    def __init__(
        self,
        kv_store: KeyValueStore,
        config: CacheConfig | None = None,
        *,
        namespace: str = IMAGE_CACHE_NAMESPACE,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize an empty store; call ``start()`` to load persisted state."""
        self._kv = kv_store
        self._config = config or CacheConfig()
        self._namespace = namespace
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    # -- persisted record names ------------------------------------------

    @property
    def cache_key(self) -> str:
        return f"{self._namespace}_cache"

    @property
    def stats_key(self) -> str:
        return f"{self._namespace}_stats"

    @property
    def config_key(self) -> str:
        return f"{self._namespace}_config"

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def config(self) -> CacheConfig:
        return self._config

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Load persisted state, sweep once, and start the periodic sweep."""
        await self.load()
        self._start_sweeper()

    async def close(self) -> None:
        """Stop the periodic sweep."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> CacheStore:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def load(self) -> None:
        """Restore config, entries, and counters from the key-value store.

        Persisted config is merged over the constructor config. Malformed
        records are skipped. Bounds are enforced and expired entries dropped
        before the call returns.
        """
        async with self._lock:
            try:
                stored = await self._kv.get([self.cache_key, self.stats_key, self.config_key])
            except PersistenceReadError as e:
                logger.warning("cache_load_failed", namespace=self._namespace, error=str(e))
                stored = {}

            config_data = stored.get(self.config_key)
            if isinstance(config_data, dict):
                try:
                    self._config = CacheConfig(**{**self._config.model_dump(), **config_data})
                except ValueError as e:
                    logger.warning(
                        "cache_config_ignored", namespace=self._namespace, error=str(e)
                    )

            entries_data = stored.get(self.cache_key)
            if isinstance(entries_data, dict):
                for key, raw in entries_data.items():
                    try:
                        entry = CacheRecord.model_validate(raw).to_entry()
                    except ValueError as e:
                        logger.warning(
                            "cache_record_skipped",
                            namespace=self._namespace,
                            key=key,
                            error=str(e),
                        )
                        continue
                    self._entries[entry.key] = entry

            stats_data = stored.get(self.stats_key)
            if isinstance(stats_data, dict):
                try:
                    counters = CacheCounters.model_validate(stats_data)
                    self._hits, self._misses = counters.hits, counters.misses
                except ValueError:
                    logger.warning("cache_stats_ignored", namespace=self._namespace)

            expired = self._remove_expired(self._clock())
            evicted = self._evict_until_fits(0, reserve_slot=False)
            if expired or evicted:
                await self._persist()

        logger.info(
            "cache_store_loaded",
            namespace=self._namespace,
            entries=len(self._entries),
            expired=len(expired),
            evicted=len(evicted),
        )

    # -- reads ---------------------------------------------------------------

    async def get(self, key: str) -> CacheEntry | None:
        """Return a copy of the live entry for ``key`` and mark it used.

        Expired entries are deleted on access and reported as a miss.
        """
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._is_expired(entry, now):
            self._misses += 1
            async with self._lock:
                if self._entries.get(key) is entry:
                    del self._entries[key]
                    await self._persist()
            logger.debug("cache_entry_expired", namespace=self._namespace, key=key)
            return None

        entry.last_accessed_at = now
        self._hits += 1
        return replace(entry, metadata=dict(entry.metadata))

    def contains(self, key: str) -> bool:
        """Whether a live entry exists; no side effects."""
        entry = self._entries.get(key)
        return entry is not None and not self._is_expired(entry, self._clock())

    def keys(self) -> list[str]:
        """Keys of all live entries."""
        now = self._clock()
        return [k for k, e in self._entries.items() if not self._is_expired(e, now)]

    def stats(self) -> CacheStats:
        """Statistics recomputed from the current entry set."""
        lookups = self._hits + self._misses
        return CacheStats(
            total_size_bytes=sum(e.size_bytes for e in self._entries.values()),
            total_count=len(self._entries),
            max_size_bytes=self._config.max_size_bytes,
            hit_rate=self._hits / lookups if lookups else 0.0,
        )

    # -- mutations -------------------------------------------------------

    async def put(
        self,
        key: str,
        payload: bytes,
        metadata: Mapping[str, str] | None = None,
    ) -> CacheEntry:
        """Insert ``payload`` under ``key`` unless a live entry already exists.

        An existing live entry wins: its ``last_accessed_at`` is refreshed and
        it is returned unchanged. A new key evicts LRU entries until it fits.

        Raises:
            CapacityExceededError: ``payload`` alone is larger than
                ``max_size_bytes``. Nothing is evicted.
        """
        async with self._lock:
            now = self._clock()
            existing = self._entries.get(key)
            if existing is not None and not self._is_expired(existing, now):
                existing.last_accessed_at = now
                await self._persist(stats=False)
                return replace(existing, metadata=dict(existing.metadata))

            size = len(payload)
            if size > self._config.max_size_bytes:
                logger.warning(
                    "cache_capacity_exceeded",
                    namespace=self._namespace,
                    key=key,
                    size_bytes=size,
                    max_size_bytes=self._config.max_size_bytes,
                )
                raise CapacityExceededError(key, size, self._config.max_size_bytes)

            if existing is not None:
                del self._entries[key]
            evicted = self._evict_until_fits(size, reserve_slot=True)

            entry = CacheEntry(
                key=key,
                payload=bytes(payload),
                cached_at=now,
                last_accessed_at=now,
                metadata={str(k): str(v) for k, v in (metadata or {}).items()},
            )
            self._entries[key] = entry
            await self._persist()

        logger.debug(
            "cache_entry_stored",
            namespace=self._namespace,
            key=key,
            size_bytes=size,
            evicted=len(evicted),
        )
        return replace(entry, metadata=dict(entry.metadata))

    async def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns whether it existed."""
        async with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            await self._persist()
        return True

    async def invalidate_all(self) -> None:
        """Drop every entry, reset counters, and delete the persisted records."""
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            try:
                await self._kv.delete([self.cache_key, self.stats_key])
            except PersistenceWriteError as e:
                logger.warning(
                    "cache_persist_failed", namespace=self._namespace, error=str(e)
                )
        logger.info("cache_cleared", namespace=self._namespace, removed=count)

    async def run_sweep(self) -> int:
        """Remove all expired entries. Returns how many were removed."""
        async with self._lock:
            expired = self._remove_expired(self._clock())
            if expired:
                await self._persist()
        if expired:
            logger.info("cache_sweep_completed", namespace=self._namespace, removed=len(expired))
        return len(expired)

    async def update_config(self, new_config: CacheConfig) -> None:
        """Apply new bounds and immediately evict down to them."""
        async with self._lock:
            old_config = self._config
            self._config = new_config
            expired: list[str] = []
            if new_config.max_age_ms < old_config.max_age_ms:
                expired = self._remove_expired(self._clock())
            evicted = self._evict_until_fits(0, reserve_slot=False)
            await self._persist(entries=bool(expired or evicted), config=True)

        logger.info(
            "cache_config_updated",
            namespace=self._namespace,
            max_size_bytes=new_config.max_size_bytes,
            max_count=new_config.max_count,
            expired=len(expired),
            evicted=len(evicted),
        )
        if (
            self._sweep_task is not None
            and new_config.cleanup_interval_ms != old_config.cleanup_interval_ms
        ):
            self._start_sweeper()

    # -- internals -------------------------------------------------------

    def _is_expired(self, entry: CacheEntry, now: int) -> bool:
        return now - entry.cached_at > self._config.max_age_ms

    def _remove_expired(self, now: int) -> list[str]:
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        return expired

    def _evict_until_fits(self, new_size: int, *, reserve_slot: bool) -> list[str]:
        """Evict LRU entries until ``new_size`` more bytes (and a slot) fit."""
        slots = 1 if reserve_slot else 0
        total = sum(e.size_bytes for e in self._entries.values())
        evicted: list[str] = []
        while self._entries and (
            total + new_size > self._config.max_size_bytes
            or len(self._entries) + slots > self._config.max_count
        ):
            victim = min(self._entries.values(), key=_lru_order)
            del self._entries[victim.key]
            total -= victim.size_bytes
            evicted.append(victim.key)
            logger.debug(
                "cache_entry_evicted",
                namespace=self._namespace,
                key=victim.key,
                size_bytes=victim.size_bytes,
            )
        return evicted

    def _counters(self) -> CacheCounters:
        stats = self.stats()
        return CacheCounters(
            **stats.model_dump(),
            hits=self._hits,
            misses=self._misses,
        )

    async def _persist(
        self, *, entries: bool = True, stats: bool = True, config: bool = False
    ) -> bool:
        """Mirror in-memory state to the key-value store; failures are logged."""
        items: dict[str, object] = {}
        if entries:
            items[self.cache_key] = {
                k: e.to_record().model_dump() for k, e in self._entries.items()
            }
        if stats:
            items[self.stats_key] = self._counters().model_dump()
        if config:
            items[self.config_key] = self._config.model_dump()
        if not items:
            return True
        try:
            await self._kv.set(items)
        except PersistenceWriteError as e:
            logger.warning("cache_persist_failed", namespace=self._namespace, error=str(e))
            return False
        return True

    def _start_sweeper(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
        self._sweep_task = asyncio.create_task(
            self._sweep_loop(), name=f"cache-sweep-{self._namespace}"
        )

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.cleanup_interval_ms / MS_PER_SECOND)
            try:
                await self.run_sweep()
            except Exception:
                logger.exception("cache_sweep_failed", namespace=self._namespace)
