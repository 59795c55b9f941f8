"""Icon payload cache keyed by domain and size tier."""

from __future__ import annotations

from newtab_core.constants import ICON_SIZE_TIERS
from newtab_core.models.cache import CacheEntry
from newtab_infra.cache.cache_store import CacheStore


def normalize_icon_size(size: int) -> int:
    """Round a requested size up to the nearest tier; sizes above every tier are kept."""
    for tier in ICON_SIZE_TIERS:
        if size <= tier:
            return tier
    return size


class IconCache:
    """Cache for resolved favicons, one entry per domain and size tier."""

    def __init__(self, store: CacheStore) -> None:
        """Initialize with the icon-namespaced CacheStore."""
        self._store = store

    @property
    def store(self) -> CacheStore:
        return self._store

    def key(self, domain: str, size: int) -> str:
        """Generate a cache key from domain and requested size."""
        return f"icon:{domain.lower().strip()}:{normalize_icon_size(size)}"

    async def get_icon(self, domain: str, size: int) -> CacheEntry | None:
        """Retrieve a cached icon payload for a domain."""
        return await self._store.get(self.key(domain, size))

    async def set_icon(
        self,
        domain: str,
        size: int,
        payload: bytes,
        metadata: dict[str, str] | None = None,
    ) -> CacheEntry:
        """Cache an icon payload."""
        return await self._store.put(self.key(domain, size), payload, metadata)

    async def forget(self, domain: str, size: int) -> bool:
        """Drop the cached icon for a domain, e.g. after the user replaces it."""
        return await self._store.invalidate(self.key(domain, size))
