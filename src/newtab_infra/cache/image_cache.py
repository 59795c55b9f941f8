"""Wallpaper image cache keyed by image URL."""

from __future__ import annotations

from newtab_core.models.cache import CacheEntry
from newtab_core.models.listing import Photo
from newtab_infra.cache.cache_store import CacheStore


def attribution_metadata(photo: Photo) -> dict[str, str]:
    """Photographer attribution and dimensions stored alongside the payload."""
    return {
        "photo_id": photo.id,
        "photographer": photo.user.name,
        "photographer_username": photo.user.username,
        "photographer_url": photo.user.profile_url,
        "photo_url": photo.html_url,
        "width": str(photo.width),
        "height": str(photo.height),
        "color": photo.color or "",
    }


class ImageCache:
    """Cache for downloaded wallpaper images."""

    def __init__(self, store: CacheStore) -> None:
        """Initialize with the image-namespaced CacheStore."""
        self._store = store

    @property
    def store(self) -> CacheStore:
        return self._store

    async def get_image(self, url: str) -> CacheEntry | None:
        """Retrieve a cached image by its source URL."""
        return await self._store.get(url)

    async def set_image(self, url: str, payload: bytes, photo: Photo) -> CacheEntry:
        """Cache image bytes with the photo's attribution."""
        return await self._store.put(url, payload, attribution_metadata(photo))

    def has_image(self, url: str) -> bool:
        """Whether a live copy of the image is cached."""
        return self._store.contains(url)
