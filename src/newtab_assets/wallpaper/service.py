"""Download catalog photos into the image cache."""

from __future__ import annotations

import structlog

from newtab_core.exceptions import (
    CandidateFetchError,
    CandidateTimeoutError,
    ImageDownloadError,
)
from newtab_core.interfaces.catalog import PhotoCatalog
from newtab_core.interfaces.fetcher import ByteFetcher
from newtab_core.models.cache import CacheEntry
from newtab_core.models.listing import Photo
from newtab_assets.tools.image_probe import decode_dimensions
from newtab_infra.cache.image_cache import ImageCache

logger = structlog.get_logger()


class WallpaperService:
    """Cache-first access to wallpaper image bytes."""

    def __init__(
        self,
        catalog: PhotoCatalog,
        image_cache: ImageCache,
        fetcher: ByteFetcher,
        quality: str | None = None,
        download_timeout: float = 30.0,
    ) -> None:
        """Initialize with the catalog, the image cache, and a byte fetcher."""
        self._catalog = catalog
        self._cache = image_cache
        self._fetcher = fetcher
        self._quality = quality
        self._download_timeout = download_timeout

    def image_url(self, photo: Photo) -> str:
        """URL of the configured quality variant."""
        return self._catalog.get_download_url(photo, self._quality)

    async def get_cached_image(self, photo: Photo) -> CacheEntry | None:
        """Return the cached image for ``photo`` without touching the network."""
        return await self._cache.get_image(self.image_url(photo))

    async def download_and_cache(self, photo: Photo) -> CacheEntry:
        """Return the image for ``photo``, downloading and caching it on a miss.

        Raises:
            ImageDownloadError: the download failed or the body is not an image.
            CapacityExceededError: the image alone is larger than the cache.
        """
        url = self.image_url(photo)
        cached = await self._cache.get_image(url)
        if cached is not None:
            logger.debug("wallpaper_cache_hit", photo_id=photo.id)
            return cached

        try:
            payload = await self._fetcher.fetch(url, self._download_timeout)
        except (CandidateTimeoutError, CandidateFetchError) as e:
            logger.warning("wallpaper_download_failed", photo_id=photo.id, error=str(e))
            raise ImageDownloadError(f"Could not download photo {photo.id}: {e}") from e

        if await decode_dimensions(payload) is None:
            msg = f"Photo {photo.id} did not decode as an image"
            raise ImageDownloadError(msg)

        await self._catalog.track_download(photo)
        entry = await self._cache.set_image(url, payload, photo)
        logger.info("wallpaper_cached", photo_id=photo.id, size_bytes=entry.size_bytes)
        return entry
