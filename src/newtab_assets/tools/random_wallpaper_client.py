"""Random wallpaper catalog client."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from newtab_core.constants import (
    DEFAULT_CATEGORY,
    RANDOM_WALLPAPER_API_URL,
    RANDOM_WALLPAPER_CATEGORIES,
    RANDOM_WALLPAPER_CATEGORY_ALIASES,
    RANDOM_WALLPAPER_KEYWORDS,
    RANDOM_WALLPAPER_MAX_BATCH,
    RANDOM_WALLPAPER_MIN_HEIGHT,
    RANDOM_WALLPAPER_MIN_WIDTH,
    RANDOM_WALLPAPER_THEMES,
)
from newtab_core.exceptions import CatalogRequestError
from newtab_core.models.listing import Photo, SearchPage

logger = structlog.get_logger()


def remote_category(category_key: str) -> str:
    """Map a listing category key onto one the random API knows."""
    key = RANDOM_WALLPAPER_CATEGORY_ALIASES.get(category_key, category_key)
    return key if key in RANDOM_WALLPAPER_CATEGORIES else DEFAULT_CATEGORY


def guess_category(query: str) -> str | None:
    """Pick a remote category from search keywords; None when nothing matches."""
    lowered = query.lower()
    for category, keywords in RANDOM_WALLPAPER_KEYWORDS.items():
        if any(word in lowered for word in keywords):
            return category
    return None


def is_usable_background(data: dict[str, Any]) -> bool:
    """Reject wallpapers that are too small or not images."""
    if not data.get("url"):
        return False
    if int(data.get("width") or 0) < RANDOM_WALLPAPER_MIN_WIDTH:
        return False
    if int(data.get("height") or 0) < RANDOM_WALLPAPER_MIN_HEIGHT:
        return False
    return str(data.get("mimeType") or "").startswith("image/")


class RandomWallpaperClient:
    """Client for a random wallpaper API that has no search or paging.

    Every call returns one random wallpaper. Listings are built from a
    batch of concurrent calls, so a listing never runs out of pages.
    """

    def __init__(
        self,
        secret: str,
        base_url: str = RANDOM_WALLPAPER_API_URL,
        client: httpx.AsyncClient | None = None,
        theme: str = "all",
        default_quality: str = "regular",
        timeout: float = 15.0,
        max_retries: int = 3,
    ) -> None:
        """Initialize with the API secret and an optional shared httpx client."""
        self._secret = secret
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._theme = theme
        self._default_quality = default_quality
        self._max_retries = max_retries

    async def _request(
        self, endpoint: str, params: dict[str, str], secret: str | None = None
    ) -> dict[str, Any]:
        """GET ``endpoint`` and return the ``data`` object of a successful reply."""
        url = f"{self._base_url}{endpoint}"
        query = {k: v for k, v in params.items() if v}
        headers = {"secret": secret or self._secret, "Accept": "application/json"}

        @retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )
        async def _do_get() -> httpx.Response:
            return await self._client.get(url, params=query, headers=headers)

        try:
            response = await _do_get()
        except httpx.HTTPError as e:
            logger.warning("catalog_request_failed", endpoint=endpoint, error=str(e))
            raise CatalogRequestError(f"Catalog request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "catalog_request_rejected", endpoint=endpoint, status_code=response.status_code
            )
            raise CatalogRequestError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise CatalogRequestError(f"Invalid JSON from {endpoint}") from e
        if not isinstance(body, dict) or body.get("msg") != "success":
            message = body.get("msg") if isinstance(body, dict) else None
            raise CatalogRequestError(str(message or "Request was not successful"))
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    async def _random_raw(
        self, category_key: str, theme: str | None, secret: str | None = None
    ) -> dict[str, Any]:
        data = await self._request(
            "/wallpaper/random",
            {
                "cate_id": RANDOM_WALLPAPER_CATEGORIES[remote_category(category_key)],
                "theme": RANDOM_WALLPAPER_THEMES.get(theme or self._theme, ""),
            },
            secret=secret,
        )
        wallpaper = data.get("wallpaper")
        if not isinstance(wallpaper, dict):
            raise CatalogRequestError("Reply carried no wallpaper")
        return wallpaper

    async def get_random_wallpaper(
        self, category_key: str = DEFAULT_CATEGORY, theme: str | None = None
    ) -> Photo:
        """Fetch one random wallpaper."""
        return Photo.from_random_wallpaper(await self._random_raw(category_key, theme))

    async def get_random_wallpapers(
        self, count: int, category_key: str = DEFAULT_CATEGORY, theme: str | None = None
    ) -> list[Photo]:
        """Fetch up to ``count`` wallpapers concurrently.

        Failed calls are dropped, as are images too small for a background.
        Duplicates returned by separate calls appear once.

        Raises:
            CatalogRequestError: every call failed.
        """
        count = min(max(count, 1), RANDOM_WALLPAPER_MAX_BATCH)
        results = await asyncio.gather(
            *(self._random_raw(category_key, theme) for _ in range(count)),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if len(errors) == count:
            raise CatalogRequestError(f"All {count} wallpaper requests failed: {errors[0]}")

        photos: dict[str, Photo] = {}
        for raw in results:
            if isinstance(raw, BaseException) or not is_usable_background(raw):
                continue
            photo = Photo.from_random_wallpaper(raw)
            photos.setdefault(photo.id, photo)
        logger.info(
            "random_wallpapers_fetched",
            category=category_key,
            requested=count,
            kept=len(photos),
            failed=len(errors),
        )
        return list(photos.values())

    async def search(self, query: str, page: int, per_page: int) -> SearchPage:
        """Approximate a search by picking a category from the keywords."""
        category = guess_category(query) or DEFAULT_CATEGORY
        photos = await self.get_random_wallpapers(per_page, category)
        return SearchPage(
            results=photos,
            total=len(photos),
            total_pages=page + 1 if photos else page,
        )

    async def list_by_category(self, category_key: str, page: int, per_page: int) -> list[Photo]:
        """Return a batch of random wallpapers for the category."""
        return await self.get_random_wallpapers(per_page, category_key)

    def get_download_url(self, photo: Photo, quality: str | None = None) -> str:
        """Return the URL for ``quality``, falling back to the full image."""
        target = quality or self._default_quality
        url = photo.urls.get(target) or photo.urls.get("full")
        if not url:
            msg = f"Photo {photo.id} has no {target!r} or 'full' URL"
            raise CatalogRequestError(msg)
        return url

    async def track_download(self, photo: Photo) -> None:
        """This API keeps no usage accounting; nothing is sent."""
        logger.debug("catalog_track_download_skipped", photo_id=photo.id)

    async def validate_secret(self, secret: str | None = None) -> bool:
        """Check a secret by requesting one wallpaper with it."""
        try:
            await self._random_raw(DEFAULT_CATEGORY, None, secret=secret)
        except CatalogRequestError:
            return False
        return True

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
