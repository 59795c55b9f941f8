"""Unsplash photo catalog client."""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from newtab_core.constants import (
    DEFAULT_CATEGORY,
    LISTING_CATEGORIES,
    UNSPLASH_API_URL,
    UNSPLASH_MAX_PER_PAGE,
)
from newtab_core.exceptions import CatalogRequestError
from newtab_core.models.listing import Photo, SearchPage

logger = structlog.get_logger()


class UnsplashClient:
    """Client for the Unsplash REST API (v1).

    Transport errors are retried with exponential backoff; HTTP error
    responses are not retried and surface as ``CatalogRequestError``.
    """

    def __init__(
        self,
        access_key: str,
        base_url: str = UNSPLASH_API_URL,
        client: httpx.AsyncClient | None = None,
        default_quality: str = "regular",
        timeout: float = 15.0,
        max_retries: int = 3,
    ) -> None:
        """Initialize with an access key and an optional shared httpx client."""
        self._access_key = access_key
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._default_quality = default_quality
        self._max_retries = max_retries

    def _headers(self, access_key: str | None = None) -> dict[str, str]:
        return {
            "Authorization": f"Client-ID {access_key or self._access_key}",
            "Accept-Version": "v1",
        }

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        access_key: str | None = None,
    ) -> Any:
        """GET ``endpoint`` and return the decoded JSON body."""
        url = f"{self._base_url}{endpoint}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        @retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )
        async def _do_get() -> httpx.Response:
            return await self._client.get(url, params=query, headers=self._headers(access_key))

        try:
            response = await _do_get()
        except httpx.HTTPError as e:
            logger.warning("catalog_request_failed", endpoint=endpoint, error=str(e))
            raise CatalogRequestError(f"Catalog request failed: {e}") from e

        if not response.is_success:
            message = f"HTTP {response.status_code}: {response.reason_phrase}"
            try:
                errors = response.json().get("errors") or []
                if errors:
                    message = str(errors[0])
            except (ValueError, AttributeError):
                pass
            logger.warning(
                "catalog_request_rejected",
                endpoint=endpoint,
                status_code=response.status_code,
                error=message,
            )
            raise CatalogRequestError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise CatalogRequestError(f"Invalid JSON from {endpoint}") from e

    async def get_random_photos(
        self,
        count: int,
        query: str | None = None,
        orientation: str | None = None,
        access_key: str | None = None,
    ) -> list[Photo]:
        """Fetch up to 30 random photos, optionally matching ``query``."""
        data = await self._request(
            "/photos/random",
            {
                "count": min(max(count, 1), UNSPLASH_MAX_PER_PAGE),
                "query": query or None,
                "orientation": orientation,
            },
            access_key=access_key,
        )
        items = data if isinstance(data, list) else [data]
        return [Photo.from_api(item) for item in items]

    async def search(self, query: str, page: int, per_page: int) -> SearchPage:
        """Search landscape photos by keyword, most relevant first."""
        data = await self._request(
            "/search/photos",
            {
                "query": query,
                "page": page,
                "per_page": min(per_page, UNSPLASH_MAX_PER_PAGE),
                "order_by": "relevant",
                "orientation": "landscape",
            },
        )
        page_result = SearchPage(
            results=[Photo.from_api(item) for item in data.get("results", [])],
            total=int(data.get("total") or 0),
            total_pages=int(data.get("total_pages") or 0),
        )
        logger.info(
            "catalog_search_completed",
            query=query,
            page=page,
            count=len(page_result.results),
            total_pages=page_result.total_pages,
        )
        return page_result

    async def list_by_category(self, category_key: str, page: int, per_page: int) -> list[Photo]:
        """List photos for a category; ``all`` and unknown keys return random photos."""
        entry = LISTING_CATEGORIES.get(category_key)
        if entry is None or category_key == DEFAULT_CATEGORY:
            return await self.get_random_photos(per_page)
        _label, query = entry
        result = await self.search(query, page, per_page)
        return result.results

    def get_download_url(self, photo: Photo, quality: str | None = None) -> str:
        """Return the URL for ``quality``, falling back to ``regular``."""
        target = quality or self._default_quality
        url = photo.urls.get(target) or photo.urls.get("regular")
        if not url:
            msg = f"Photo {photo.id} has no {target!r} or 'regular' URL"
            raise CatalogRequestError(msg)
        return url

    async def track_download(self, photo: Photo) -> None:
        """Report a download to Unsplash as its API guidelines require; never raises."""
        if not photo.download_location:
            return
        try:
            response = await self._client.get(photo.download_location, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("catalog_track_download_failed", photo_id=photo.id, error=str(e))

    async def validate_api_key(self, access_key: str | None = None) -> bool:
        """Check a key by requesting one random photo."""
        try:
            await self.get_random_photos(1, access_key=access_key)
        except CatalogRequestError:
            return False
        return True

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
