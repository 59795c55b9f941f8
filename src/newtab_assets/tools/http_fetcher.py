"""httpx-backed byte fetcher for icon candidates and wallpaper images."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from newtab_core.constants import DEFAULT_ICON_MAX_BYTES
from newtab_core.exceptions import CandidateFetchError, CandidateTimeoutError

logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; newtab-assets/0.1)",
    "Accept": "image/avif,image/webp,image/png,image/svg+xml,image/*;q=0.8,*/*;q=0.5",
}


class HttpImageFetcher:
    """Fetch response bodies with a hard overall deadline and a size cap.

    The deadline covers connect, redirects, and body download together,
    so a slow-drip server cannot stall a probe past ``timeout``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_bytes: int = DEFAULT_ICON_MAX_BYTES,
    ) -> None:
        """Initialize with an optional shared client (owned by the caller)."""
        self._client = client or httpx.AsyncClient(
            follow_redirects=True, headers=DEFAULT_HEADERS
        )
        self._owns_client = client is None
        self._max_bytes = max_bytes

    async def fetch(self, url: str, timeout: float) -> bytes:
        """Return the body of ``url``.

        Raises:
            CandidateTimeoutError: the deadline passed.
            CandidateFetchError: non-2xx status, transport error, or a body
                larger than ``max_bytes``.
        """
        try:
            return await asyncio.wait_for(self._download(url), timeout=timeout)
        except TimeoutError as e:
            raise CandidateTimeoutError(f"{url} timed out after {timeout}s") from e
        except httpx.TimeoutException as e:
            raise CandidateTimeoutError(f"{url} timed out: {e}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CandidateFetchError(f"{url} failed: {e}") from e

    async def _download(self, url: str) -> bytes:
        async with self._client.stream("GET", url) as response:
            if not response.is_success:
                msg = f"{url} returned HTTP {response.status_code}"
                raise CandidateFetchError(msg)
            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > self._max_bytes:
                    msg = f"{url} exceeds {self._max_bytes} bytes"
                    raise CandidateFetchError(msg)
                chunks.append(chunk)
        logger.debug("image_fetched", url=url, size_bytes=received)
        return b"".join(chunks)

    async def aclose(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
