"""Tests for the httpx-backed byte fetcher."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from newtab_assets.tools.http_fetcher import HttpImageFetcher
from newtab_core.exceptions import CandidateFetchError, CandidateTimeoutError
from tests.mocks.mock_factories import make_png

ICON_URL = "https://example.com/favicon.png"


def _fetcher(handler: object, max_bytes: int = 10_000) -> HttpImageFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))  # type: ignore[arg-type]
    return HttpImageFetcher(client=client, max_bytes=max_bytes)


@pytest.mark.unit
class TestHttpImageFetcher:
    """Test status, size, and deadline handling."""

    @pytest.mark.asyncio
    async def test_returns_body(self) -> None:
        """A 200 response returns the full body."""
        payload = make_png(16, 16)
        fetcher = _fetcher(lambda request: httpx.Response(200, content=payload))
        assert await fetcher.fetch(ICON_URL, timeout=1.0) == payload

    @pytest.mark.asyncio
    async def test_non_2xx_is_fetch_error(self) -> None:
        """A 404 is a soft fetch failure."""
        fetcher = _fetcher(lambda request: httpx.Response(404, content=b"missing"))
        with pytest.raises(CandidateFetchError, match="HTTP 404"):
            await fetcher.fetch(ICON_URL, timeout=1.0)

    @pytest.mark.asyncio
    async def test_oversized_body_is_fetch_error(self) -> None:
        """Bodies above max_bytes are refused."""
        fetcher = _fetcher(lambda request: httpx.Response(200, content=b"x" * 200), max_bytes=100)
        with pytest.raises(CandidateFetchError, match="exceeds 100 bytes"):
            await fetcher.fetch(ICON_URL, timeout=1.0)

    @pytest.mark.asyncio
    async def test_transport_error_is_fetch_error(self) -> None:
        """Connection failures are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CandidateFetchError, match="connection refused"):
            await _fetcher(handler).fetch(ICON_URL, timeout=1.0)

    @pytest.mark.asyncio
    async def test_slow_server_hits_deadline(self) -> None:
        """The overall deadline turns a stalled response into a timeout."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, content=b"late")

        with pytest.raises(CandidateTimeoutError):
            await _fetcher(handler).fetch(ICON_URL, timeout=0.05)

    @pytest.mark.asyncio
    async def test_httpx_timeout_is_timeout_error(self) -> None:
        """httpx's own timeouts map to CandidateTimeoutError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(CandidateTimeoutError):
            await _fetcher(handler).fetch(ICON_URL, timeout=1.0)

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self) -> None:
        """aclose leaves a caller-owned client open."""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200))
        )
        fetcher = HttpImageFetcher(client=client)
        await fetcher.aclose()
        assert client.is_closed is False
        await client.aclose()
