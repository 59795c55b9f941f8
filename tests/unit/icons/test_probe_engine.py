"""Tests for the fallback probe engine."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from newtab_assets.icons.candidates import CandidateResolver
from newtab_assets.icons.probe_engine import FallbackProbeEngine
from newtab_core.constants import ICON_CACHE_NAMESPACE, INTERNAL_ICON_SENTINEL
from newtab_core.models.icon import (
    ExhaustedAllCandidates,
    IconTarget,
    NetworkMode,
    NotApplicable,
    OfficialIcon,
    ProbeFailureKind,
    ProviderHint,
    Resolved,
    TextIcon,
    UploadIcon,
)
from newtab_infra.cache.cache_store import CacheStore
from newtab_infra.cache.icon_cache import IconCache
from newtab_infra.kv.memory_store import InMemoryKeyValueStore
from tests.mocks.mock_factories import (
    make_cache_config,
    make_candidate,
    make_ico,
    make_png,
    make_target,
    make_truncated_png,
)
from tests.mocks.mock_tools import FakeFetcher, ManualClock, timeout_error

SITE_ICO = "https://example.com/favicon.ico"
SITE_PNG = "https://example.com/favicon.png"
TOUCH = "https://example.com/apple-touch-icon.png"
TOUCH_PRE = "https://example.com/apple-touch-icon-precomposed.png"
DDG = "https://icons.duckduckgo.com/ip3/example.com.ico"
GOOGLE_32 = "https://www.google.com/s2/favicons?domain=example.com&sz=32"


def _engine(
    icon_store: CacheStore, fetcher: FakeFetcher, resolver: CandidateResolver | None = None
) -> FallbackProbeEngine:
    return FallbackProbeEngine(IconCache(icon_store), fetcher, resolver, probe_timeout=0.5)


@pytest.mark.unit
class TestResolve:
    """Tests for FallbackProbeEngine.resolve."""

    @pytest.mark.asyncio
    async def test_first_acceptable_candidate_wins(self, icon_store: CacheStore) -> None:
        """Timeout, then placeholder, then a valid icon: the valid one is chosen."""
        a = make_candidate("https://a.test/icon.ico", ProviderHint.SITE, 64)
        b = make_candidate("https://b.test/s2?sz=64", ProviderHint.GOOGLE, 64)
        c = make_candidate("https://c.test/icon.png", ProviderHint.SITE, 64)
        d = make_candidate("https://d.test/never.png", ProviderHint.SITE, 64)
        resolver = MagicMock(spec=CandidateResolver)
        resolver.build_candidates.return_value = [a, b, c, d]
        fetcher = FakeFetcher(
            {
                a.url: timeout_error(a.url),
                b.url: make_png(16, 16),
                c.url: make_png(64, 64),
                d.url: make_png(64, 64),
            }
        )
        engine = _engine(icon_store, fetcher, resolver)

        result = await engine.resolve(make_target(size=64))

        assert isinstance(result, Resolved)
        assert result.url == c.url
        assert result.from_cache is False
        assert fetcher.calls == [a.url, b.url, c.url]

    @pytest.mark.asyncio
    async def test_real_candidate_chain(self, icon_store: CacheStore) -> None:
        """Site files, then DuckDuckGo, then Google are tried in order."""
        fetcher = FakeFetcher(
            {
                SITE_PNG: b"<html>not found</html>",
                TOUCH: timeout_error(TOUCH),
                DDG: make_png(8, 8),
                GOOGLE_32: make_png(32, 32),
            }
        )
        engine = _engine(icon_store, fetcher)

        result = await engine.resolve(make_target())

        assert isinstance(result, Resolved)
        assert result.url == GOOGLE_32
        assert fetcher.calls == [SITE_ICO, SITE_PNG, TOUCH, TOUCH_PRE, DDG, GOOGLE_32]

    @pytest.mark.asyncio
    async def test_ico_payload_accepted(self, icon_store: CacheStore) -> None:
        """ICO files decode through Pillow."""
        fetcher = FakeFetcher({SITE_ICO: make_ico(32)})
        result = await _engine(icon_store, fetcher).resolve(make_target())
        assert isinstance(result, Resolved)
        assert result.url == SITE_ICO
        assert fetcher.calls == [SITE_ICO]

    @pytest.mark.asyncio
    async def test_truncated_payload_is_skipped(self, icon_store: CacheStore) -> None:
        """A body cut off after its header is never chosen or cached."""
        good = make_png(64, 64)
        fetcher = FakeFetcher({SITE_ICO: make_truncated_png(64), SITE_PNG: good})
        engine = _engine(icon_store, fetcher)

        result = await engine.resolve(make_target(size=64))

        assert isinstance(result, Resolved)
        assert result.url == SITE_PNG
        assert fetcher.calls == [SITE_ICO, SITE_PNG]
        entry = await icon_store.get("icon:example.com:64")
        assert entry is not None
        assert entry.payload == good
        assert icon_store.stats().total_count == 1

    @pytest.mark.asyncio
    async def test_exhaustion_reports_every_failure(self, icon_store: CacheStore) -> None:
        """When nothing passes, every candidate's failure is returned."""
        fetcher = FakeFetcher(
            {
                SITE_ICO: timeout_error(SITE_ICO),
                SITE_PNG: b"\x89PNG-truncated",
                GOOGLE_32: make_png(16, 16),
            }
        )
        engine = _engine(icon_store, fetcher)

        result = await engine.resolve(make_target())

        assert isinstance(result, ExhaustedAllCandidates)
        kinds = [f.kind for f in result.failures]
        assert kinds == [
            ProbeFailureKind.TIMEOUT,
            ProbeFailureKind.NOT_AN_IMAGE,
            ProbeFailureKind.FETCH_ERROR,
            ProbeFailureKind.FETCH_ERROR,
            ProbeFailureKind.FETCH_ERROR,
            ProbeFailureKind.REJECTED_QUALITY,
        ]
        assert icon_store.stats().total_count == 0

    @pytest.mark.asyncio
    async def test_winner_is_cached_and_served_without_network(
        self, icon_store: CacheStore
    ) -> None:
        """A second resolve is answered from the cache with the source URL."""
        payload = make_png(32, 32)
        fetcher = FakeFetcher({SITE_PNG: payload})
        engine = _engine(icon_store, fetcher)

        await engine.resolve(make_target())
        calls_after_first = list(fetcher.calls)
        result = await engine.resolve(make_target())

        assert isinstance(result, Resolved)
        assert result.from_cache is True
        assert result.url == SITE_PNG
        assert result.payload == payload
        assert fetcher.calls == calls_after_first

    @pytest.mark.asyncio
    async def test_cached_metadata(self, icon_store: CacheStore) -> None:
        """The stored entry records provider, dimensions, and quality."""
        fetcher = FakeFetcher({SITE_ICO: make_png(48, 48)})
        engine = _engine(icon_store, fetcher)

        await engine.resolve(make_target(size=48))

        entry = await icon_store.get("icon:example.com:48")
        assert entry is not None
        assert entry.metadata == {
            "source_url": SITE_ICO,
            "provider": "site",
            "width": "48",
            "height": "48",
            "quality_score": "100",
            "quality": "good",
        }

    @pytest.mark.asyncio
    async def test_custom_cache_key(self, icon_store: CacheStore) -> None:
        """cache_key_fn decides where the winner is stored."""
        fetcher = FakeFetcher({SITE_ICO: make_png(32, 32)})
        engine = _engine(icon_store, fetcher)

        await engine.resolve(make_target(), cache_key_fn=lambda t: f"custom:{t.domain}")

        assert icon_store.contains("custom:example.com")

    @pytest.mark.asyncio
    async def test_internal_domain_uses_local_glyph(self, icon_store: CacheStore) -> None:
        """Private hosts resolve to the sentinel with no network and no cache write."""
        fetcher = FakeFetcher()
        result = await _engine(icon_store, fetcher).resolve(make_target(domain="nas.local"))

        assert isinstance(result, Resolved)
        assert result.url == INTERNAL_ICON_SENTINEL
        assert result.is_local_glyph
        assert fetcher.calls == []
        assert icon_store.stats().total_count == 0

    @pytest.mark.asyncio
    async def test_winner_too_large_for_cache_still_resolves(self, clock: ManualClock) -> None:
        """A capacity error while caching does not lose the result."""
        tiny = CacheStore(
            InMemoryKeyValueStore(),
            make_cache_config(max_size_bytes=10),
            namespace=ICON_CACHE_NAMESPACE,
            clock=clock,
        )
        fetcher = FakeFetcher({SITE_ICO: make_png(32, 32)})

        result = await _engine(tiny, fetcher).resolve(make_target())

        assert isinstance(result, Resolved)
        assert result.url == SITE_ICO
        assert tiny.stats().total_count == 0


@pytest.mark.unit
class TestResolveIcon:
    """Tests for resolve_icon dispatch on the icon kind."""

    @pytest.mark.asyncio
    async def test_text_and_upload_icons_not_applicable(self, icon_store: CacheStore) -> None:
        """Only official icons reach the cache and network."""
        fetcher = FakeFetcher()
        engine = _engine(icon_store, fetcher)

        assert isinstance(await engine.resolve_icon(TextIcon(text="G")), NotApplicable)
        assert isinstance(
            await engine.resolve_icon(UploadIcon(image_data="data:image/png;base64,AA==")),
            NotApplicable,
        )
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_official_icon_tries_captured_favicon_first(
        self, icon_store: CacheStore
    ) -> None:
        """The favicon captured at bookmark time is the first candidate."""
        captured = "https://static.example.com/brand.png"
        fetcher = FakeFetcher({captured: make_png(32, 32)})
        icon = OfficialIcon(url="https://example.com/home", real_favicon_url=captured)

        result = await _engine(icon_store, fetcher).resolve_icon(icon)

        assert isinstance(result, Resolved)
        assert result.url == captured
        assert fetcher.calls == [captured]

    @pytest.mark.asyncio
    async def test_network_mode_selects_url(self, icon_store: CacheStore) -> None:
        """Internal mode resolves the internal URL, which is a private host."""
        fetcher = FakeFetcher()
        icon = OfficialIcon(
            url="https://wiki.example.com",
            internal_url="http://10.0.0.12:8080",
            external_url="https://wiki.example.com",
        )

        result = await _engine(icon_store, fetcher).resolve_icon(icon, NetworkMode.INTERNAL)

        assert isinstance(result, Resolved)
        assert result.is_local_glyph
        assert fetcher.calls == []


@pytest.mark.unit
class TestPreload:
    """Tests for batch preloading."""

    @pytest.mark.asyncio
    async def test_preload_keeps_order_and_isolates_failures(
        self, icon_store: CacheStore
    ) -> None:
        """An unexpected error for one target does not abort the batch."""
        fetcher = FakeFetcher(
            {
                "https://good.test/favicon.ico": make_png(32, 32),
                "https://broken.test/favicon.ico": RuntimeError("boom"),
            }
        )
        engine = _engine(icon_store, fetcher, CandidateResolver(["site"]))
        targets = [
            IconTarget(domain="good.test"),
            IconTarget(domain="broken.test"),
            IconTarget(domain="router.lan"),
        ]

        results = await engine.preload(targets, concurrency=2)

        assert len(results) == 3
        assert isinstance(results[0], Resolved)
        assert isinstance(results[1], ExhaustedAllCandidates)
        assert isinstance(results[2], Resolved)
        assert results[2].is_local_glyph
        assert icon_store.contains("icon:good.test:32")
