"""Tests for cache, icon, and listing models."""

from __future__ import annotations

import base64

import pytest
from pydantic import TypeAdapter, ValidationError

from newtab_core.constants import INTERNAL_ICON_SENTINEL
from newtab_core.models.cache import CacheConfig, CacheEntry, CacheRecord
from newtab_core.models.icon import (
    BookmarkIcon,
    NetworkMode,
    OfficialIcon,
    Resolved,
    TextIcon,
)
from newtab_core.models.listing import (
    CancellationToken,
    ListingSession,
    ListingState,
    Photo,
)
from tests.mocks.mock_factories import make_photo, make_photo_payload, make_random_wallpaper_payload


@pytest.mark.unit
class TestCacheModels:
    """Test cache entry records and config validation."""

    def test_record_roundtrip_preserves_payload(self) -> None:
        """Entries survive conversion to the persisted record and back."""
        entry = CacheEntry("k", b"\x00\x01binary", 10, 20, {"source_url": "https://x"})
        record = entry.to_record()
        assert record.size_bytes == 8
        assert record.to_entry() == entry

    def test_record_size_mismatch(self) -> None:
        """A record whose size disagrees with its payload is rejected."""
        record = CacheRecord(
            key="k",
            payload_base64=base64.b64encode(b"abc").decode(),
            size_bytes=4,
            cached_at=0,
            last_accessed_at=0,
        )
        with pytest.raises(ValueError, match="Size mismatch"):
            record.to_entry()

    def test_record_bad_base64(self) -> None:
        """Corrupt base64 is rejected."""
        record = CacheRecord(
            key="k", payload_base64="!!!", size_bytes=0, cached_at=0, last_accessed_at=0
        )
        with pytest.raises(ValueError, match="Invalid base64"):
            record.to_entry()

    def test_config_is_frozen(self) -> None:
        """CacheConfig is replaced, never mutated."""
        config = CacheConfig()
        with pytest.raises(ValidationError):
            config.max_count = 5  # type: ignore[misc]

    def test_config_rejects_non_positive_bounds(self) -> None:
        """Zero bounds are invalid."""
        with pytest.raises(ValidationError):
            CacheConfig(max_size_bytes=0)


@pytest.mark.unit
class TestIconModels:
    """Test bookmark icon variants."""

    def test_discriminated_union(self) -> None:
        """The kind field selects the icon model."""
        adapter: TypeAdapter[BookmarkIcon] = TypeAdapter(BookmarkIcon)
        icon = adapter.validate_python({"kind": "text", "text": "GH"})
        assert isinstance(icon, TextIcon)
        official = adapter.validate_python({"kind": "official", "url": "https://a.test"})
        assert isinstance(official, OfficialIcon)

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (NetworkMode.AUTO, "https://nas.example.com"),
            (NetworkMode.INTERNAL, "http://192.168.1.5"),
            (NetworkMode.EXTERNAL, "https://nas.example.com:8443"),
        ],
    )
    def test_active_url(self, mode: NetworkMode, expected: str) -> None:
        """The network mode picks the reachable URL."""
        icon = OfficialIcon(
            url="https://nas.example.com",
            internal_url="http://192.168.1.5",
            external_url="https://nas.example.com:8443",
        )
        assert icon.active_url(mode) == expected

    def test_active_url_falls_back(self) -> None:
        """Without an internal URL, internal mode uses the main URL."""
        icon = OfficialIcon(url="https://a.test")
        assert icon.active_url(NetworkMode.INTERNAL) == "https://a.test"

    def test_resolved_local_glyph(self) -> None:
        """Only the sentinel URL means a local glyph."""
        assert Resolved(INTERNAL_ICON_SENTINEL, from_cache=False).is_local_glyph
        assert not Resolved("https://a.test/favicon.ico", from_cache=True).is_local_glyph


@pytest.mark.unit
class TestListingModels:
    """Test photo parsing and session state."""

    def test_photo_from_api(self) -> None:
        """Raw API objects are flattened."""
        photo = Photo.from_api(make_photo_payload("abc"))
        assert photo.id == "abc"
        assert photo.html_url == "https://unsplash.com/photos/abc"
        assert photo.user.username == "photographer"
        assert photo.user.profile_url == "https://unsplash.com/@photographer"
        assert set(photo.urls) == {"raw", "full", "regular", "small", "thumb"}

    def test_photo_from_sparse_api(self) -> None:
        """Missing optional fields default."""
        photo = Photo.from_api({"id": 7, "user": None, "urls": {"regular": "u", "bad": None}})
        assert photo.id == "7"
        assert photo.urls == {"regular": "u"}
        assert photo.user.name == ""
        assert photo.download_location is None

    def test_photo_from_random_wallpaper(self) -> None:
        """Random wallpapers map onto the same quality names."""
        photo = Photo.from_random_wallpaper(make_random_wallpaper_payload(42, overviewUrl=""))
        assert photo.id == "42"
        assert photo.alt_description == "lake, mountain"
        assert photo.urls["regular"] == "https://walls.test/42.jpg"
        assert photo.urls["thumb"] == "https://walls.test/42.jpg"
        assert photo.urls["blur"] == "https://walls.test/42_blur.jpg"
        assert photo.user.name == ""

    def test_session_reset(self) -> None:
        """reset returns the session to page 1 of the new context."""
        session = ListingSession(category_key="nature")
        session.items = [make_photo("p1")]
        session.page = 4
        session.has_more = False
        session.state = ListingState.ERROR
        session.error = "boom"
        session.in_flight_token = CancellationToken()

        session.reset("cats", "all")

        assert session.context == ("cats", "all")
        assert session.items == []
        assert session.page == 1
        assert session.has_more is True
        assert session.state == ListingState.IDLE
        assert session.error is None
        assert session.in_flight_token is None

    def test_cancellation_token(self) -> None:
        """Tokens start live and stay cancelled."""
        token = CancellationToken()
        assert token.cancelled is False
        token.cancel()
        assert token.cancelled is True
