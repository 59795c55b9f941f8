"""Tests for Settings configuration."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from newtab_core.config.settings import Settings
from newtab_core.constants import BYTES_PER_MB, MS_PER_DAY, MS_PER_MINUTE


@pytest.mark.unit
class TestSettings:
    """Test Settings validation and defaults."""

    def test_default_settings(self) -> None:
        """Settings loads without any environment and has sane defaults."""
        with patch.dict(os.environ, {}, clear=True):
            s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.kv_backend == "disk"
        assert s.unsplash_access_key is None
        assert s.icon_providers == ["site", "duckduckgo", "google"]
        assert s.unsplash_per_page == 20
        assert s.probe_timeout_seconds == 3.0

    def test_env_prefix(self) -> None:
        """NT_-prefixed variables populate fields."""
        env = {
            "NT_KV_BACKEND": "redis",
            "NT_UNSPLASH_ACCESS_KEY": "abc",
            "NT_ICON_PROVIDERS": '["Google", "site", "google"]',
        }
        with patch.dict(os.environ, env, clear=True):
            s = Settings(_env_file=None)  # type: ignore[call-arg]
        assert s.kv_backend == "redis"
        assert s.unsplash_access_key is not None
        assert s.unsplash_access_key.get_secret_value() == "abc"
        assert s.icon_providers == ["google", "site"]

    def test_unknown_provider_rejected(self) -> None:
        """Providers outside the probed set fail validation."""
        with pytest.raises(ValidationError, match="Unknown icon providers: bing"):
            Settings(_env_file=None, icon_providers=["site", "bing"])  # type: ignore[call-arg]

    def test_empty_provider_list_rejected(self) -> None:
        """At least one provider is required."""
        with pytest.raises(ValidationError, match="at least one provider"):
            Settings(_env_file=None, icon_providers=[])  # type: ignore[call-arg]

    def test_per_page_capped(self) -> None:
        """unsplash_per_page cannot exceed the API maximum."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, unsplash_per_page=31)  # type: ignore[call-arg]

    def test_cache_configs(self) -> None:
        """Per-cache bounds are converted to bytes and milliseconds."""
        s = Settings(  # type: ignore[call-arg]
            _env_file=None,
            image_cache_max_size_mb=10,
            image_cache_max_count=5,
            icon_cache_max_age_days=2,
            cache_cleanup_interval_minutes=15,
        )
        image = s.image_cache_config()
        icon = s.icon_cache_config()
        assert image.max_size_bytes == 10 * BYTES_PER_MB
        assert image.max_count == 5
        assert image.max_age_ms == 7 * MS_PER_DAY
        assert icon.max_age_ms == 2 * MS_PER_DAY
        assert icon.cleanup_interval_ms == 15 * MS_PER_MINUTE
