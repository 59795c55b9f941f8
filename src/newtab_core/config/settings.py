"""Application settings using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from newtab_core.constants import (
    BYTES_PER_MB,
    DEFAULT_ICON_MAX_BYTES,
    DEFAULT_ICON_PROVIDERS,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    MS_PER_DAY,
    MS_PER_MINUTE,
    RANDOM_WALLPAPER_API_URL,
    UNSPLASH_API_URL,
    UNSPLASH_MAX_PER_PAGE,
)
from newtab_core.models.cache import CacheConfig
from newtab_core.models.icon import ProviderHint

_PROBED_PROVIDERS = {ProviderHint.SITE, ProviderHint.DUCKDUCKGO, ProviderHint.GOOGLE}


class Settings(BaseSettings):
    """Central configuration for the new-tab asset layer."""

    model_config = SettingsConfigDict(env_prefix="NT_", env_file=".env")

    # --- Logging ---
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: Literal["console", "json"] = Field(
        default="console", description="Log renderer"
    )

    # --- Key-value backend ---
    kv_backend: Literal["memory", "disk", "redis", "db"] = Field(
        default="disk",
        description="Persistence backend: 'disk' (diskcache), 'redis', 'db' (SQLAlchemy), 'memory'",
    )
    cache_dir: Path = Field(
        default=Path("./.cache/newtab"),
        description="Directory for the diskcache backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the redis backend",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./newtab_cache.db",
        description="SQLAlchemy URL for the db backend",
    )

    # --- Wallpaper image cache ---
    image_cache_max_size_mb: int = Field(default=50, gt=0, description="Image cache budget")
    image_cache_max_count: int = Field(default=100, ge=1, description="Max cached images")
    image_cache_max_age_days: int = Field(default=7, gt=0, description="Image expiry")

    # --- Icon cache ---
    icon_cache_max_size_mb: int = Field(default=5, gt=0, description="Icon cache budget")
    icon_cache_max_count: int = Field(default=200, ge=1, description="Max cached icons")
    icon_cache_max_age_days: int = Field(default=7, gt=0, description="Icon expiry")

    cache_cleanup_interval_minutes: int = Field(
        default=60, gt=0, description="Background expiry sweep period"
    )

    # --- Icon probing ---
    icon_default_size: int = Field(default=32, ge=8, le=256, description="Icon edge in px")
    icon_providers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ICON_PROVIDERS),
        description="Enabled favicon providers in priority order",
    )
    probe_timeout_seconds: float = Field(
        default=DEFAULT_PROBE_TIMEOUT_SECONDS,
        gt=0,
        description="Deadline per icon candidate",
    )
    icon_max_bytes: int = Field(
        default=DEFAULT_ICON_MAX_BYTES, gt=0, description="Largest accepted icon payload"
    )

    # --- Photo catalog ---
    catalog_provider: Literal["unsplash", "random"] = Field(
        default="unsplash", description="Photo catalog backing browse and search"
    )
    unsplash_access_key: SecretStr | None = Field(
        default=None,
        description="Unsplash access key (Client-ID)",
    )
    unsplash_api_url: str = Field(default=UNSPLASH_API_URL, description="Catalog base URL")
    unsplash_per_page: int = Field(
        default=20, ge=1, le=UNSPLASH_MAX_PER_PAGE, description="Photos per listing page"
    )
    unsplash_image_quality: Literal["raw", "full", "regular", "small", "thumb"] = Field(
        default="regular", description="Image size variant to download"
    )
    random_wallpaper_secret: SecretStr | None = Field(
        default=None, description="Secret header for the random wallpaper API"
    )
    random_wallpaper_api_url: str = Field(
        default=RANDOM_WALLPAPER_API_URL, description="Random wallpaper API base URL"
    )
    random_wallpaper_theme: Literal["all", "day", "night"] = Field(
        default="all", description="Day/night filter for random wallpapers"
    )
    catalog_timeout_seconds: float = Field(default=15.0, gt=0, description="Catalog timeout")
    catalog_retry_max: int = Field(
        default=3, ge=1, description="Attempts per catalog request on transport errors"
    )
    image_download_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Deadline for one wallpaper download"
    )

    @model_validator(mode="after")
    def validate_icon_providers(self) -> Settings:
        """Reject an empty or unknown provider list and normalize names."""
        if not self.icon_providers:
            msg = "icon_providers must name at least one provider"
            raise ValueError(msg)
        normalized = [p.strip().lower() for p in self.icon_providers]
        unknown = [p for p in normalized if p not in _PROBED_PROVIDERS]
        if unknown:
            msg = f"Unknown icon providers: {', '.join(unknown)}"
            raise ValueError(msg)
        self.icon_providers = list(dict.fromkeys(normalized))
        return self

    def image_cache_config(self) -> CacheConfig:
        """Bounds for the wallpaper image cache."""
        return CacheConfig(
            max_size_bytes=self.image_cache_max_size_mb * BYTES_PER_MB,
            max_count=self.image_cache_max_count,
            max_age_ms=self.image_cache_max_age_days * MS_PER_DAY,
            cleanup_interval_ms=self.cache_cleanup_interval_minutes * MS_PER_MINUTE,
        )

    def icon_cache_config(self) -> CacheConfig:
        """Bounds for the favicon cache."""
        return CacheConfig(
            max_size_bytes=self.icon_cache_max_size_mb * BYTES_PER_MB,
            max_count=self.icon_cache_max_count,
            max_age_ms=self.icon_cache_max_age_days * MS_PER_DAY,
            cleanup_interval_ms=self.cache_cleanup_interval_minutes * MS_PER_MINUTE,
        )
