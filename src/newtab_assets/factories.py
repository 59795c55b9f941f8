"""Factory functions for building components from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from newtab_core.constants import ICON_CACHE_NAMESPACE, IMAGE_CACHE_NAMESPACE
from newtab_core.interfaces.kv_store import KeyValueStore
from newtab_infra.cache.cache_store import CacheStore

if TYPE_CHECKING:
    from newtab_assets.icons.probe_engine import FallbackProbeEngine
    from newtab_assets.tools.random_wallpaper_client import RandomWallpaperClient
    from newtab_assets.tools.unsplash_client import UnsplashClient
    from newtab_core.config.settings import Settings


async def create_kv_store(settings: Settings) -> KeyValueStore:
    """Create the key-value backend named by ``settings.kv_backend``."""
    if settings.kv_backend == "memory":
        from newtab_infra.kv.memory_store import InMemoryKeyValueStore

        return InMemoryKeyValueStore()

    if settings.kv_backend == "redis":
        from redis.asyncio import Redis

        from newtab_infra.kv.redis_store import RedisKeyValueStore

        return RedisKeyValueStore(Redis.from_url(settings.redis_url))

    if settings.kv_backend == "db":
        from newtab_infra.db.engine import create_engine
        from newtab_infra.db.session import create_session_factory, init_db
        from newtab_infra.kv.db_store import DBKeyValueStore

        engine = create_engine(settings)
        await init_db(engine)
        return DBKeyValueStore(create_session_factory(engine))

    from newtab_infra.kv.disk_store import DiskKeyValueStore

    return DiskKeyValueStore(settings.cache_dir)


def create_cache_store(
    settings: Settings, kv_store: KeyValueStore, namespace: str = IMAGE_CACHE_NAMESPACE
) -> CacheStore:
    """Create a CacheStore with the bounds configured for ``namespace``."""
    if namespace == ICON_CACHE_NAMESPACE:
        config = settings.icon_cache_config()
    else:
        config = settings.image_cache_config()
    return CacheStore(kv_store, config, namespace=namespace)


def create_catalog_client(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> UnsplashClient | RandomWallpaperClient:
    """Create the catalog named by ``settings.catalog_provider``.

    Unsplash requires ``NT_UNSPLASH_ACCESS_KEY``; the random wallpaper
    catalog requires ``NT_RANDOM_WALLPAPER_SECRET``.
    """
    if settings.catalog_provider == "random":
        from newtab_assets.tools.random_wallpaper_client import RandomWallpaperClient

        if settings.random_wallpaper_secret is None:
            msg = "NT_RANDOM_WALLPAPER_SECRET is not set"
            raise ValueError(msg)
        return RandomWallpaperClient(
            secret=settings.random_wallpaper_secret.get_secret_value(),
            base_url=settings.random_wallpaper_api_url,
            client=client,
            theme=settings.random_wallpaper_theme,
            default_quality=settings.unsplash_image_quality,
            timeout=settings.catalog_timeout_seconds,
            max_retries=settings.catalog_retry_max,
        )

    from newtab_assets.tools.unsplash_client import UnsplashClient

    if settings.unsplash_access_key is None:
        msg = "NT_UNSPLASH_ACCESS_KEY is not set"
        raise ValueError(msg)
    return UnsplashClient(
        access_key=settings.unsplash_access_key.get_secret_value(),
        base_url=settings.unsplash_api_url,
        client=client,
        default_quality=settings.unsplash_image_quality,
        timeout=settings.catalog_timeout_seconds,
        max_retries=settings.catalog_retry_max,
    )


def create_probe_engine(
    settings: Settings, icon_store: CacheStore, client: httpx.AsyncClient | None = None
) -> FallbackProbeEngine:
    """Create a probe engine wired to the icon cache and an HTTP fetcher."""
    from newtab_assets.icons.candidates import CandidateResolver
    from newtab_assets.icons.probe_engine import FallbackProbeEngine
    from newtab_assets.tools.http_fetcher import HttpImageFetcher
    from newtab_infra.cache.icon_cache import IconCache

    return FallbackProbeEngine(
        icon_cache=IconCache(icon_store),
        fetcher=HttpImageFetcher(client=client, max_bytes=settings.icon_max_bytes),
        resolver=CandidateResolver(settings.icon_providers),
        probe_timeout=settings.probe_timeout_seconds,
    )
