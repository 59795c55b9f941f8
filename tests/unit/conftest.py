"""Shared pytest fixtures for unit tests."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Generator

import pytest

from newtab_core.config.settings import Settings
from newtab_core.constants import ICON_CACHE_NAMESPACE
from newtab_infra.cache.cache_store import CacheStore
from newtab_infra.kv.memory_store import InMemoryKeyValueStore
from tests.mocks.mock_factories import make_cache_config
from tests.mocks.mock_settings import make_settings
from tests.mocks.mock_tools import ManualClock


@pytest.fixture
def settings() -> Settings:
    """Return a real Settings on the in-memory backend."""
    return make_settings()


@pytest.fixture
def clock() -> ManualClock:
    """Return a manually advanced millisecond clock."""
    return ManualClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    """Return an empty in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
async def cache_store(
    kv_store: InMemoryKeyValueStore, clock: ManualClock
) -> AsyncGenerator[CacheStore, None]:
    """Return a loaded CacheStore with small bounds (1000 bytes, 10 entries)."""
    store = CacheStore(kv_store, make_cache_config(), clock=clock)
    await store.load()
    yield store
    await store.close()


@pytest.fixture
async def icon_store(
    kv_store: InMemoryKeyValueStore, clock: ManualClock
) -> AsyncGenerator[CacheStore, None]:
    """Return a loaded icon-namespaced CacheStore."""
    config = make_cache_config(max_size_bytes=1_000_000, max_count=50)
    store = CacheStore(kv_store, config, namespace=ICON_CACHE_NAMESPACE, clock=clock)
    await store.load()
    yield store
    await store.close()


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Restore root logger handlers replaced by configure_logging()."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.level = original_level
