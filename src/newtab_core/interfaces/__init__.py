"""Public interface re-exports for newtab_core."""

from newtab_core.interfaces.catalog import PhotoCatalog
from newtab_core.interfaces.fetcher import ByteFetcher
from newtab_core.interfaces.kv_store import KeyValueStore

__all__ = [
    "ByteFetcher",
    "KeyValueStore",
    "PhotoCatalog",
]
