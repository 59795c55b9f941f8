"""Abstract persistent key-value store interface."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Async key-value region holding JSON-compatible values.

    Single region, no transactions. Implementations wrap backend failures
    on ``set``/``delete`` in ``PersistenceWriteError``.
    """

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored values for the keys that exist."""
        ...

    async def set(self, items: Mapping[str, Any]) -> None:
        """Store every key/value pair in ``items``."""
        ...

    async def delete(self, keys: Iterable[str]) -> None:
        """Remove the given keys; missing keys are ignored."""
        ...
