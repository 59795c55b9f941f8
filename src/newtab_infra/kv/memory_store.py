"""In-process implementation of KeyValueStore."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any


class InMemoryKeyValueStore:
    """Dict-backed store for tests and ephemeral runs.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        """Initialize an empty region."""
        self._data: dict[str, Any] = {}

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return stored values for the keys that exist."""
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    async def set(self, items: Mapping[str, Any]) -> None:
        """Store every pair."""
        for key, value in items.items():
            self._data[key] = copy.deepcopy(value)

    async def delete(self, keys: Iterable[str]) -> None:
        """Remove keys; missing keys are ignored."""
        for key in keys:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
