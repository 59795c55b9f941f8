"""Cache entry, configuration, and statistics models."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from newtab_core.constants import (
    DEFAULT_CACHE_CLEANUP_INTERVAL_MS,
    DEFAULT_CACHE_MAX_AGE_MS,
    DEFAULT_CACHE_MAX_COUNT,
    DEFAULT_CACHE_MAX_SIZE_BYTES,
)


class CacheConfig(BaseModel):
    """Bounds enforced by a CacheStore. Replace, never mutate in place."""

    model_config = ConfigDict(frozen=True)

    max_size_bytes: int = Field(
        default=DEFAULT_CACHE_MAX_SIZE_BYTES, gt=0, description="Total payload budget"
    )
    max_count: int = Field(
        default=DEFAULT_CACHE_MAX_COUNT, ge=1, description="Maximum number of entries"
    )
    max_age_ms: int = Field(
        default=DEFAULT_CACHE_MAX_AGE_MS, gt=0, description="Age after which entries expire"
    )
    cleanup_interval_ms: int = Field(
        default=DEFAULT_CACHE_CLEANUP_INTERVAL_MS,
        gt=0,
        description="Period of the background expiry sweep",
    )


class CacheStats(BaseModel):
    """Point-in-time statistics derived from the entry set."""

    total_size_bytes: int = Field(description="Sum of payload sizes")
    total_count: int = Field(description="Number of live entries")
    max_size_bytes: int = Field(description="Configured size budget")
    hit_rate: float = Field(ge=0.0, le=1.0, description="Hits / (hits + misses) for get")


@dataclass
class CacheEntry:
    """A cached binary payload. Timestamps are epoch milliseconds."""

    key: str
    payload: bytes
    cached_at: int
    last_accessed_at: int
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def size_bytes(self) -> int:
        """Payload size, always equal to len(payload)."""
        return len(self.payload)

    def to_record(self) -> CacheRecord:
        """Convert to the persisted record shape."""
        return CacheRecord(
            key=self.key,
            payload_base64=base64.b64encode(self.payload).decode("ascii"),
            size_bytes=self.size_bytes,
            cached_at=self.cached_at,
            last_accessed_at=self.last_accessed_at,
            metadata=dict(self.metadata),
        )


class CacheRecord(BaseModel):
    """Persisted shape of a CacheEntry; the payload travels as base64."""

    key: str
    payload_base64: str
    size_bytes: int = Field(ge=0)
    cached_at: int
    last_accessed_at: int
    metadata: dict[str, str] = Field(default_factory=dict)

    def to_entry(self) -> CacheEntry:
        """Decode back into an in-memory entry.

        Raises ValueError when the payload is not valid base64 or its decoded
        length disagrees with ``size_bytes``.
        """
        try:
            payload = base64.b64decode(self.payload_base64, validate=True)
        except binascii.Error as e:
            msg = f"Invalid base64 payload for {self.key!r}"
            raise ValueError(msg) from e
        if len(payload) != self.size_bytes:
            msg = f"Size mismatch for {self.key!r}: {len(payload)} != {self.size_bytes}"
            raise ValueError(msg)
        return CacheEntry(
            key=self.key,
            payload=payload,
            cached_at=self.cached_at,
            last_accessed_at=self.last_accessed_at,
            metadata=dict(self.metadata),
        )


class CacheCounters(BaseModel):
    """Persisted stats record: derived totals plus the hit/miss counters."""

    total_size_bytes: int = 0
    total_count: int = 0
    max_size_bytes: int = 0
    hit_rate: float = 0.0
    hits: int = Field(default=0, ge=0)
    misses: int = Field(default=0, ge=0)
