"""Custom exception hierarchy for the new-tab asset layer."""

from __future__ import annotations


class NewTabError(Exception):
    """Base exception for all new-tab asset errors."""


class CapacityExceededError(NewTabError):
    """Raised when a single payload is larger than the cache's max size."""

    def __init__(self, key: str, size_bytes: int, max_size_bytes: int) -> None:
        """Record the offending key and sizes."""
        self.key = key
        self.size_bytes = size_bytes
        self.max_size_bytes = max_size_bytes
        super().__init__(
            f"Payload for {key!r} is {size_bytes} bytes, "
            f"cache limit is {max_size_bytes} bytes"
        )


class PersistenceWriteError(NewTabError):
    """Raised by a key-value backend when a write or delete fails."""


class PersistenceReadError(NewTabError):
    """Raised by a key-value backend when a read fails."""


class CandidateProbeError(NewTabError):
    """Base class for soft failures while probing one icon candidate."""


class CandidateTimeoutError(CandidateProbeError):
    """Raised when a candidate did not answer within its deadline."""


class CandidateFetchError(CandidateProbeError):
    """Raised when a candidate answered with an error or unusable body."""


class CatalogRequestError(NewTabError):
    """Raised when the remote photo catalog rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Keep the HTTP status code when there is one."""
        self.status_code = status_code
        super().__init__(message)


class ListingFetchError(NewTabError):
    """Raised when a listing page could not be loaded; the session stays usable."""


class ImageDownloadError(NewTabError):
    """Raised when a wallpaper image could not be downloaded or decoded."""
