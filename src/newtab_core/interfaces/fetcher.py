"""Abstract byte-fetch primitive used for icon and image downloads."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ByteFetcher(Protocol):
    """Fetch a URL's body with a bounded deadline."""

    async def fetch(self, url: str, timeout: float) -> bytes:
        """Return the response body.

        Raises ``CandidateTimeoutError`` when the deadline passes and
        ``CandidateFetchError`` for any other failure.
        """
        ...
