"""Fetch-and-validate one icon candidate."""

from __future__ import annotations

import asyncio
from io import BytesIO

import structlog
from PIL import Image, UnidentifiedImageError

from newtab_core.exceptions import CandidateFetchError, CandidateTimeoutError
from newtab_core.interfaces.fetcher import ByteFetcher
from newtab_core.models.icon import (
    IconCandidate,
    ProbeFailure,
    ProbeFailureKind,
    ProbeOutcome,
    ProbeSuccess,
)

logger = structlog.get_logger()

_SVG_MARKERS = (b"<svg", b"<?xml")


def _decode(payload: bytes) -> tuple[int, int] | None:
    try:
        with Image.open(BytesIO(payload)) as image:
            # Header-only reads accept truncated bodies
            image.load()
            width, height = image.size
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
        SyntaxError,
    ):
        return None
    return width, height


async def decode_dimensions(payload: bytes) -> tuple[int, int] | None:
    """Return ``(width, height)`` if ``payload`` is a raster image Pillow can read.

    ICO files report their largest embedded frame. SVG is not decodable and
    returns None. Decoding runs off the event loop.
    """
    if not payload:
        return None
    head = payload[:256].lstrip()
    if head.startswith(_SVG_MARKERS):
        return None
    return await asyncio.to_thread(_decode, payload)


async def fetch_and_decode(
    fetcher: ByteFetcher, candidate: IconCandidate, timeout: float
) -> ProbeOutcome:
    """Fetch one candidate and decode it; quality is judged by the caller."""
    try:
        payload = await fetcher.fetch(candidate.url, timeout)
    except CandidateTimeoutError as e:
        return ProbeFailure(candidate, ProbeFailureKind.TIMEOUT, str(e))
    except CandidateFetchError as e:
        return ProbeFailure(candidate, ProbeFailureKind.FETCH_ERROR, str(e))

    dimensions = await decode_dimensions(payload)
    if dimensions is None:
        return ProbeFailure(
            candidate,
            ProbeFailureKind.NOT_AN_IMAGE,
            f"{len(payload)} bytes did not decode as an image",
        )
    width, height = dimensions
    return ProbeSuccess(candidate=candidate, width=width, height=height, payload=payload)
