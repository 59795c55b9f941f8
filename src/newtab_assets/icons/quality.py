"""Placeholder detection and quality scoring for decoded icons."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from newtab_core.constants import MIN_ICON_DIMENSION
from newtab_core.models.icon import IconCandidate, ProviderHint

# Google serves a 16x16 globe for unknown hosts at any requested size
GOOGLE_PLACEHOLDER_SIZE = 16
# DuckDuckGo's ip3 endpoint answers unknown hosts with a tiny stub image
DUCKDUCKGO_MIN_DIMENSION = 16

Recommendation = Literal["good", "acceptable", "poor"]


@dataclass(frozen=True)
class QualityReport:
    """Score from 0 to 100 for a decoded icon."""

    score: int
    width: int
    height: int
    recommendation: Recommendation


def rejection_reason(candidate: IconCandidate, width: int, height: int) -> str | None:
    """Return why a decoded image is a placeholder, or None if it is usable."""
    if width < MIN_ICON_DIMENSION or height < MIN_ICON_DIMENSION:
        return f"{width}x{height} is below {MIN_ICON_DIMENSION}x{MIN_ICON_DIMENSION}"

    if candidate.provider == ProviderHint.GOOGLE:
        if (
            candidate.requested_size > GOOGLE_PLACEHOLDER_SIZE
            and width == GOOGLE_PLACEHOLDER_SIZE
            and height == GOOGLE_PLACEHOLDER_SIZE
        ):
            return f"16x16 generic icon for a {candidate.requested_size}px request"
    elif candidate.provider == ProviderHint.DUCKDUCKGO:
        if width < DUCKDUCKGO_MIN_DIMENSION or height < DUCKDUCKGO_MIN_DIMENSION:
            return f"{width}x{height} is below the DuckDuckGo minimum"
    return None


def score_icon(width: int, height: int) -> QualityReport:
    """Score an icon by edge length and squareness."""
    if width <= 1 or height <= 1:
        return QualityReport(score=0, width=width, height=height, recommendation="poor")

    score = 50
    if width >= 32 and height >= 32:
        score += 30
    elif width >= 16 and height >= 16:
        score += 20
    else:
        score += 10

    aspect = width / height
    score += 20 if 0.8 <= aspect <= 1.2 else 10
    score = max(0, min(100, score))

    recommendation: Recommendation
    if score >= 80:
        recommendation = "good"
    elif score >= 60:
        recommendation = "acceptable"
    else:
        recommendation = "poor"
    return QualityReport(score=score, width=width, height=height, recommendation=recommendation)
