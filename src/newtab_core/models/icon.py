"""Icon targets, candidate sources, probe outcomes, and resolution results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from newtab_core.constants import INTERNAL_ICON_SENTINEL


class ProviderHint(StrEnum):
    """Where a candidate URL comes from, in descending trust."""

    KNOWN = "known"  # captured from the browser tab or page <link rel=icon>
    SITE = "site"  # served by the bookmarked site itself
    DUCKDUCKGO = "duckduckgo"
    GOOGLE = "google"
    INTERNAL = "internal"  # fixed local glyph, never fetched


class NetworkMode(StrEnum):
    """Which of a bookmark's URLs is reachable from the current network."""

    AUTO = "auto"
    INTERNAL = "internal"
    EXTERNAL = "external"


class IconTarget(BaseModel):
    """Identity of an icon to resolve: a host plus the desired pixel size."""

    domain: str = Field(description="Hostname without scheme or path")
    protocol: str = Field(default="https", description="Scheme used for site-hosted icons")
    size: int = Field(default=32, ge=1, description="Requested edge length in pixels")
    known_icon_url: str | None = Field(
        default=None, description="Favicon URL already captured from the page, if any"
    )


class OfficialIcon(BaseModel):
    """Use the site's own favicon, resolved through the fallback chain."""

    kind: Literal["official"] = "official"
    url: str = Field(description="Bookmark URL")
    internal_url: str | None = Field(default=None, description="URL on the private network")
    external_url: str | None = Field(default=None, description="URL on the public network")
    real_favicon_url: str | None = Field(
        default=None, description="Favicon captured when the bookmark was created"
    )

    def active_url(self, network_mode: NetworkMode) -> str:
        """Pick the URL reachable under the given network mode."""
        if network_mode == NetworkMode.INTERNAL and self.internal_url:
            return self.internal_url
        if network_mode == NetworkMode.EXTERNAL and self.external_url:
            return self.external_url
        return self.url


class TextIcon(BaseModel):
    """Render text on a coloured tile; no network involved."""

    kind: Literal["text"] = "text"
    text: str
    text_color: str = "#ffffff"
    background_color: str = "#3b82f6"


class UploadIcon(BaseModel):
    """User-uploaded image data; no network involved."""

    kind: Literal["upload"] = "upload"
    image_data: str = Field(description="Data URL or base64 image")


BookmarkIcon = Annotated[OfficialIcon | TextIcon | UploadIcon, Field(discriminator="kind")]


@dataclass(frozen=True)
class IconCandidate:
    """One URL to try for a target, with the size it was requested at."""

    url: str
    provider: ProviderHint
    requested_size: int

    @property
    def is_local_glyph(self) -> bool:
        """True for the sentinel that means 'draw a fixed local glyph'."""
        return self.provider == ProviderHint.INTERNAL


class ProbeFailureKind(StrEnum):
    """Why a single candidate was not accepted."""

    TIMEOUT = "timeout"
    FETCH_ERROR = "fetch_error"
    NOT_AN_IMAGE = "not_an_image"
    REJECTED_QUALITY = "rejected_quality"


@dataclass(frozen=True)
class ProbeSuccess:
    """A candidate that fetched, decoded, and passed the quality filter."""

    candidate: IconCandidate
    width: int
    height: int
    payload: bytes


@dataclass(frozen=True)
class ProbeFailure:
    """A candidate that was skipped, with the reason."""

    candidate: IconCandidate
    kind: ProbeFailureKind
    detail: str = ""


ProbeOutcome = ProbeSuccess | ProbeFailure


@dataclass(frozen=True)
class Resolved:
    """A usable icon was found."""

    url: str
    from_cache: bool
    payload: bytes | None = None

    @property
    def is_local_glyph(self) -> bool:
        """True when the caller should draw the fixed internal-network glyph."""
        return self.url == INTERNAL_ICON_SENTINEL


@dataclass(frozen=True)
class ExhaustedAllCandidates:
    """Every candidate failed; the caller shows a synthesized glyph."""

    failures: tuple[ProbeFailure, ...] = ()


@dataclass(frozen=True)
class NotApplicable:
    """The icon kind has no remote source to resolve."""


ResolutionResult = Resolved | ExhaustedAllCandidates | NotApplicable
