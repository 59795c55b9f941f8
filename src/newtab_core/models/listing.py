"""Remote catalog items and listing session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from newtab_core.constants import DEFAULT_CATEGORY


class PhotoUser(BaseModel):
    """Photographer attribution."""

    id: str = ""
    username: str = ""
    name: str = ""
    profile_url: str = Field(default="", description="Photographer profile page")


class Photo(BaseModel):
    """A catalog photo, reduced to the fields the extension uses."""

    id: str = Field(description="Catalog photo identifier")
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    color: str | None = Field(default=None, description="Dominant colour, used as placeholder")
    description: str | None = None
    alt_description: str | None = None
    urls: dict[str, str] = Field(default_factory=dict, description="Quality name -> URL")
    html_url: str = Field(default="", description="Photo page on the catalog site")
    download_location: str | None = Field(
        default=None, description="Endpoint that must be hit when the photo is used"
    )
    user: PhotoUser = Field(default_factory=PhotoUser)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Photo:
        """Build from a raw Unsplash API photo object."""
        links = data.get("links") or {}
        user = data.get("user") or {}
        user_links = user.get("links") or {}
        return cls(
            id=str(data.get("id", "")),
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            color=data.get("color"),
            description=data.get("description"),
            alt_description=data.get("alt_description"),
            urls={k: v for k, v in (data.get("urls") or {}).items() if isinstance(v, str)},
            html_url=links.get("html", ""),
            download_location=links.get("download_location"),
            user=PhotoUser(
                id=str(user.get("id", "")),
                username=user.get("username", "") or "",
                name=user.get("name", "") or "",
                profile_url=user_links.get("html", "") or "",
            ),
        )

    @classmethod
    def from_random_wallpaper(cls, data: dict[str, Any]) -> Photo:
        """Build from a random wallpaper API object.

        The full image serves every large quality and the overview serves
        the small ones, so quality lookups work as they do for Unsplash.
        """
        full = data.get("url") or ""
        overview = data.get("overviewUrl") or full
        urls = {
            "raw": full,
            "full": full,
            "regular": full,
            "small": overview,
            "thumb": overview,
            "blur": data.get("blurUrl") or "",
        }
        keywords = (data.get("keyword") or "").strip()
        return cls(
            id=str(data.get("udId", "")),
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            description=keywords or None,
            alt_description=keywords or None,
            urls={k: v for k, v in urls.items() if v},
        )


class SearchPage(BaseModel):
    """One page of search results."""

    results: list[Photo] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    total_pages: int = Field(default=0, ge=0)


class ListingState(StrEnum):
    """Per-session fetch state."""

    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"


class CancellationToken:
    """Marks one fetch's eventual result as wanted or stale."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        """Create a live token."""
        self._cancelled = False

    def cancel(self) -> None:
        """Mark the fetch as superseded."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        """Whether the result must be discarded."""
        return self._cancelled


@dataclass
class ListingSession:
    """Mutable state of one paginated listing, owned by a FetchOrchestrator."""

    category_key: str = DEFAULT_CATEGORY
    query: str | None = None
    page: int = 1
    total_pages: int = 1
    items: list[Photo] = field(default_factory=list)
    has_more: bool = True
    state: ListingState = ListingState.IDLE
    error: str | None = None
    in_flight_token: CancellationToken | None = None

    @property
    def context(self) -> tuple[str | None, str]:
        """The (query, category) pair that scopes this listing."""
        return (self.query, self.category_key)

    def reset(self, query: str | None, category_key: str) -> None:
        """Start over for a new context."""
        self.query = query
        self.category_key = category_key
        self.page = 1
        self.total_pages = 1
        self.items = []
        self.has_more = True
        self.state = ListingState.IDLE
        self.error = None
        self.in_flight_token = None
