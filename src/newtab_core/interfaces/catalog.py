"""Abstract remote photo catalog interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from newtab_core.models.listing import Photo, SearchPage


@runtime_checkable
class PhotoCatalog(Protocol):
    """Paginated, searchable remote photo listing."""

    async def search(self, query: str, page: int, per_page: int) -> SearchPage:
        """Search photos by keyword."""
        ...

    async def list_by_category(self, category_key: str, page: int, per_page: int) -> list[Photo]:
        """List photos of a predefined category."""
        ...

    def get_download_url(self, photo: Photo, quality: str | None = None) -> str:
        """Return the image URL for the requested quality."""
        ...

    async def track_download(self, photo: Photo) -> None:
        """Report usage of a photo; failures are ignored."""
        ...
