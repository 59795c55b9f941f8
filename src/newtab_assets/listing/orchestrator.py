"""Paginated photo listing with supersession and load-more coalescing."""

from __future__ import annotations

import asyncio
import contextlib

import structlog

from newtab_core.constants import DEFAULT_CATEGORY
from newtab_core.exceptions import ListingFetchError
from newtab_core.interfaces.catalog import PhotoCatalog
from newtab_core.models.listing import (
    CancellationToken,
    ListingSession,
    ListingState,
    Photo,
)

logger = structlog.get_logger()


def _normalize_query(query: str | None) -> str | None:
    if query is None:
        return None
    return query.strip() or None


class FetchOrchestrator:
    """Owns one ListingSession and every fetch made for it.

    At most one page fetch is in flight per session. Changing the context
    invalidates the in-flight token and cancels its task; the token is
    checked again when the fetch completes, so a late result is never
    applied to the new context.
    """

    def __init__(
        self,
        catalog: PhotoCatalog,
        per_page: int = 20,
        category_key: str = DEFAULT_CATEGORY,
    ) -> None:
        """Initialize with a catalog and page size; nothing is fetched yet."""
        self._catalog = catalog
        self._per_page = per_page
        self._session = ListingSession(category_key=category_key)
        self._task: asyncio.Task[tuple[list[Photo], int]] | None = None
        self._started = False

    @property
    def session(self) -> ListingSession:
        return self._session

    @property
    def is_fetching(self) -> bool:
        return self._session.in_flight_token is not None

    async def set_context(self, query: str | None, category_key: str) -> None:
        """Switch to a new query/category and fetch its first page.

        Calling with the current context after the first fetch is a no-op.

        Raises:
            ListingFetchError: the first page of the new context failed.
        """
        query = _normalize_query(query)
        if self._started and (query, category_key) == self._session.context:
            return
        self._cancel_in_flight()
        self._session.reset(query, category_key)
        self._started = True
        logger.debug("listing_context_changed", query=query, category=category_key)
        await self._fetch_page()

    async def search(self, query: str) -> None:
        """Search within the current category."""
        await self.set_context(query, self._session.category_key)

    async def set_category(self, category_key: str) -> None:
        """Browse a category; any active search query is cleared."""
        await self.set_context(None, category_key)

    async def load_more(self) -> bool:
        """Fetch the next page. Returns whether a fetch was issued.

        No-op while another fetch is in flight or when nothing is left.
        """
        if not self._session.has_more or self.is_fetching:
            return False
        self._started = True
        await self._fetch_page()
        return True

    async def retry(self) -> bool:
        """Re-issue the page that failed. No-op unless the session is in error."""
        if self._session.state != ListingState.ERROR or self.is_fetching:
            return False
        logger.info("listing_retry", page=self._session.page)
        await self._fetch_page()
        return True

    def detach(self) -> None:
        """Cancel any in-flight fetch and drop the session state."""
        self._cancel_in_flight()
        self._session = ListingSession(category_key=self._session.category_key)
        self._started = False

    def _cancel_in_flight(self) -> None:
        token = self._session.in_flight_token
        if token is not None:
            token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _fetch_page(self) -> None:
        session = self._session
        token = CancellationToken()
        session.in_flight_token = token
        session.state = ListingState.FETCHING
        session.error = None
        query, category_key, page = session.query, session.category_key, session.page

        task = asyncio.create_task(self._call_catalog(query, category_key, page))
        self._task = task
        try:
            results, total_pages = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if token.cancelled and (current is None or not current.cancelling()):
                logger.debug(
                    "listing_fetch_cancelled", query=query, category=category_key, page=page
                )
                return
            if session.in_flight_token is token:
                # The caller gave up; leave the page retryable
                session.in_flight_token = None
                session.state = ListingState.ERROR
                session.error = "cancelled"
                logger.debug(
                    "listing_fetch_abandoned", query=query, category=category_key, page=page
                )
            raise
        except Exception as e:
            if token.cancelled:
                logger.debug(
                    "listing_result_discarded", query=query, category=category_key, page=page
                )
                return
            session.state = ListingState.ERROR
            session.error = str(e)
            session.in_flight_token = None
            logger.warning(
                "listing_fetch_failed",
                query=query,
                category=category_key,
                page=page,
                error=str(e),
            )
            raise ListingFetchError(f"Could not load page {page}: {e}") from e
        finally:
            if self._task is task:
                self._task = None

        if token.cancelled:
            logger.debug(
                "listing_result_discarded", query=query, category=category_key, page=page
            )
            return

        session.items.extend(results)
        session.total_pages = total_pages
        session.has_more = page < total_pages and bool(results)
        session.page = page + 1
        session.state = ListingState.IDLE
        session.in_flight_token = None
        logger.info(
            "listing_page_loaded",
            query=query,
            category=category_key,
            page=page,
            count=len(results),
            total_items=len(session.items),
            has_more=session.has_more,
        )

    async def _call_catalog(
        self, query: str | None, category_key: str, page: int
    ) -> tuple[list[Photo], int]:
        """Fetch one page; returns the photos and the total page count."""
        if query:
            result = await self._catalog.search(query, page, self._per_page)
            return result.results, result.total_pages
        photos = await self._catalog.list_by_category(category_key, page, self._per_page)
        # Category listings report no total; keep paging while pages come back
        total_pages = max(page + 1, self._session.total_pages) if photos else page
        return photos, total_pages

    async def aclose(self) -> None:
        """Detach and wait for a cancelled task to finish unwinding."""
        task = self._task
        self.detach()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
