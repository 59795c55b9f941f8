"""CLI entrypoint using typer."""

from __future__ import annotations

import asyncio

import httpx
import structlog
import typer
from rich.console import Console
from rich.table import Table

from newtab_assets.factories import (
    create_cache_store,
    create_catalog_client,
    create_kv_store,
    create_probe_engine,
)
from newtab_assets.icons.candidates import target_from_url
from newtab_assets.icons.glyph import synthesize_glyph
from newtab_assets.listing.orchestrator import FetchOrchestrator
from newtab_assets.observability import (
    bind_command_context,
    cache_log_context,
    clear_command_context,
    configure_logging,
)
from newtab_assets.tools.http_fetcher import DEFAULT_HEADERS
from newtab_core.config.settings import Settings
from newtab_core.constants import (
    BYTES_PER_MB,
    ICON_CACHE_NAMESPACE,
    IMAGE_CACHE_NAMESPACE,
    LISTING_CATEGORIES,
)
from newtab_core.exceptions import NewTabError
from newtab_core.interfaces.catalog import PhotoCatalog
from newtab_core.models.cache import CacheStats
from newtab_core.models.icon import ExhaustedAllCandidates, ResolutionResult, Resolved
from newtab_core.models.listing import ListingSession
from newtab_infra.cache.cache_store import format_size

app = typer.Typer(
    name="newtab-assets",
    help="Icon resolution, wallpaper listing, and asset cache tools",
)
cache_app = typer.Typer(help="Inspect and clear the asset caches")
app.add_typer(cache_app, name="cache")

console = Console()
logger = structlog.get_logger()

_NAMESPACES = (IMAGE_CACHE_NAMESPACE, ICON_CACHE_NAMESPACE)


def _load_settings(verbose: bool) -> Settings:
    settings = Settings()
    if verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)
    return settings


def _check_namespace(namespace: str) -> None:
    if namespace not in _NAMESPACES:
        console.print(
            f"[red]Error:[/red] unknown namespace {namespace!r} "
            f"(choose from {', '.join(_NAMESPACES)})"
        )
        raise typer.Exit(code=1)


@app.command()
def icon(
    url: str = typer.Argument(..., help="Bookmark URL or bare domain"),
    size: int = typer.Option(32, "--size", help="Requested icon size in pixels"),
    favicon_url: str | None = typer.Option(
        None, "--favicon-url", help="Favicon URL already known for the page"
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Resolve the favicon for a URL through the cache and fallback chain."""
    settings = _load_settings(verbose)
    bind_command_context("icon", url=url)
    try:
        result = asyncio.run(_resolve_icon(settings, url, size, favicon_url))
    finally:
        clear_command_context()

    if isinstance(result, Resolved):
        if result.is_local_glyph:
            console.print("[cyan]Internal host:[/cyan] use the local network glyph")
            return
        source = "cache" if result.from_cache else "network"
        console.print(f"[bold green]Resolved[/bold green] ({source}): {result.url}")
        if result.payload is not None:
            console.print(f"  Size: {format_size(len(result.payload))}")
        return

    label = target_from_url(url).domain
    glyph = synthesize_glyph(label)
    console.print(f"[yellow]No usable icon for {label}[/yellow]")
    if isinstance(result, ExhaustedAllCandidates):
        for failure in result.failures:
            console.print(f"  [dim]{failure.kind}[/dim] {failure.candidate.url}")
    console.print(f"  Placeholder: '{glyph.text}' on {glyph.background_color}")
    raise typer.Exit(code=1)


@app.command()
def browse(
    category: str = typer.Argument("all", help="Category key (see 'categories')"),
    pages: int = typer.Option(1, "--pages", min=1, help="Number of pages to load"),
    download: bool = typer.Option(
        False, "--download", help="Download the first photo into the image cache"
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Browse a photo category."""
    if category not in LISTING_CATEGORIES:
        console.print(f"[red]Error:[/red] unknown category {category!r}")
        raise typer.Exit(code=1)
    settings = _load_settings(verbose)
    bind_command_context("browse", category=category)
    try:
        session = asyncio.run(_run_listing(settings, None, category, pages, download))
    except (NewTabError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        clear_command_context()
    _print_session(session)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search keywords"),
    pages: int = typer.Option(1, "--pages", min=1, help="Number of pages to load"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
) -> None:
    """Search photos by keyword."""
    settings = _load_settings(verbose)
    bind_command_context("search", query=query)
    try:
        session = asyncio.run(_run_listing(settings, query, "all", pages, False))
    except (NewTabError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        clear_command_context()
    _print_session(session)


@app.command()
def categories() -> None:
    """List the predefined photo categories."""
    table = Table(title="Categories")
    table.add_column("Key")
    table.add_column("Label")
    table.add_column("Query")
    for key, (label, query) in LISTING_CATEGORIES.items():
        table.add_row(key, label, query or "[dim](random)[/dim]")
    console.print(table)


@cache_app.command("stats")
def cache_stats(
    namespace: str = typer.Option(
        IMAGE_CACHE_NAMESPACE, "--namespace", help="Cache namespace (unsplash_image or icon)"
    ),
) -> None:
    """Show size, count, and hit rate for a cache."""
    _check_namespace(namespace)
    settings = _load_settings(False)
    stats = asyncio.run(_cache_stats(settings, namespace))
    console.print(f"[bold]Cache:[/bold] {namespace}")
    console.print(f"  Entries: {stats.total_count}")
    console.print(
        f"  Size: {format_size(stats.total_size_bytes)} / {format_size(stats.max_size_bytes)}"
    )
    console.print(f"  Hit rate: {stats.hit_rate:.1%}")


@cache_app.command("clear")
def cache_clear(
    namespace: str = typer.Option(
        IMAGE_CACHE_NAMESPACE, "--namespace", help="Cache namespace (unsplash_image or icon)"
    ),
) -> None:
    """Remove every entry from a cache."""
    _check_namespace(namespace)
    settings = _load_settings(False)
    asyncio.run(_cache_clear(settings, namespace))
    console.print(f"[green]Cleared[/green] {namespace}")


@app.command("check-catalog")
def check_catalog() -> None:
    """Check that the configured photo catalog accepts its credentials."""
    settings = _load_settings(False)
    bind_command_context("check-catalog", provider=settings.catalog_provider)
    try:
        valid = asyncio.run(_check_catalog(settings))
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        clear_command_context()
    if not valid:
        console.print(f"[red]Rejected[/red] by {settings.catalog_provider}")
        raise typer.Exit(code=1)
    console.print(f"[green]OK[/green] {settings.catalog_provider} credentials accepted")


@app.command()
def version() -> None:
    """Show version."""
    console.print("newtab-assets v0.1.0")


def _print_session(session: ListingSession) -> None:
    table = Table(title=f"{session.query or session.category_key}: {len(session.items)} photos")
    table.add_column("ID")
    table.add_column("Size")
    table.add_column("Photographer")
    table.add_column("Description")
    for photo in session.items:
        table.add_row(
            photo.id,
            f"{photo.width}x{photo.height}",
            photo.user.name,
            photo.alt_description or photo.description or "",
        )
    console.print(table)
    if session.has_more:
        console.print(f"[dim]More available from page {session.page}[/dim]")


async def _resolve_icon(
    settings: Settings, url: str, size: int, favicon_url: str | None
) -> ResolutionResult:
    with cache_log_context(ICON_CACHE_NAMESPACE, settings.kv_backend):
        kv_store = await create_kv_store(settings)
        store = create_cache_store(settings, kv_store, ICON_CACHE_NAMESPACE)
        await store.load()
        async with httpx.AsyncClient(follow_redirects=True, headers=DEFAULT_HEADERS) as client:
            engine = create_probe_engine(settings, store, client=client)
            target = target_from_url(url, size=size, known_icon_url=favicon_url)
            return await engine.resolve(target)


async def _run_listing(
    settings: Settings, query: str | None, category: str, pages: int, download: bool
) -> ListingSession:
    catalog = create_catalog_client(settings)
    try:
        orchestrator = FetchOrchestrator(catalog, per_page=settings.unsplash_per_page)
        await orchestrator.set_context(query, category)
        for _ in range(pages - 1):
            if not await orchestrator.load_more():
                break
        session = orchestrator.session
        if download and session.items:
            await _download_first(settings, catalog, session)
        return session
    finally:
        await catalog.aclose()


async def _download_first(
    settings: Settings, catalog: PhotoCatalog, session: ListingSession
) -> None:
    from newtab_assets.tools.http_fetcher import HttpImageFetcher
    from newtab_assets.wallpaper.service import WallpaperService
    from newtab_infra.cache.image_cache import ImageCache

    with cache_log_context(IMAGE_CACHE_NAMESPACE, settings.kv_backend):
        kv_store = await create_kv_store(settings)
        store = create_cache_store(settings, kv_store, IMAGE_CACHE_NAMESPACE)
        await store.load()
        fetcher = HttpImageFetcher(max_bytes=settings.image_cache_max_size_mb * BYTES_PER_MB)
        try:
            service = WallpaperService(
                catalog,
                ImageCache(store),
                fetcher,
                quality=settings.unsplash_image_quality,
                download_timeout=settings.image_download_timeout_seconds,
            )
            entry = await service.download_and_cache(session.items[0])
        finally:
            await fetcher.aclose()
    console.print(f"[green]Cached[/green] {session.items[0].id} ({format_size(entry.size_bytes)})")


async def _check_catalog(settings: Settings) -> bool:
    from newtab_assets.tools.random_wallpaper_client import RandomWallpaperClient

    catalog = create_catalog_client(settings)
    try:
        if isinstance(catalog, RandomWallpaperClient):
            return await catalog.validate_secret()
        return await catalog.validate_api_key()
    finally:
        await catalog.aclose()


async def _cache_stats(settings: Settings, namespace: str) -> CacheStats:
    with cache_log_context(namespace, settings.kv_backend):
        kv_store = await create_kv_store(settings)
        store = create_cache_store(settings, kv_store, namespace)
        await store.load()
        return store.stats()


async def _cache_clear(settings: Settings, namespace: str) -> None:
    with cache_log_context(namespace, settings.kv_backend):
        kv_store = await create_kv_store(settings)
        store = create_cache_store(settings, kv_store, namespace)
        await store.load()
        await store.invalidate_all()


if __name__ == "__main__":
    app()
