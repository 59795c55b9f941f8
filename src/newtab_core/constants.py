"""Shared constants for the new-tab asset layer."""

from __future__ import annotations

import re

# Cache namespaces; records live under "<namespace>_cache|_stats|_config"
IMAGE_CACHE_NAMESPACE = "unsplash_image"
ICON_CACHE_NAMESPACE = "icon"

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR
BYTES_PER_MB = 1024 * 1024

DEFAULT_CACHE_MAX_SIZE_BYTES = 50 * BYTES_PER_MB
DEFAULT_CACHE_MAX_COUNT = 100
DEFAULT_CACHE_MAX_AGE_MS = 7 * MS_PER_DAY
DEFAULT_CACHE_CLEANUP_INTERVAL_MS = MS_PER_HOUR

# Returned instead of a URL for hosts that never have a public favicon
INTERNAL_ICON_SENTINEL = "internal-domain"

INTERNAL_DOMAIN_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^localhost$", re.IGNORECASE),
    re.compile(r"^127\.0\.0\.1$"),
    re.compile(r"^192\.168\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),
    re.compile(r"\.local$", re.IGNORECASE),
    re.compile(r"\.lan$", re.IGNORECASE),
)

# Favicon URL templates per provider, tried in this order
SITE_FAVICON_TEMPLATES: tuple[str, ...] = (
    "{protocol}://{domain}/favicon.ico",
    "{protocol}://{domain}/favicon.png",
    "{protocol}://{domain}/apple-touch-icon.png",
    "{protocol}://{domain}/apple-touch-icon-precomposed.png",
)
DUCKDUCKGO_FAVICON_TEMPLATE = "https://icons.duckduckgo.com/ip3/{domain}.ico"
GOOGLE_FAVICON_TEMPLATE = "https://www.google.com/s2/favicons?domain={domain}&sz={size}"

DEFAULT_ICON_PROVIDERS: tuple[str, ...] = ("site", "duckduckgo", "google")
MAX_PROVIDER_ICON_SIZE = 64
ICON_SIZE_TIERS: tuple[int, ...] = (24, 32, 48, 64)

# Anything smaller is a tracking pixel or a broken placeholder
MIN_ICON_DIMENSION = 8

DEFAULT_PROBE_TIMEOUT_SECONDS = 3.0
DEFAULT_ICON_MAX_BYTES = 512 * 1024
DEFAULT_PRELOAD_CONCURRENCY = 5

# Unsplash catalog
UNSPLASH_API_URL = "https://api.unsplash.com"
UNSPLASH_MAX_PER_PAGE = 30
UNSPLASH_IMAGE_QUALITIES: tuple[str, ...] = ("raw", "full", "regular", "small", "thumb")

# category key -> (label, search query); "all" lists random photos
LISTING_CATEGORIES: dict[str, tuple[str, str]] = {
    "all": ("All", ""),
    "nature": ("Nature", "nature landscape"),
    "architecture": ("Architecture", "architecture building"),
    "abstract": ("Abstract", "abstract art pattern"),
    "minimal": ("Minimal", "minimal clean simple"),
    "space": ("Space", "space universe galaxy"),
    "ocean": ("Ocean", "ocean sea water"),
    "mountains": ("Mountains", "mountains peaks landscape"),
    "forest": ("Forest", "forest trees woods"),
    "city": ("City", "city urban skyline"),
    "technology": ("Technology", "technology digital tech"),
    "texture": ("Texture", "texture material surface"),
}
DEFAULT_CATEGORY = "all"

# Random wallpaper catalog
RANDOM_WALLPAPER_API_URL = "https://dynamic-api.monknow.com"
RANDOM_WALLPAPER_MAX_BATCH = 20
RANDOM_WALLPAPER_MIN_WIDTH = 800
RANDOM_WALLPAPER_MIN_HEIGHT = 600

# category key -> remote cate_id; "all" sends no filter
RANDOM_WALLPAPER_CATEGORIES: dict[str, str] = {
    "all": "",
    "nature": "8",
    "anime": "9",
    "people": "11",
    "animal": "12",
    "architecture": "13",
}

# Listing categories without a remote counterpart fall back to "all"
RANDOM_WALLPAPER_CATEGORY_ALIASES: dict[str, str] = {
    "mountains": "nature",
    "forest": "nature",
    "ocean": "nature",
    "city": "architecture",
}

# Search keywords that pick a remote category
RANDOM_WALLPAPER_KEYWORDS: dict[str, tuple[str, ...]] = {
    "nature": ("nature", "landscape"),
    "anime": ("anime", "cartoon"),
    "people": ("people", "person", "portrait"),
    "animal": ("animal", "pet"),
    "architecture": ("building", "architecture"),
}

RANDOM_WALLPAPER_THEMES: dict[str, str] = {"all": "", "day": "1", "night": "2"}

# Background colours for synthesized text glyphs
GLYPH_PALETTE: tuple[str, ...] = (
    "#3b82f6",
    "#ef4444",
    "#10b981",
    "#f59e0b",
    "#8b5cf6",
    "#ec4899",
    "#14b8a6",
    "#6366f1",
    "#f97316",
    "#64748b",
)
