"""Domain models for the new-tab asset layer."""

from newtab_core.models.cache import (
    CacheConfig,
    CacheCounters,
    CacheEntry,
    CacheRecord,
    CacheStats,
)
from newtab_core.models.icon import (
    BookmarkIcon,
    ExhaustedAllCandidates,
    IconCandidate,
    IconTarget,
    NetworkMode,
    NotApplicable,
    OfficialIcon,
    ProbeFailure,
    ProbeFailureKind,
    ProbeOutcome,
    ProbeSuccess,
    ProviderHint,
    ResolutionResult,
    Resolved,
    TextIcon,
    UploadIcon,
)
from newtab_core.models.listing import (
    CancellationToken,
    ListingSession,
    ListingState,
    Photo,
    PhotoUser,
    SearchPage,
)

__all__ = [
    "BookmarkIcon",
    "CacheConfig",
    "CacheCounters",
    "CacheEntry",
    "CacheRecord",
    "CacheStats",
    "CancellationToken",
    "ExhaustedAllCandidates",
    "IconCandidate",
    "IconTarget",
    "ListingSession",
    "ListingState",
    "NetworkMode",
    "NotApplicable",
    "OfficialIcon",
    "Photo",
    "PhotoUser",
    "ProbeFailure",
    "ProbeFailureKind",
    "ProbeOutcome",
    "ProbeSuccess",
    "ProviderHint",
    "ResolutionResult",
    "Resolved",
    "SearchPage",
    "TextIcon",
    "UploadIcon",
]
