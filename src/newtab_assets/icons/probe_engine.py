"""Fallback probe engine: cache first, then candidates in priority order."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

import structlog

from newtab_core.constants import (
    DEFAULT_PRELOAD_CONCURRENCY,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    INTERNAL_ICON_SENTINEL,
)
from newtab_core.exceptions import CapacityExceededError
from newtab_core.interfaces.fetcher import ByteFetcher
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
    ResolutionResult,
    Resolved,
)
from newtab_assets.icons.candidates import CandidateResolver, target_from_url
from newtab_assets.icons.quality import rejection_reason, score_icon
from newtab_assets.tools.image_probe import fetch_and_decode
from newtab_infra.cache.icon_cache import IconCache

logger = structlog.get_logger()

CacheKeyFn = Callable[[IconTarget], str]


class FallbackProbeEngine:
    """Resolve a usable icon for a target, consulting the icon cache first.

    Candidates are probed one at a time and the first that fetches,
    decodes, and passes the quality filter wins; the rest are never
    requested. Every candidate failure is soft. The engine never
    synthesizes a placeholder itself.
    """

    def __init__(
        self,
        icon_cache: IconCache,
        fetcher: ByteFetcher,
        resolver: CandidateResolver | None = None,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize with the icon cache, a byte fetcher, and the candidate resolver."""
        self._cache = icon_cache
        self._fetcher = fetcher
        self._resolver = resolver or CandidateResolver()
        self._probe_timeout = probe_timeout

    def default_cache_key(self, target: IconTarget) -> str:
        """Key a target by domain and size tier."""
        return self._cache.key(target.domain, target.size)

    async def resolve(
        self, target: IconTarget, cache_key_fn: CacheKeyFn | None = None
    ) -> ResolutionResult:
        """Resolve ``target`` to a cached or freshly probed icon.

        Returns ``Resolved`` (``from_cache`` tells which),
        or ``ExhaustedAllCandidates`` with every probe failure attached.
        """
        key = (cache_key_fn or self.default_cache_key)(target)
        store = self._cache.store

        entry = await store.get(key)
        if entry is not None:
            source_url = entry.metadata.get("source_url", key)
            logger.debug("icon_cache_hit", domain=target.domain, key=key)
            return Resolved(url=source_url, from_cache=True, payload=entry.payload)

        candidates = self._resolver.build_candidates(target)
        if len(candidates) == 1 and candidates[0].is_local_glyph:
            logger.debug("icon_internal_domain", domain=target.domain)
            return Resolved(url=INTERNAL_ICON_SENTINEL, from_cache=False)

        failures: list[ProbeFailure] = []
        for candidate in candidates:
            outcome = await self.probe(candidate)
            if isinstance(outcome, ProbeFailure):
                failures.append(outcome)
                logger.debug(
                    "probe_candidate_rejected",
                    domain=target.domain,
                    url=candidate.url,
                    provider=candidate.provider,
                    kind=outcome.kind,
                    detail=outcome.detail,
                )
                continue

            await self._store_winner(key, outcome)
            logger.info(
                "icon_resolved",
                domain=target.domain,
                url=candidate.url,
                provider=candidate.provider,
                width=outcome.width,
                height=outcome.height,
                attempts=len(failures) + 1,
            )
            return Resolved(url=candidate.url, from_cache=False, payload=outcome.payload)

        logger.info(
            "icon_candidates_exhausted", domain=target.domain, attempts=len(failures)
        )
        return ExhaustedAllCandidates(failures=tuple(failures))

    async def probe(self, candidate: IconCandidate) -> ProbeOutcome:
        """Fetch, decode, and quality-check one candidate."""
        outcome = await fetch_and_decode(self._fetcher, candidate, self._probe_timeout)
        if isinstance(outcome, ProbeFailure):
            return outcome
        reason = rejection_reason(candidate, outcome.width, outcome.height)
        if reason is not None:
            return ProbeFailure(candidate, ProbeFailureKind.REJECTED_QUALITY, reason)
        return outcome

    async def resolve_icon(
        self,
        icon: BookmarkIcon,
        network_mode: NetworkMode = NetworkMode.AUTO,
        size: int = 32,
    ) -> ResolutionResult:
        """Resolve a bookmark's icon; only official icons touch the network."""
        if not isinstance(icon, OfficialIcon):
            return NotApplicable()
        target = target_from_url(
            icon.active_url(network_mode), size=size, known_icon_url=icon.real_favicon_url
        )
        return await self.resolve(target)

    async def preload(
        self,
        targets: Sequence[IconTarget],
        concurrency: int = DEFAULT_PRELOAD_CONCURRENCY,
    ) -> list[ResolutionResult]:
        """Warm the cache for many targets; results follow the input order.

        A target whose resolution raises is reported as exhausted and does
        not abort the rest of the batch.
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def _resolve_one(target: IconTarget) -> ResolutionResult:
            async with semaphore:
                try:
                    return await self.resolve(target)
                except Exception:
                    logger.exception("icon_preload_failed", domain=target.domain)
                    return ExhaustedAllCandidates()

        results = await asyncio.gather(*(_resolve_one(t) for t in targets))
        resolved = sum(isinstance(r, Resolved) for r in results)
        logger.info("icon_preload_completed", total=len(targets), resolved=resolved)
        return list(results)

    async def _store_winner(self, key: str, outcome: ProbeSuccess) -> None:
        report = score_icon(outcome.width, outcome.height)
        metadata = {
            "source_url": outcome.candidate.url,
            "provider": str(outcome.candidate.provider),
            "width": str(outcome.width),
            "height": str(outcome.height),
            "quality_score": str(report.score),
            "quality": report.recommendation,
        }
        try:
            await self._cache.store.put(key, outcome.payload, metadata)
        except CapacityExceededError as e:
            logger.warning("icon_not_cached", key=key, error=str(e))
