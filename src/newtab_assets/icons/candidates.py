"""Build ordered favicon candidate lists for a target host."""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from newtab_core.constants import (
    DEFAULT_ICON_PROVIDERS,
    DUCKDUCKGO_FAVICON_TEMPLATE,
    GOOGLE_FAVICON_TEMPLATE,
    INTERNAL_DOMAIN_PATTERNS,
    INTERNAL_ICON_SENTINEL,
    MAX_PROVIDER_ICON_SIZE,
    SITE_FAVICON_TEMPLATES,
)
from newtab_core.models.icon import IconCandidate, IconTarget, ProviderHint

_FALLBACK_HOST_PATTERN = re.compile(r"^(?:[a-z][a-z0-9+.-]*:)?/*([^/?#:]+)", re.IGNORECASE)
_SCHEME_PATTERN = re.compile(r"^([a-z][a-z0-9+.-]*)://", re.IGNORECASE)


def extract_domain(url: str) -> str:
    """Return the lowercase host of ``url``.

    Bare hosts ("example.com/path") and malformed URLs fall back to a
    regex that takes everything up to the first slash, query, or port.
    """
    candidate = url.strip()
    if not _SCHEME_PATTERN.match(candidate):
        candidate = f"https://{candidate}"
    try:
        host = urlsplit(candidate).hostname
    except ValueError:
        host = None
    if host:
        return host.lower()
    match = _FALLBACK_HOST_PATTERN.match(url.strip())
    return match.group(1).lower() if match else url.strip().lower()


def extract_protocol(url: str) -> str:
    """Return ``http`` or ``https`` for ``url``; anything else maps to ``https``."""
    match = _SCHEME_PATTERN.match(url.strip())
    scheme = match.group(1).lower() if match else "https"
    return scheme if scheme in ("http", "https") else "https"


def is_internal_domain(domain: str) -> bool:
    """Whether ``domain`` is a private host that public favicon services cannot see."""
    return any(pattern.search(domain) for pattern in INTERNAL_DOMAIN_PATTERNS)


def target_from_url(url: str, size: int = 32, known_icon_url: str | None = None) -> IconTarget:
    """Build an IconTarget for a bookmark URL."""
    return IconTarget(
        domain=extract_domain(url),
        protocol=extract_protocol(url),
        size=size,
        known_icon_url=known_icon_url or None,
    )


class CandidateResolver:
    """Turns a target into provider URLs in priority order.

    Pure: no I/O and no caching. Self-hosted sources come before the
    third-party aggregators.
    """

    def __init__(self, providers: Iterable[str] = DEFAULT_ICON_PROVIDERS) -> None:
        """Initialize with the enabled providers, in priority order."""
        self._providers = tuple(ProviderHint(p) for p in providers)

    @property
    def providers(self) -> tuple[ProviderHint, ...]:
        return self._providers

    def build_candidates(self, target: IconTarget) -> list[IconCandidate]:
        """Return the candidate list for ``target``.

        Internal hosts yield exactly one local-glyph sentinel.
        """
        domain = target.domain.lower()
        if is_internal_domain(domain):
            return [IconCandidate(INTERNAL_ICON_SENTINEL, ProviderHint.INTERNAL, target.size)]

        candidates: list[IconCandidate] = []
        if target.known_icon_url:
            candidates.append(
                IconCandidate(target.known_icon_url, ProviderHint.KNOWN, target.size)
            )
        for provider in self._providers:
            candidates.extend(self._provider_candidates(provider, domain, target))

        seen: set[str] = set()
        unique: list[IconCandidate] = []
        for candidate in candidates:
            if candidate.url not in seen:
                seen.add(candidate.url)
                unique.append(candidate)
        return unique

    def _provider_candidates(
        self, provider: ProviderHint, domain: str, target: IconTarget
    ) -> list[IconCandidate]:
        size = min(target.size, MAX_PROVIDER_ICON_SIZE)
        if provider == ProviderHint.SITE:
            return [
                IconCandidate(
                    template.format(protocol=target.protocol, domain=domain),
                    ProviderHint.SITE,
                    target.size,
                )
                for template in SITE_FAVICON_TEMPLATES
            ]
        if provider == ProviderHint.DUCKDUCKGO:
            url = DUCKDUCKGO_FAVICON_TEMPLATE.format(domain=domain)
            return [IconCandidate(url, ProviderHint.DUCKDUCKGO, target.size)]
        if provider == ProviderHint.GOOGLE:
            url = GOOGLE_FAVICON_TEMPLATE.format(domain=domain, size=size)
            return [IconCandidate(url, ProviderHint.GOOGLE, size)]
        return []
