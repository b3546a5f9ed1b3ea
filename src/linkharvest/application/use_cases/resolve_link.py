"""Link resolution use case.

page URL -> strategy -> (mirror rebase) -> page fetch -> candidates
-> per-candidate hops -> normalized streams + subtitles.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Protocol
from urllib.parse import urlparse, urlunparse

import structlog

from linkharvest.domain.entities.streams import (
    HopOutcome,
    PageDetails,
    RawCandidate,
    Resolution,
    ResolutionRequest,
    StreamDescriptor,
    SubtitleDescriptor,
)
from linkharvest.domain.ports.page_fetcher import FetchedPage, PageFetcherPort
from linkharvest.domain.ports.resolver_strategy import ResolverStrategyPort

log = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocols: what this use case needs from its collaborators.
# Infrastructure components satisfy these via structural subtyping.
# ---------------------------------------------------------------------------


class _ResolverSettings(Protocol):
    """Configuration values consumed by ResolveLinkUseCase."""

    require_referer: bool
    follow_redirects: bool
    mirror_bases: Mapping[str, str]


class _StrategySelector(Protocol):
    def select_strategy(self, url: str) -> ResolverStrategyPort: ...


class _CandidateFollower(Protocol):
    async def follow(
        self,
        strategy: ResolverStrategyPort,
        page: FetchedPage,
        candidates: list[RawCandidate],
        *,
        depth: int = 0,
    ) -> HopOutcome: ...


class _Normalizer(Protocol):
    def normalize(
        self,
        strategy: ResolverStrategyPort,
        details: PageDetails,
        candidates: Iterable[RawCandidate],
        *,
        referer: str = "",
    ) -> list[StreamDescriptor]: ...

    def normalize_subtitles(
        self,
        subtitles: Iterable[SubtitleDescriptor],
        *,
        base_url: str = "",
    ) -> list[SubtitleDescriptor]: ...


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def rebase_url(url: str, base: str) -> str:
    """Swap the scheme and host of *url* for those of *base*."""
    target = urlparse(base)
    return urlunparse(urlparse(url)._replace(scheme=target.scheme, netloc=target.netloc))


class ResolveLinkUseCase:
    """Resolves one page URL into playable streams and subtitles.

    Error policy: failure to fetch the input page raises ``FetchError``
    and an unclaimed URL raises ``UnsupportedUrlError``.  Failures on
    individual candidates are recorded in ``Resolution.failures`` and
    never abort the call.  An empty result is a valid outcome.
    """

    def __init__(
        self,
        *,
        registry: _StrategySelector,
        fetcher: PageFetcherPort,
        follower: _CandidateFollower,
        normalizer: _Normalizer,
        config: _ResolverSettings,
    ) -> None:
        self._registry = registry
        self._fetcher = fetcher
        self._follower = follower
        self._normalizer = normalizer
        self._config = config

    def _effective_referer(
        self, request: ResolutionRequest, strategy: ResolverStrategyPort
    ) -> str:
        if request.referer:
            return request.referer
        if self._config.require_referer or strategy.requires_referer:
            return _origin(request.page_url)
        return ""

    def _target_url(self, request: ResolutionRequest, strategy: ResolverStrategyPort) -> str:
        base = self._config.mirror_bases.get(strategy.name)
        if not base:
            return request.page_url
        url = rebase_url(request.page_url, base)
        if url != request.page_url:
            log.debug(
                "mirror_rebased",
                strategy=strategy.name,
                original=request.page_url,
                url=url,
            )
        return url

    async def _load_page(
        self, strategy: ResolverStrategyPort, url: str, referer: str
    ) -> FetchedPage:
        if not strategy.needs_page:
            return FetchedPage(url=url, final_url=url)
        # FetchError propagates: without the input page there is nothing to do.
        return await self._fetcher.fetch(
            url,
            referer=referer or None,
            follow_redirects=self._config.follow_redirects,
        )

    async def execute(self, request: ResolutionRequest) -> Resolution:
        t0 = time.perf_counter()
        strategy = self._registry.select_strategy(request.page_url)
        referer = self._effective_referer(request, strategy)
        url = self._target_url(request, strategy)

        log.info(
            "resolution_started",
            strategy=strategy.name,
            url=url,
            has_referer=bool(referer),
        )

        page = await self._load_page(strategy, url, referer)
        details = strategy.describe(page)
        candidates = strategy.extract(page)
        page_subtitles = strategy.extract_subtitles(page)

        outcome = await self._follower.follow(strategy, page, candidates)

        streams = self._normalizer.normalize(
            strategy, details, outcome.candidates, referer=referer
        )
        subtitles = self._normalizer.normalize_subtitles(
            [*page_subtitles, *outcome.subtitles], base_url=page.final_url
        )

        log.info(
            "resolution_complete",
            strategy=strategy.name,
            url=url,
            candidates=len(candidates),
            streams=len(streams),
            subtitles=len(subtitles),
            failures=len(outcome.failures),
            duration_ms=round((time.perf_counter() - t0) * 1000),
        )
        return Resolution(
            request=request,
            streams=tuple(streams),
            subtitles=tuple(subtitles),
            failures=outcome.failures,
        )
