"""Follows the extra network hop each candidate family needs.

- redirect-proxy: requests with redirects disabled; the configured
  response header (``location`` or ``hx-redirect``) is the target, read
  over several gateways when the candidate names a final-URL marker.
- embed-page: fetch the embed page and run the strategy's second
  extraction pass on it.  Embed pages found there are not followed.
- generic-fallback: another registered strategy when one claims the URL
  (one level deep), otherwise the content-type check.
- everything else is final as extracted.

Hops run concurrently under a semaphore.  A failing hop is logged and
recorded; it never cancels its siblings.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from urllib.parse import urljoin

import structlog

from linkharvest.domain.entities.streams import (
    CandidateFailure,
    HopOutcome,
    PageDetails,
    RawCandidate,
    SourceFamily,
    SubtitleDescriptor,
)
from linkharvest.domain.exceptions import FetchError
from linkharvest.domain.ports.page_fetcher import FetchedPage, PageFetcherPort
from linkharvest.domain.ports.resolver_strategy import ResolverStrategyPort
from linkharvest.infrastructure.resolvers.fallback import FallbackResolver
from linkharvest.infrastructure.resolvers.registry import ResolverRegistry

log = structlog.get_logger(__name__)

MAX_REDIRECT_HOPS = 5


class ChainFollower:
    """Resolves every candidate of a page to its final URL(s)."""

    def __init__(
        self,
        fetcher: PageFetcherPort,
        *,
        registry: ResolverRegistry | None = None,
        fallback: FallbackResolver | None = None,
        max_concurrent_hops: int = 4,
        max_depth: int = 1,
    ) -> None:
        self._fetcher = fetcher
        self._registry = registry
        self._fallback = fallback or FallbackResolver(fetcher)
        self._max_concurrent = max(1, max_concurrent_hops)
        self._max_depth = max_depth

    async def follow(
        self,
        strategy: ResolverStrategyPort,
        page: FetchedPage,
        candidates: list[RawCandidate],
        *,
        depth: int = 0,
    ) -> HopOutcome:
        """Run all hops and merge the results in candidate order."""
        if not candidates:
            return HopOutcome()

        # One semaphore per call: nested follows never wait on their parent.
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _bounded(index: int, candidate: RawCandidate) -> HopOutcome:
            async with semaphore:
                return await self._follow_one(strategy, page, index, candidate, depth)

        outcomes = await asyncio.gather(
            *(_bounded(i, c) for i, c in enumerate(candidates))
        )

        resolved: list[RawCandidate] = []
        subtitles: list[SubtitleDescriptor] = []
        failures: list[CandidateFailure] = []
        for outcome in outcomes:
            resolved.extend(outcome.candidates)
            subtitles.extend(outcome.subtitles)
            failures.extend(outcome.failures)
        return HopOutcome(
            candidates=tuple(resolved),
            subtitles=tuple(subtitles),
            failures=tuple(failures),
        )

    async def _follow_one(
        self,
        strategy: ResolverStrategyPort,
        page: FetchedPage,
        index: int,
        candidate: RawCandidate,
        depth: int,
    ) -> HopOutcome:
        try:
            return await self._hop(strategy, page, index, candidate, depth)
        except FetchError as exc:
            log.warning(
                "candidate_hop_failed",
                strategy=strategy.name,
                family=candidate.family.value,
                url=candidate.href,
                reason=exc.reason,
            )
            return HopOutcome(
                failures=(CandidateFailure(index, candidate.href, exc.reason),)
            )
        except Exception as exc:
            log.exception(
                "candidate_hop_error",
                strategy=strategy.name,
                family=candidate.family.value,
                url=candidate.href,
            )
            return HopOutcome(
                failures=(CandidateFailure(index, candidate.href, type(exc).__name__),)
            )

    async def _hop(
        self,
        strategy: ResolverStrategyPort,
        page: FetchedPage,
        index: int,
        candidate: RawCandidate,
        depth: int,
    ) -> HopOutcome:
        family = candidate.family
        if family is SourceFamily.REDIRECT_PROXY:
            target = await self._follow_redirect(strategy, page, candidate)
            return HopOutcome(candidates=(target,))
        if family is SourceFamily.EMBED_PAGE:
            return await self._follow_embed(strategy, page, index, candidate, depth)
        if family is SourceFamily.GENERIC_FALLBACK:
            return await self._delegate(strategy, page, index, candidate, depth)
        return HopOutcome(candidates=(candidate,))

    async def _follow_redirect(
        self,
        strategy: ResolverStrategyPort,
        page: FetchedPage,
        candidate: RawCandidate,
    ) -> RawCandidate:
        """Read redirect headers hop by hop without following them.

        Without ``redirect_until`` the first header value is the target.
        Otherwise intermediate gateways are walked until the value holds
        the marker, at most ``MAX_REDIRECT_HOPS`` requests.
        """
        referer = candidate.referer or page.final_url
        current = candidate.href
        for hop in range(1, MAX_REDIRECT_HOPS + 1):
            resp = await self._fetcher.fetch(
                current, referer=referer, follow_redirects=False
            )
            value = resp.header(candidate.redirect_header)
            if not value:
                # Not an error: the normalizer drops the empty URL.
                log.debug(
                    "redirect_header_missing",
                    url=current,
                    header=candidate.redirect_header,
                    status=resp.status_code,
                    hop=hop,
                )
                return replace(candidate, href="")
            if not candidate.redirect_until or candidate.redirect_until in value:
                target = urljoin(current, strategy.rewrite_location(value))
                log.debug("redirect_followed", url=candidate.href, target=target, hops=hop)
                return replace(candidate, href=target)
            current = urljoin(current, value)

        log.warning(
            "redirect_chain_too_long",
            url=candidate.href,
            last=current,
            max_hops=MAX_REDIRECT_HOPS,
        )
        return replace(candidate, href="")

    async def _follow_embed(
        self,
        strategy: ResolverStrategyPort,
        page: FetchedPage,
        index: int,
        candidate: RawCandidate,
        depth: int,
    ) -> HopOutcome:
        embed_page = await self._fetcher.fetch(candidate.href, referer=page.final_url)
        nested = [
            c for c in strategy.extract_embed(embed_page)
            if c.family is not SourceFamily.EMBED_PAGE
        ]
        subtitles = strategy.extract_subtitles(embed_page)
        log.debug(
            "embed_page_followed",
            strategy=strategy.name,
            url=candidate.href,
            candidates=len(nested),
            subtitles=len(subtitles),
        )
        inner = await self.follow(strategy, embed_page, nested, depth=depth)
        return HopOutcome(
            candidates=inner.candidates,
            subtitles=(*subtitles, *inner.subtitles),
            failures=tuple(replace(f, index=index) for f in inner.failures),
        )

    async def _delegate(
        self,
        strategy: ResolverStrategyPort,
        page: FetchedPage,
        index: int,
        candidate: RawCandidate,
        depth: int,
    ) -> HopOutcome:
        nested = None
        if self._registry is not None and depth < self._max_depth:
            nested = self._registry.find_strategy(candidate.href)

        if nested is None:
            referer = candidate.referer or page.final_url
            return HopOutcome(
                candidates=tuple(await self._fallback.resolve(candidate, referer))
            )

        log.debug(
            "fallback_nested_strategy",
            strategy=strategy.name,
            nested=nested.name,
            url=candidate.href,
        )
        if nested.needs_page:
            nested_page = await self._fetcher.fetch(
                candidate.href, referer=page.final_url
            )
        else:
            nested_page = FetchedPage(url=candidate.href, final_url=candidate.href)

        details: PageDetails | None = nested.describe(nested_page)
        if details == PageDetails():
            # Nothing on the nested page; keep the outer page details.
            details = None
        inner = await self.follow(
            nested, nested_page, nested.extract(nested_page), depth=depth + 1
        )
        tagged = tuple(
            replace(
                c,
                server=f"{nested.label} {c.server}".strip(),
                details=c.details or details,
            )
            for c in inner.candidates
        )
        return HopOutcome(
            candidates=tagged,
            subtitles=(*nested.extract_subtitles(nested_page), *inner.subtitles),
            failures=tuple(replace(f, index=index) for f in inner.failures),
        )
