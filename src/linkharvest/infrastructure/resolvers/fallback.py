"""Best-effort resolution for links no classifier recognised.

A HEAD request decides what the link is: ``video/*`` is a direct file,
an HLS content type is a playlist.  HTML pages (or hosts rejecting HEAD)
are fetched and scanned for a player source with the packed-JS / JWPlayer
extractor.  Anything else resolves to nothing.

Dispatch to another registered strategy happens one level up, in the
chain follower, which owns the nesting depth.
"""

from __future__ import annotations

from dataclasses import replace
from urllib.parse import urljoin

import structlog

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.exceptions import FetchStatusError
from linkharvest.domain.ports.page_fetcher import PageFetcherPort
from linkharvest.infrastructure.resolvers.patterns import find_player_video_url

log = structlog.get_logger(__name__)

_HLS_CONTENT_TYPES = ("application/vnd.apple.mpegurl", "application/x-mpegurl")


def family_for_url(url: str) -> SourceFamily:
    if ".m3u8" in url.lower():
        return SourceFamily.ADAPTIVE_STREAM
    return SourceFamily.DIRECT_FILE_HOST


class FallbackResolver:
    """Resolves a ``generic-fallback`` candidate by probing it."""

    def __init__(self, fetcher: PageFetcherPort) -> None:
        self._fetcher = fetcher

    async def resolve(self, candidate: RawCandidate, referer: str) -> list[RawCandidate]:
        """Return zero or one resolved candidate for *candidate*.

        ``FetchError`` from the HEAD request or the page fetch propagates; the
        caller records it as a failed candidate.
        """
        url = candidate.href
        content_type = ""
        try:
            head = await self._fetcher.fetch(url, referer=referer, method="HEAD")
        except FetchStatusError as exc:
            # Many hosts answer HEAD with 403/405; try a real GET instead.
            log.debug("fallback_head_rejected", url=url, status=exc.status_code)
        else:
            content_type = head.header("content-type").lower()
            if content_type.startswith("video/"):
                log.debug("fallback_direct_video", url=url, content_type=content_type)
                return [
                    replace(
                        candidate,
                        href=head.final_url,
                        family=SourceFamily.DIRECT_FILE_HOST,
                        referer=referer,
                    )
                ]
            if any(t in content_type for t in _HLS_CONTENT_TYPES):
                log.debug("fallback_hls", url=url, content_type=content_type)
                return [
                    replace(
                        candidate,
                        href=head.final_url,
                        family=SourceFamily.ADAPTIVE_STREAM,
                        referer=referer,
                    )
                ]
            if content_type and "text/html" not in content_type:
                log.debug("fallback_unresolved", url=url, content_type=content_type)
                return []

        page = await self._fetcher.fetch(url, referer=referer)
        found = find_player_video_url(page.body)
        if not found:
            log.debug("fallback_unresolved", url=url, content_type=content_type)
            return []

        video_url = urljoin(page.final_url, found)
        log.debug("fallback_player_source", url=url, video_url=video_url)
        return [
            replace(
                candidate,
                href=video_url,
                family=family_for_url(video_url),
                referer=page.final_url,
            )
        ]
