"""WishOnly strategy: HLS players behind ``master.m3u8`` tokens."""

from __future__ import annotations

from urllib.parse import urljoin

import structlog

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.resolvers.base import BaseStrategy, origin_of
from linkharvest.infrastructure.resolvers.patterns import (
    find_m3u8_url,
    find_master_playlist_suffix,
)

log = structlog.get_logger(__name__)


def wishonly_playlist_url(page_url: str, suffix: str) -> str:
    """Build the playlist URL for a ``master.m3u8`` suffix.

    An absolute suffix is already the playlist URL; otherwise it is the
    query appended to ``<origin>/video007/index.php``.
    """
    if suffix.startswith("http"):
        return suffix
    return f"{origin_of(page_url)}/video007/index.php{suffix}"


class WishOnlyStrategy(BaseStrategy):
    name = "wishonly"
    label = "WishOnly"
    domains = ("wishonly",)

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        suffix = find_master_playlist_suffix(page.body)
        if suffix is not None:
            href = wishonly_playlist_url(page.final_url, suffix)
        else:
            found = find_m3u8_url(page.body)
            if not found:
                log.debug("wishonly_playlist_not_found", url=page.final_url)
                return []
            href = urljoin(page.final_url, found)
        return [
            RawCandidate(
                display_text=self.label,
                href=href,
                family=SourceFamily.ADAPTIVE_STREAM,
                referer=page.url,
            )
        ]
