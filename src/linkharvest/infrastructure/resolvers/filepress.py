"""FilePress strategy: HTML5 ``<source>`` tags plus a Watch Now player.

The file page may embed the video directly (``<source src>``) and usually
links a player iframe through ``<a href><button>Watch Now</button></a>``.
The player page declares one ``file``/``label`` pair per quality and its
subtitle tracks; those streams must be requested with the player URL as
referer.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.common.html_selectors import (
    extract_all_attrs,
    parse_html,
)
from linkharvest.infrastructure.resolvers.base import BaseStrategy, is_ignored_link
from linkharvest.infrastructure.resolvers.patterns import (
    find_encoded_urls,
    find_file_label_pairs,
)

_WATCH_NOW_RE = re.compile(r"watch\s*now", re.IGNORECASE)
_PLAYABLE_RE = re.compile(r"\.(?:mp4|mkv|m3u8)(?:$|[?#])", re.IGNORECASE)


def _media_family(url: str) -> SourceFamily:
    if ".m3u8" in url.lower():
        return SourceFamily.ADAPTIVE_STREAM
    return SourceFamily.DIRECT_FILE_HOST


class FilePressStrategy(BaseStrategy):
    """Resolves FilePress file pages and their player iframes."""

    name = "filepress"
    label = "FilePress"
    domains = ("filepress",)
    requires_referer = True

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        soup = parse_html(page.body)
        candidates: list[RawCandidate] = []

        for src in extract_all_attrs(soup, "video source[src]", "src", "source[src]"):
            href = urljoin(page.final_url, src)
            candidates.append(
                RawCandidate(
                    display_text=self.label,
                    href=href,
                    family=_media_family(href),
                    referer=page.url,
                )
            )

        for anchor in soup.select("a[href]"):
            button = anchor.find("button")
            if button is None or not _WATCH_NOW_RE.search(button.get_text()):
                continue
            href = str(anchor["href"]).strip()
            if is_ignored_link(href):
                continue
            candidates.append(
                RawCandidate(
                    display_text=button.get_text(" ", strip=True),
                    href=urljoin(page.final_url, href),
                    family=SourceFamily.EMBED_PAGE,
                    server="Watch Now",
                )
            )

        # Some mirrors ship the source URL base64-wrapped in a script.
        for url in find_encoded_urls(page.body):
            if _PLAYABLE_RE.search(url):
                candidates.append(
                    RawCandidate(
                        display_text=self.label,
                        href=url,
                        family=_media_family(url),
                        referer=page.url,
                    )
                )
        return candidates

    def extract_embed(self, page: FetchedPage) -> list[RawCandidate]:
        return [
            RawCandidate(
                display_text=label or self.label,
                href=urljoin(page.final_url, url),
                family=_media_family(url),
                quality_hint=label,
                server="Watch Now",
                referer=page.url,
            )
            for url, label in find_file_label_pairs(page.body)
        ]
