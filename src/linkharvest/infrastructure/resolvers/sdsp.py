"""SdSp strategy: JWPlayer pages listing one source per quality."""

from __future__ import annotations

from urllib.parse import urljoin

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.resolvers.base import BaseStrategy
from linkharvest.infrastructure.resolvers.patterns import (
    find_file_label_pairs,
    find_m3u8_url,
)


class SdSpStrategy(BaseStrategy):
    """Emits every ``file``/``label`` source; falls back to the first playlist."""

    name = "sdsp"
    label = "SdSp"
    domains = ("sdsp",)

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        pairs = find_file_label_pairs(page.body)
        if not pairs:
            playlist = find_m3u8_url(page.body)
            pairs = [(playlist, "")] if playlist else []

        candidates = []
        for url, label in pairs:
            href = urljoin(page.final_url, url)
            family = (
                SourceFamily.ADAPTIVE_STREAM
                if ".m3u8" in href.lower()
                else SourceFamily.DIRECT_FILE_HOST
            )
            candidates.append(
                RawCandidate(
                    display_text=label or self.label,
                    href=href,
                    family=family,
                    quality_hint=label,
                    referer=page.url,
                )
            )
        return candidates
