"""Turns followed candidates into the descriptors callers receive."""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import urljoin

import structlog

from linkharvest.domain.entities.streams import (
    PageDetails,
    QualityRank,
    RawCandidate,
    SourceFamily,
    StreamDescriptor,
    SubtitleDescriptor,
)
from linkharvest.domain.ports.resolver_strategy import ResolverStrategyPort
from linkharvest.infrastructure.config.schema import DEFAULT_USER_AGENT
from linkharvest.infrastructure.resolvers.base import is_absolute_http_url

log = structlog.get_logger(__name__)


def rank_quality(candidate: RawCandidate, details: PageDetails) -> QualityRank:
    """Quality from the most specific text that names one.

    Order: the label next to the link, the file name, the page header,
    the page title.
    """
    for text in (
        candidate.quality_hint,
        details.file_name,
        details.header,
        details.title,
    ):
        rank = QualityRank.from_text(text)
        if rank is not QualityRank.UNKNOWN:
            return rank
    return QualityRank.UNKNOWN


def source_label(strategy_label: str, server: str) -> str:
    return f"{strategy_label}[{server}]" if server else strategy_label


def display_name(label: str, candidate: RawCandidate, details: PageDetails) -> str:
    """``"<label> <file name or header>[<size>]"``, empty parts omitted."""
    name = details.file_name or details.header or candidate.quality_hint
    text = f"{label} {name}" if name else label
    if details.file_size:
        text += f"[{details.file_size}]"
    return text


class StreamNormalizer:
    """Builds deduplicated ``StreamDescriptor`` lists in candidate order.

    Only exact ``(family, direct_url)`` repeats are removed; the same file
    offered through two backends yields two descriptors.
    """

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self._user_agent = user_agent

    def request_headers(self, referer: str) -> dict[str, str]:
        headers = {"User-Agent": self._user_agent, "Accept": "*/*"}
        if referer:
            headers["Referer"] = referer
        return headers

    def normalize(
        self,
        strategy: ResolverStrategyPort,
        details: PageDetails,
        candidates: Iterable[RawCandidate],
        *,
        referer: str = "",
    ) -> list[StreamDescriptor]:
        streams: list[StreamDescriptor] = []
        seen: set[tuple[SourceFamily, str]] = set()

        for candidate in candidates:
            url = candidate.href.strip()
            if not is_absolute_http_url(url):
                log.debug(
                    "candidate_dropped",
                    strategy=strategy.name,
                    url=url,
                    reason="not_absolute",
                )
                continue
            key = (candidate.family, url)
            if key in seen:
                continue
            seen.add(key)

            page_details = candidate.details or details
            label = source_label(strategy.label, candidate.server)
            stream_referer = candidate.referer or referer
            streams.append(
                StreamDescriptor(
                    source_label=label,
                    display_name=display_name(label, candidate, page_details),
                    direct_url=url,
                    referer=stream_referer,
                    quality=rank_quality(candidate, page_details),
                    is_adaptive=(
                        candidate.family is SourceFamily.ADAPTIVE_STREAM
                        or ".m3u8" in url.lower()
                    ),
                    family=candidate.family,
                    headers=self.request_headers(stream_referer),
                )
            )
        return streams

    def normalize_subtitles(
        self,
        subtitles: Iterable[SubtitleDescriptor],
        *,
        base_url: str = "",
    ) -> list[SubtitleDescriptor]:
        """Absolute, de-duplicated subtitle tracks in discovery order."""
        result: list[SubtitleDescriptor] = []
        seen: set[str] = set()
        for subtitle in subtitles:
            url = urljoin(base_url, subtitle.url) if base_url else subtitle.url
            if not is_absolute_http_url(url) or url in seen:
                continue
            seen.add(url)
            result.append(SubtitleDescriptor(url=url, label=subtitle.label))
        return result
