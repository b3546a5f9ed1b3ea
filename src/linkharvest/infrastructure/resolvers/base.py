"""Shared base for extraction strategies and link classification.

Concrete strategies subclass ``BaseStrategy`` and set ``name``, ``label``
and ``domains``; they override only the extraction passes they need.
The defaults make a strategy that finds nothing, so every hook is safe to
call on every strategy.

Sub-backend classification is an ordered tuple of ``LinkClassifier``
rules evaluated short-circuit: the first rule that matches decides the
candidate's ``SourceFamily``.  A rule with ``family=None`` drops the link.
Links no rule matches fall through to generic delegation.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlparse

from linkharvest.domain.entities.streams import (
    PageDetails,
    RawCandidate,
    SourceFamily,
    SubtitleDescriptor,
)
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.common.html_selectors import (
    Link,
    extract_text,
    parse_html,
)
from linkharvest.infrastructure.resolvers.patterns import find_subtitle_tracks

_IGNORED_HREF_RE = re.compile(r"^(?:#|javascript:|mailto:)|t\.me/|telegram", re.I)
_ARCHIVE_RE = re.compile(r"\.(?:zip|rar|7z)(?:$|[?#])", re.I)


def hostname_of(url: str) -> str:
    """Lower-case hostname of *url*, ``""`` when unparseable."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def origin_of(url: str) -> str:
    """``scheme://host[:port]`` of *url*."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def is_absolute_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_ignored_link(href: str) -> bool:
    """True for anchors that never lead to media (empty, js, Telegram, archives)."""
    href = href.strip()
    return not href or bool(_IGNORED_HREF_RE.search(href) or _ARCHIVE_RE.search(href))


@dataclass(frozen=True)
class LinkClassifier:
    """One sub-backend test applied to an anchor.

    ``text_re`` is matched against the anchor text, ``href_re`` against its
    URL.  With ``match="any"`` one hit suffices, with ``"all"`` every given
    pattern must hit.

    ``redirect_until`` and ``self_referer`` shape the redirect lookup: keep
    following until the header holds the marker, and send the button link
    itself as referer.
    """

    family: SourceFamily | None
    text_re: re.Pattern[str] | None = None
    href_re: re.Pattern[str] | None = None
    match: Literal["any", "all"] = "any"
    server: str = ""
    rewrite: Callable[[str], str] | None = None
    redirect_header: str = "location"
    redirect_until: str = ""
    self_referer: bool = False

    def matches(self, link: Link) -> bool:
        hits = []
        if self.text_re is not None:
            hits.append(bool(self.text_re.search(link.text)))
        if self.href_re is not None:
            hits.append(bool(self.href_re.search(link.href)))
        if not hits:
            return False
        return all(hits) if self.match == "all" else any(hits)

    def build(self, link: Link) -> RawCandidate:
        href = self.rewrite(link.href) if self.rewrite else link.href
        return RawCandidate(
            display_text=link.text,
            href=href,
            family=self.family or SourceFamily.GENERIC_FALLBACK,
            server=self.server,
            redirect_header=self.redirect_header,
            redirect_until=self.redirect_until,
            referer=link.href if self.self_referer else "",
        )


def classify_link(
    link: Link, classifiers: Sequence[LinkClassifier]
) -> RawCandidate | None:
    """Classify *link* with the first matching rule.

    Returns ``None`` for ignored links and for rules that drop the link.
    """
    if is_ignored_link(link.href):
        return None
    for rule in classifiers:
        if rule.matches(link):
            if rule.family is None:
                return None
            return rule.build(link)
    return RawCandidate(
        display_text=link.text,
        href=link.href,
        family=SourceFamily.GENERIC_FALLBACK,
    )


def classify_links(
    links: Iterable[Link], classifiers: Sequence[LinkClassifier]
) -> list[RawCandidate]:
    """Classify every link in page order, dropping ignored ones."""
    candidates: list[RawCandidate] = []
    for link in links:
        candidate = classify_link(link, classifiers)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


class BaseStrategy:
    """Base for resolver strategies.

    Subclasses **must** set ``name``, ``label`` and ``domains``.
    Satisfies ``ResolverStrategyPort``.
    """

    name: str = ""
    label: str = ""
    domains: tuple[str, ...] = ()
    requires_referer: bool = False
    needs_page: bool = True

    def matches(self, url: str) -> bool:
        host = hostname_of(url)
        return bool(host) and any(domain in host for domain in self.domains)

    def describe(self, page: FetchedPage) -> PageDetails:
        if not page.body:
            return PageDetails()
        return PageDetails(title=extract_text(parse_html(page.body), "title"))

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        return []

    def extract_subtitles(self, page: FetchedPage) -> list[SubtitleDescriptor]:
        return [
            SubtitleDescriptor(url=url, label=label)
            for url, label in find_subtitle_tracks(page.body)
        ]

    def extract_embed(self, page: FetchedPage) -> list[RawCandidate]:
        return []

    def rewrite_location(self, location: str) -> str:
        return location

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
