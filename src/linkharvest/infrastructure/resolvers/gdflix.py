"""GDFlix strategy: file pages with a list of download buttons.

File name and size come from ``li.list-group-item`` entries such as
``Name : Movie.2160p.mkv``.  Buttons are classified into PixelDrain,
Instant DL (busycdn direct or ``url=`` redirect), Cloud Download (R2 or a
``url=`` parameter), Fast Cloud / ZipDisk embed pages and plain direct
links.  GoFile, index and bot buttons are not playable and are dropped.
"""

from __future__ import annotations

import re
from dataclasses import replace
from urllib.parse import parse_qs, unquote, urlparse

import structlog

from linkharvest.domain.entities.streams import (
    PageDetails,
    RawCandidate,
    SourceFamily,
)
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.common.html_selectors import (
    extract_labeled_value,
    extract_links,
    extract_text,
    parse_html,
)
from linkharvest.infrastructure.resolvers.base import (
    BaseStrategy,
    LinkClassifier,
    classify_links,
    is_ignored_link,
)
from linkharvest.infrastructure.resolvers.pixeldrain import (
    PIXELDRAIN_HREF_RE,
    PIXELDRAIN_TEXT_RE,
    pixeldrain_api_url,
)

log = structlog.get_logger(__name__)

_TITLE_NAME_RE = re.compile(r"\|\s(.+?)\s-")
_DOWNLOAD_TEXT_RE = re.compile(r"download", re.IGNORECASE)


def _i(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _after_url_param(value: str) -> str:
    """Everything after ``url=``, or *value* itself when absent."""
    if "url=" in value:
        return value.split("url=", 1)[1]
    return value


def _decoded_url_param(href: str) -> str:
    values = parse_qs(urlparse(href).query).get("url")
    if values:
        return values[0]
    return unquote(_after_url_param(href))


GDFLIX_CLASSIFIERS: tuple[LinkClassifier, ...] = (
    LinkClassifier(None, text_re=_i(r"telegram|gofile|index links?|drivebot|login")),
    LinkClassifier(
        SourceFamily.DIRECT_FILE_HOST,
        text_re=PIXELDRAIN_TEXT_RE,
        href_re=PIXELDRAIN_HREF_RE,
        server="Pixeldrain",
        rewrite=pixeldrain_api_url,
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY,
        text_re=_i(r"instant\s*dl"),
        href_re=_i(r"busycdn"),
        match="all",
        server="Instant DL",
    ),
    LinkClassifier(
        SourceFamily.REDIRECT_PROXY,
        text_re=_i(r"instant\s*dl"),
        server="Instant DL",
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY,
        text_re=_i(r"cloud download"),
        href_re=_i(r"r2\.dev"),
        match="all",
        server="Cloud Download",
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY,
        text_re=_i(r"cloud download"),
        href_re=_i(r"url="),
        match="all",
        server="Cloud Download",
        rewrite=_decoded_url_param,
    ),
    LinkClassifier(
        SourceFamily.EMBED_PAGE,
        text_re=_i(r"fast cloud|zipdisk"),
        server="FAST CLOUD",
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY, text_re=_i(r"direct dl"), server="Direct"
    ),
    LinkClassifier(
        SourceFamily.DIRECT_FILE_HOST,
        href_re=_i(r"\.(?:mkv|mp4)(?:$|[?#])"),
        server="Direct",
    ),
)


class GDFlixStrategy(BaseStrategy):
    """Resolves GDFlix / GDLink file pages."""

    name = "gdflix"
    label = "GDFlix"
    domains = ("gdflix", "gdlink")

    def describe(self, page: FetchedPage) -> PageDetails:
        soup = parse_html(page.body)
        title = extract_text(soup, "title")
        file_name = extract_labeled_value(soup, "Name")
        if not file_name:
            match = _TITLE_NAME_RE.search(title)
            file_name = match.group(1) if match else ""
        return PageDetails(
            title=title,
            file_name=file_name,
            file_size=extract_labeled_value(soup, "Size") or "",
        )

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        soup = parse_html(page.body)
        links = extract_links(
            soup, "a.btn", "div.text-center a", base_url=page.final_url
        )
        return classify_links(links, GDFLIX_CLASSIFIERS)

    def extract_embed(self, page: FetchedPage) -> list[RawCandidate]:
        """Fast Cloud pages carry a single ``Download`` button."""
        soup = parse_html(page.body)
        candidates = [
            RawCandidate(
                display_text=link.text,
                href=link.href,
                family=SourceFamily.FAST_DOWNLOAD_PROXY,
                server="FAST CLOUD",
            )
            for link in extract_links(soup, "a.btn", base_url=page.final_url)
            if _DOWNLOAD_TEXT_RE.search(link.text) and not is_ignored_link(link.href)
        ]
        if not candidates:
            log.debug("gdflix_fast_cloud_no_button", url=page.final_url)
        return [replace(c, referer=page.final_url) for c in candidates]

    def rewrite_location(self, location: str) -> str:
        return _after_url_param(location)
