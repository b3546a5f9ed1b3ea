"""HubCloud strategy: download-button pages offering several servers.

A HubCloud file page (``/drive/<id>``) links to an intermediate
``hubcloud.php`` page, either through a "Generate Direct Download"
button, a ``div.vd > center > a`` anchor or a legacy inline
``var url = '...'`` script.  That page lists one ``a.btn`` per server:

- PixelServer -> PixelDrain file API (no hop)
- FSL / FSLv2 / S3 / Mega / "Download File" -> direct CDN link (no hop)
- 10Gbps worker relay -> redirect lookup, ``link=`` target unwrapped
- BuzzServer -> redirect lookup on ``<link>/download`` via ``hx-redirect``

Anything else is handed to the generic fallback.
"""

from __future__ import annotations

import re
from dataclasses import replace
from urllib.parse import urljoin

from linkharvest.domain.entities.streams import (
    PageDetails,
    RawCandidate,
    SourceFamily,
)
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.common.html_selectors import (
    extract_links,
    extract_text,
    parse_html,
)
from linkharvest.infrastructure.resolvers.base import (
    BaseStrategy,
    LinkClassifier,
    classify_links,
)
from linkharvest.infrastructure.resolvers.patterns import find_script_var
from linkharvest.infrastructure.resolvers.pixeldrain import (
    PIXELDRAIN_HREF_RE,
    PIXELDRAIN_TEXT_RE,
    pixeldrain_api_url,
)

_BUTTON_SELECTORS = ("div.card-body h2 a.btn", "a.btn")
_INTERMEDIATE_SELECTORS = (
    "div.vd > center > a",
    "a#download",
    "a[href*='hubcloud.php']",
)


def _i(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _buzz_download(href: str) -> str:
    return href.rstrip("/") + "/download"


HUBCLOUD_CLASSIFIERS: tuple[LinkClassifier, ...] = (
    LinkClassifier(None, text_re=_i(r"telegram")),
    LinkClassifier(
        SourceFamily.EMBED_PAGE,
        text_re=_i(r"generate direct download"),
        href_re=_i(r"hubcloud\.php"),
    ),
    LinkClassifier(
        SourceFamily.DIRECT_FILE_HOST,
        text_re=PIXELDRAIN_TEXT_RE,
        href_re=PIXELDRAIN_HREF_RE,
        server="PixelServer",
        rewrite=pixeldrain_api_url,
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY, text_re=_i(r"fslv2"), server="FSLv2 Server"
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY,
        text_re=_i(r"\bfsl\b"),
        href_re=_i(r"fsl\.fastdl|firecdn"),
        server="FSL Server",
    ),
    LinkClassifier(
        SourceFamily.REDIRECT_PROXY,
        text_re=_i(r"10\s*gbps"),
        href_re=_i(r"workers\.dev/\?id="),
        server="10Gbps",
        redirect_until="link=",
    ),
    LinkClassifier(
        SourceFamily.REDIRECT_PROXY,
        text_re=_i(r"buzz\s*server"),
        server="BuzzServer",
        rewrite=_buzz_download,
        redirect_header="hx-redirect",
        self_referer=True,
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY, text_re=_i(r"s3 server"), server="S3 Server"
    ),
    LinkClassifier(
        SourceFamily.FAST_DOWNLOAD_PROXY,
        text_re=_i(r"mega server"),
        server="Mega Server",
    ),
    LinkClassifier(SourceFamily.FAST_DOWNLOAD_PROXY, text_re=_i(r"download file")),
    LinkClassifier(
        SourceFamily.ADAPTIVE_STREAM, href_re=_i(r"\.m3u8"), server="Direct"
    ),
    LinkClassifier(
        SourceFamily.DIRECT_FILE_HOST,
        href_re=_i(r"\.(?:mkv|mp4)(?:$|[?#])"),
        server="Direct",
    ),
)


class HubCloudStrategy(BaseStrategy):
    """Resolves HubCloud file pages and their ``hubcloud.php`` download pages."""

    name = "hubcloud"
    label = "HubCloud"
    domains = ("hubcloud",)

    def describe(self, page: FetchedPage) -> PageDetails:
        soup = parse_html(page.body)
        return PageDetails(
            title=extract_text(soup, "title"),
            file_size=extract_text(soup, "i#size", ".file-size"),
            header=extract_text(soup, "div.card-header", ".file-name", "h1"),
        )

    def _buttons(self, page: FetchedPage) -> list[RawCandidate]:
        soup = parse_html(page.body)
        links = extract_links(soup, *_BUTTON_SELECTORS, base_url=page.final_url)
        return classify_links(links, HUBCLOUD_CLASSIFIERS)

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        candidates = self._buttons(page)
        seen = {c.href for c in candidates if c.family is SourceFamily.EMBED_PAGE}

        soup = parse_html(page.body)
        intermediate = [
            link.href
            for link in extract_links(
                soup, *_INTERMEDIATE_SELECTORS, base_url=page.final_url
            )
        ]
        script_url = find_script_var(page.body, "url")
        if script_url:
            intermediate.append(urljoin(page.final_url, script_url))

        for href in intermediate:
            if href in seen:
                continue
            seen.add(href)
            candidates.append(
                RawCandidate(
                    display_text=self.label,
                    href=href,
                    family=SourceFamily.EMBED_PAGE,
                )
            )
        return candidates

    def extract_embed(self, page: FetchedPage) -> list[RawCandidate]:
        details = self.describe(page)
        return [replace(c, details=details) for c in self._buttons(page)]

    def rewrite_location(self, location: str) -> str:
        if "link=" in location:
            return location.split("link=", 1)[1]
        return location
