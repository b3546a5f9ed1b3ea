"""PixelDrain strategy: builds file API download URLs.

PixelDrain share links come in several shapes for the same file ID
(``/u/<id>``, ``/file/<id>``, ``/api/file/<id>``) and on several mirror
domains (pixeldrain.com, pixeldrain.dev, pixeldra.in).  The download URL
is ``<mirror origin>/api/file/<id>?download``; no page fetch is needed.
"""

from __future__ import annotations

import re

import structlog

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.resolvers.base import BaseStrategy, origin_of

log = structlog.get_logger(__name__)

# Tried in order; first match wins.
_ID_SHAPES: tuple[re.Pattern[str], ...] = (
    re.compile(r"/u/([A-Za-z0-9]+)"),
    re.compile(r"/api/file/([A-Za-z0-9]+)"),
    re.compile(r"/file/([A-Za-z0-9]+)"),
)

PIXELDRAIN_HREF_RE = re.compile(r"pixeldra", re.IGNORECASE)
PIXELDRAIN_TEXT_RE = re.compile(r"pixel\s*(?:drain|server)", re.IGNORECASE)


def extract_pixeldrain_id(url: str) -> str | None:
    """Return the file ID from any known PixelDrain URL shape."""
    for shape in _ID_SHAPES:
        match = shape.search(url)
        if match:
            return match.group(1)
    return None


def pixeldrain_api_url(url: str) -> str:
    """Build the ``?download`` API URL for a PixelDrain link.

    Unrecognised shapes are returned unmodified: a present-but-unknown
    URL may still be playable.
    """
    file_id = extract_pixeldrain_id(url)
    if not file_id:
        log.debug("pixeldrain_id_not_found", url=url)
        return url
    return f"{origin_of(url)}/api/file/{file_id}?download"


class PixelDrainStrategy(BaseStrategy):
    """Resolves PixelDrain share links without fetching them."""

    name = "pixeldrain"
    label = "Pixeldrain"
    domains = ("pixeldrain", "pixeldra")
    requires_referer = True
    needs_page = False

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        return [
            RawCandidate(
                display_text=self.label,
                href=pixeldrain_api_url(page.url),
                family=SourceFamily.DIRECT_FILE_HOST,
                referer=page.url,
            )
        ]
