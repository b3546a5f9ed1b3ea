"""HubDrive strategy: a landing page whose button points at HubCloud."""

from __future__ import annotations

import structlog

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.common.html_selectors import extract_links, parse_html
from linkharvest.infrastructure.resolvers.base import BaseStrategy, is_absolute_http_url

log = structlog.get_logger(__name__)

_BUTTON_SELECTORS = (
    "a.btn[href*='hubcloud']",
    "a.btn:-soup-contains('HubCloud'), a.btn:-soup-contains('Server')",
    "a.btn-primary[href]",
)


class HubDriveStrategy(BaseStrategy):
    """Hands the download button to whichever strategy owns its host.

    The button is emitted as generic-fallback, so the chain follower
    delegates it to HubCloud (or checks it when no strategy claims it).
    """

    name = "hubdrive"
    label = "HubDrive"
    domains = ("hubdrive",)

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        links = extract_links(
            parse_html(page.body), *_BUTTON_SELECTORS, base_url=page.final_url
        )
        link = next((lk for lk in links if is_absolute_http_url(lk.href)), None)
        if link is None:
            log.debug("hubdrive_link_not_found", url=page.final_url)
            return []
        return [
            RawCandidate(
                display_text=link.text or self.label,
                href=link.href,
                family=SourceFamily.GENERIC_FALLBACK,
            )
        ]
