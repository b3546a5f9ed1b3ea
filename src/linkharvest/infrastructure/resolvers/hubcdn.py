"""HUBCDN strategy: the target hides base64-encoded in a ``reurl`` script var."""

from __future__ import annotations

import structlog

from linkharvest.domain.entities.streams import RawCandidate, SourceFamily
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.resolvers.base import BaseStrategy, is_absolute_http_url
from linkharvest.infrastructure.resolvers.patterns import (
    decode_base64_text,
    find_script_var,
)

log = structlog.get_logger(__name__)


def decode_reurl(reurl: str) -> str | None:
    """``...?r=<base64>`` -> the URL after the last ``link=`` in the payload."""
    _, sep, encoded = reurl.partition("?r=")
    decoded = decode_base64_text(encoded if sep else reurl)
    if not decoded:
        return None
    target = decoded.rsplit("link=", 1)[-1]
    return target if is_absolute_http_url(target) else None


class HubCdnStrategy(BaseStrategy):
    name = "hubcdn"
    label = "HUBCDN"
    domains = ("hubcdn",)

    def extract(self, page: FetchedPage) -> list[RawCandidate]:
        reurl = find_script_var(page.body, "reurl")
        target = decode_reurl(reurl) if reurl else None
        if not target:
            log.debug("hubcdn_reurl_not_found", url=page.final_url, has_var=bool(reurl))
            return []
        family = (
            SourceFamily.ADAPTIVE_STREAM
            if ".m3u8" in target.lower()
            else SourceFamily.DIRECT_FILE_HOST
        )
        return [RawCandidate(display_text=self.label, href=target, family=family)]
