"""httpx-backed page fetcher.

Implements ``PageFetcherPort``.  Every request carries an explicit timeout;
network errors and 4xx/5xx statuses are translated into the domain's
``FetchError`` hierarchy so strategies never see ``httpx`` exceptions.
"""

from __future__ import annotations

from collections.abc import Mapping

import httpx
import structlog

from linkharvest.domain.exceptions import (
    FetchError,
    FetchStatusError,
    FetchTimeoutError,
)
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.config.schema import ResolverConfig

log = structlog.get_logger(__name__)

_BROWSER_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.5",
}


def create_http_client(config: ResolverConfig) -> httpx.AsyncClient:
    """Build the shared ``httpx.AsyncClient`` for a resolver pipeline."""
    return httpx.AsyncClient(
        timeout=config.timeout_seconds,
        follow_redirects=config.follow_redirects,
        headers={"User-Agent": config.user_agent, **_BROWSER_HEADERS},
    )


class HttpxPageFetcher:
    """Fetches pages through a shared ``httpx.AsyncClient``.

    A 3xx response is only returned when ``follow_redirects=False`` so that
    redirect lookups can read the ``Location`` header.
    """

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = 15.0) -> None:
        self._http = http_client
        self._timeout = timeout

    async def fetch(
        self,
        url: str,
        *,
        referer: str | None = None,
        follow_redirects: bool = True,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
    ) -> FetchedPage:
        request_headers = dict(headers or {})
        if referer:
            request_headers["Referer"] = referer

        try:
            resp = await self._http.request(
                method,
                url,
                headers=request_headers,
                follow_redirects=follow_redirects,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            log.debug("fetch_timeout", url=url)
            raise FetchTimeoutError(url) from exc
        except httpx.HTTPError as exc:
            log.debug("fetch_transport_error", url=url, error=str(exc))
            raise FetchError(url, type(exc).__name__) from exc

        if resp.status_code >= 400:
            log.debug("fetch_http_error", url=url, status=resp.status_code)
            raise FetchStatusError(url, resp.status_code)

        body = "" if method.upper() == "HEAD" else resp.text
        return FetchedPage(
            url=url,
            final_url=str(resp.url),
            status_code=resp.status_code,
            headers={k.lower(): v for k, v in resp.headers.items()},
            body=body,
        )
