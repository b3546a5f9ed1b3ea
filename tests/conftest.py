"""Shared test fixtures for the linkharvest test suite."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any
from unittest.mock import AsyncMock

import pytest

from linkharvest.domain.exceptions import FetchError
from linkharvest.domain.ports.page_fetcher import FetchedPage
from linkharvest.infrastructure.config.schema import ResolverConfig

# ---------------------------------------------------------------------------
# Page helpers
# ---------------------------------------------------------------------------


def _make_page(
    url: str,
    body: str = "",
    *,
    final_url: str | None = None,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> FetchedPage:
    return FetchedPage(
        url=url,
        final_url=final_url or url,
        status_code=status_code,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        body=body,
    )


@pytest.fixture()
def make_page() -> Callable[..., FetchedPage]:
    """Factory for ``FetchedPage`` values."""
    return _make_page


@pytest.fixture()
def routed_fetcher() -> Callable[[Mapping[str, Any]], AsyncMock]:
    """Build a ``PageFetcherPort`` fake answering from a URL -> result map.

    Values are ``FetchedPage`` objects, ``FetchError`` instances (raised)
    or ``str`` bodies.  Keys may be prefixed with ``"HEAD "`` to answer
    HEAD requests separately.  Unknown URLs raise ``FetchError``.
    """

    def _build(routes: Mapping[str, Any]) -> AsyncMock:
        async def _fetch(
            url: str,
            *,
            referer: str | None = None,
            follow_redirects: bool = True,
            method: str = "GET",
            headers: Mapping[str, str] | None = None,
        ) -> FetchedPage:
            key = f"HEAD {url}" if method == "HEAD" and f"HEAD {url}" in routes else url
            result = routes.get(key)
            if result is None:
                raise FetchError(url, "http 404")
            if isinstance(result, Exception):
                raise result
            if isinstance(result, str):
                return _make_page(url, result)
            return result

        fetcher = AsyncMock()
        fetcher.fetch = AsyncMock(side_effect=_fetch)
        return fetcher

    return _build


@pytest.fixture()
def resolver_config() -> ResolverConfig:
    return ResolverConfig(user_agent="TestAgent/1.0")
