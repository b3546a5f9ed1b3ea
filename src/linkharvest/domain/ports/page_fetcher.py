"""Port for fetching pages over HTTP."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class FetchedPage:
    """A fetched HTTP response reduced to what extractors need.

    ``headers`` keys are lower-case.
    """

    url: str
    final_url: str
    status_code: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str) -> str:
        """Return a response header value, ``""`` when absent."""
        return self.headers.get(name.lower(), "")


@runtime_checkable
class PageFetcherPort(Protocol):
    """Fetches a URL with referer and redirect control.

    Failures surface as ``FetchError`` (or its subclasses); the caller
    decides whether that is fatal.
    """

    async def fetch(
        self,
        url: str,
        *,
        referer: str | None = None,
        follow_redirects: bool = True,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
    ) -> FetchedPage: ...
