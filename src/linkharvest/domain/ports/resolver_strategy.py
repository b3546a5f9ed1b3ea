"""Port for per-backend extraction strategies."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from linkharvest.domain.entities.streams import (
    PageDetails,
    RawCandidate,
    SubtitleDescriptor,
)
from linkharvest.domain.ports.page_fetcher import FetchedPage


@runtime_checkable
class ResolverStrategyPort(Protocol):
    """Extraction and classification logic bound to one backend family.

    Strategies are stateless: all inputs arrive as ``FetchedPage`` bodies,
    all outputs are value objects.  Network hops are performed by the
    chain follower, never by the strategy itself.
    """

    @property
    def name(self) -> str:
        """Registry name (e.g. ``"hubcloud"``)."""
        ...

    @property
    def label(self) -> str:
        """Human-readable source label (e.g. ``"HubCloud"``)."""
        ...

    @property
    def domains(self) -> tuple[str, ...]:
        """Hostname substrings this strategy owns."""
        ...

    @property
    def requires_referer(self) -> bool: ...

    @property
    def needs_page(self) -> bool:
        """False when candidates can be derived from the URL alone."""
        ...

    def matches(self, url: str) -> bool: ...

    def describe(self, page: FetchedPage) -> PageDetails: ...

    def extract(self, page: FetchedPage) -> list[RawCandidate]: ...

    def extract_subtitles(self, page: FetchedPage) -> list[SubtitleDescriptor]: ...

    def extract_embed(self, page: FetchedPage) -> list[RawCandidate]:
        """Second extraction pass run against an embed-page hop body."""
        ...

    def rewrite_location(self, location: str) -> str:
        """Post-process a redirect lookup's header value."""
        ...
