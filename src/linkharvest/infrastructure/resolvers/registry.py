"""Registry that dispatches page URLs to extraction strategies."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import structlog

from linkharvest.domain.exceptions import UnsupportedUrlError
from linkharvest.domain.ports.resolver_strategy import ResolverStrategyPort

log = structlog.get_logger(__name__)

# First match wins.  GDFlix and HubCloud come first because their pages
# link to the other hosts; PixelDrain is last since it never fetches.
DEFAULT_STRATEGY_ORDER: tuple[str, ...] = (
    "gdflix",
    "hubcloud",
    "hubdrive",
    "hubcdn",
    "filepress",
    "wishonly",
    "sdsp",
    "pixeldrain",
)


class ResolverRegistry:
    """Immutable, ordered collection of strategies.

    Built once; lookups never mutate state, so a single registry is shared
    by any number of concurrent resolutions.
    """

    def __init__(self, strategies: Iterable[ResolverStrategyPort]) -> None:
        ordered = tuple(strategies)
        seen: set[str] = set()
        for strategy in ordered:
            if strategy.name in seen:
                raise ValueError(f"Duplicate strategy name: {strategy.name!r}")
            seen.add(strategy.name)
        self._strategies = ordered
        log.debug("resolver_registry_built", strategies=self.names)

    @property
    def names(self) -> list[str]:
        """Strategy names in dispatch order."""
        return [s.name for s in self._strategies]

    def __iter__(self) -> Iterator[ResolverStrategyPort]:
        return iter(self._strategies)

    def __len__(self) -> int:
        return len(self._strategies)

    def get(self, name: str) -> ResolverStrategyPort | None:
        """Look up a strategy by name."""
        for strategy in self._strategies:
            if strategy.name == name:
                return strategy
        return None

    def find_strategy(self, url: str) -> ResolverStrategyPort | None:
        """Return the first strategy claiming *url*, or ``None``."""
        for strategy in self._strategies:
            if strategy.matches(url):
                return strategy
        return None

    def select_strategy(self, url: str) -> ResolverStrategyPort:
        """Return the first strategy claiming *url*.

        Raises:
            UnsupportedUrlError: No registered strategy claims the URL.
        """
        strategy = self.find_strategy(url)
        if strategy is None:
            log.info("resolver_unsupported_url", url=url)
            raise UnsupportedUrlError(url)
        return strategy
