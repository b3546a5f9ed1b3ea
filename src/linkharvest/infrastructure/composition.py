"""Composition root: wires registry, fetcher and pipeline stages."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog

from linkharvest.application.use_cases.resolve_link import ResolveLinkUseCase
from linkharvest.domain.ports.page_fetcher import PageFetcherPort
from linkharvest.domain.ports.resolver_strategy import ResolverStrategyPort
from linkharvest.infrastructure.config.schema import ResolverConfig
from linkharvest.infrastructure.http.fetcher import HttpxPageFetcher, create_http_client
from linkharvest.infrastructure.resolvers.chain import ChainFollower
from linkharvest.infrastructure.resolvers.fallback import FallbackResolver
from linkharvest.infrastructure.resolvers.filepress import FilePressStrategy
from linkharvest.infrastructure.resolvers.gdflix import GDFlixStrategy
from linkharvest.infrastructure.resolvers.hubcdn import HubCdnStrategy
from linkharvest.infrastructure.resolvers.hubcloud import HubCloudStrategy
from linkharvest.infrastructure.resolvers.hubdrive import HubDriveStrategy
from linkharvest.infrastructure.resolvers.normalizer import StreamNormalizer
from linkharvest.infrastructure.resolvers.pixeldrain import PixelDrainStrategy
from linkharvest.infrastructure.resolvers.registry import (
    DEFAULT_STRATEGY_ORDER,
    ResolverRegistry,
)
from linkharvest.infrastructure.resolvers.sdsp import SdSpStrategy
from linkharvest.infrastructure.resolvers.wishonly import WishOnlyStrategy

log = structlog.get_logger(__name__)

_STRATEGY_TYPES: dict[str, type[ResolverStrategyPort]] = {
    "gdflix": GDFlixStrategy,
    "hubcloud": HubCloudStrategy,
    "hubdrive": HubDriveStrategy,
    "hubcdn": HubCdnStrategy,
    "filepress": FilePressStrategy,
    "wishonly": WishOnlyStrategy,
    "sdsp": SdSpStrategy,
    "pixeldrain": PixelDrainStrategy,
}


def build_default_registry() -> ResolverRegistry:
    """Registry with every built-in strategy in ``DEFAULT_STRATEGY_ORDER``."""
    return ResolverRegistry(_STRATEGY_TYPES[name]() for name in DEFAULT_STRATEGY_ORDER)


def build_resolve_use_case(
    config: ResolverConfig,
    fetcher: PageFetcherPort,
    registry: ResolverRegistry | None = None,
) -> ResolveLinkUseCase:
    """Assemble the pipeline around an existing fetcher."""
    registry = registry or build_default_registry()
    follower = ChainFollower(
        fetcher,
        registry=registry,
        fallback=FallbackResolver(fetcher),
        max_concurrent_hops=config.max_concurrent_hops,
    )
    return ResolveLinkUseCase(
        registry=registry,
        fetcher=fetcher,
        follower=follower,
        normalizer=StreamNormalizer(user_agent=config.user_agent),
        config=config,
    )


@asynccontextmanager
async def resolver_session(
    config: ResolverConfig,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[ResolveLinkUseCase]:
    """Yield a ready use case; closes the HTTP client it created on exit."""
    owns_client = http_client is None
    client = http_client or create_http_client(config)
    log.debug(
        "resolver_session_opened",
        timeout_ms=config.timeout_ms,
        max_concurrent_hops=config.max_concurrent_hops,
    )
    try:
        fetcher = HttpxPageFetcher(client, timeout=config.timeout_seconds)
        yield build_resolve_use_case(config, fetcher)
    finally:
        if owns_client:
            await client.aclose()
        log.debug("resolver_session_closed")
