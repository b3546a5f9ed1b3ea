from .page_fetcher import FetchedPage, PageFetcherPort
from .resolver_strategy import ResolverStrategyPort

__all__ = [
    "FetchedPage",
    "PageFetcherPort",
    "ResolverStrategyPort",
]
