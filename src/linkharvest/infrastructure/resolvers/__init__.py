"""Extraction strategies and the pipeline stages around them."""

from __future__ import annotations

from .chain import ChainFollower
from .fallback import FallbackResolver
from .filepress import FilePressStrategy
from .gdflix import GDFlixStrategy
from .hubcdn import HubCdnStrategy
from .hubcloud import HubCloudStrategy
from .hubdrive import HubDriveStrategy
from .normalizer import StreamNormalizer
from .pixeldrain import PixelDrainStrategy
from .registry import DEFAULT_STRATEGY_ORDER, ResolverRegistry
from .sdsp import SdSpStrategy
from .wishonly import WishOnlyStrategy

__all__ = [
    "DEFAULT_STRATEGY_ORDER",
    "ChainFollower",
    "FallbackResolver",
    "FilePressStrategy",
    "GDFlixStrategy",
    "HubCdnStrategy",
    "HubCloudStrategy",
    "HubDriveStrategy",
    "PixelDrainStrategy",
    "ResolverRegistry",
    "SdSpStrategy",
    "StreamNormalizer",
    "WishOnlyStrategy",
]
