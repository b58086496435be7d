"""Media acquisition strategies with ordered fallback."""

from .base import BaseStrategy
from .chain import StrategyChain
from .facebook import FacebookPageStrategy
from .instagram_embed import InstagramEmbedStrategy
from .relay import JsonRelay, RelayClient, RelayStrategy, SnapSaveRelay, build_relays
from .rendered import (
    FacebookRenderedStrategy,
    InstagramRenderedStrategy,
    NetworkCapture,
    PlaywrightRenderer,
    YouTubeRenderedStrategy,
)
from .youtube import YouTubeWatchPageStrategy

__all__ = [
    "BaseStrategy",
    "StrategyChain",
    "FacebookPageStrategy",
    "FacebookRenderedStrategy",
    "InstagramEmbedStrategy",
    "InstagramRenderedStrategy",
    "JsonRelay",
    "NetworkCapture",
    "PlaywrightRenderer",
    "RelayClient",
    "RelayStrategy",
    "SnapSaveRelay",
    "YouTubeRenderedStrategy",
    "YouTubeWatchPageStrategy",
    "build_relays",
]
