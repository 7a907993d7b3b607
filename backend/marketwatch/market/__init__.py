"""Market data subsystem for marketwatch.

Public API:
    Ticker, MarketEntity       - Wire models for a pair and its 24h stats
    MarketCache                - Thread-safe in-memory entity store and queries
    SnapshotLoader             - Bootstrap fetch with bounded retries
    TickerFeed                 - Stream subscription with fixed-delay reconnect
    MarketDataManager          - Bootstrap-then-stream lifecycle + query surface
    MarketSettings             - Endpoints and timing, loadable from env
    create_market_data_manager - Factory wiring the aiohttp collaborators
    create_market_router       - FastAPI router factory for the HTTP/SSE surface
"""

from .api import create_market_router
from .cache import MarketCache, SortField, SortOrder
from .config import MarketSettings
from .errors import MarketDataError, SnapshotError
from .factory import create_market_data_manager
from .feed import TickerFeed
from .interface import SnapshotFetcher, StreamConnection, StreamTransport
from .manager import CacheState, MarketDataManager
from .models import MarketEntity, Ticker
from .snapshot import BootstrapResult, BootstrapStatus, SnapshotLoader

__all__ = [
    "BootstrapResult",
    "BootstrapStatus",
    "CacheState",
    "MarketCache",
    "MarketDataError",
    "MarketDataManager",
    "MarketEntity",
    "MarketSettings",
    "SnapshotError",
    "SnapshotFetcher",
    "SnapshotLoader",
    "SortField",
    "SortOrder",
    "StreamConnection",
    "StreamTransport",
    "Ticker",
    "TickerFeed",
    "create_market_data_manager",
    "create_market_router",
]
