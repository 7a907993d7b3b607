"""Factory for the market data manager."""

from __future__ import annotations

import logging

from .cache import MarketCache
from .client import HttpSnapshotFetcher, WebSocketTransport
from .config import MarketSettings
from .feed import TickerFeed
from .manager import MarketDataManager
from .snapshot import SnapshotLoader

logger = logging.getLogger(__name__)


def create_market_data_manager(settings: MarketSettings | None = None) -> MarketDataManager:
    """Wire a MarketDataManager against the real HTTP and websocket endpoints.

    Settings default to MarketSettings.from_env(). Returns an uninitialized
    manager. Caller must await manager.initialize().
    """
    settings = settings or MarketSettings.from_env()

    cache = MarketCache(reject_stale_updates=settings.reject_stale_updates)
    loader = SnapshotLoader(
        HttpSnapshotFetcher(settings.snapshot_url),
        timeout=settings.fetch_timeout,
        max_attempts=settings.max_attempts,
        retry_delay=settings.retry_delay,
    )
    feed = TickerFeed(
        WebSocketTransport(settings.stream_url),
        cache,
        reconnect_delay=settings.reconnect_delay,
        topic_suffix=settings.topic_suffix,
    )

    logger.info("Market data: snapshot %s, stream %s", settings.snapshot_url, settings.stream_url)
    return MarketDataManager(loader=loader, cache=cache, feed=feed)
