"""Lifecycle and public query surface of the live market data cache."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from threading import Lock

from .cache import MarketCache, SortField, SortOrder
from .feed import TickerFeed
from .models import MarketEntity
from .snapshot import BootstrapResult, BootstrapStatus, SnapshotLoader

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    READY = "ready"
    READY_EMPTY = "ready_empty"  # bootstrap failed or cancelled; no stream


class MarketDataManager:
    """Owns the bootstrap-then-stream lifecycle of one MarketCache.

    Construct one per composition root (see create_market_data_manager) and
    await initialize() before relying on the data. Queries are safe to call
    at any time; before bootstrap completes they see an empty cache.

    Lifecycle:
        manager = create_market_data_manager()
        result = await manager.initialize()   # one bootstrap, shared by all callers
        manager.get_default_sorted_data(10)
        # ... app shutting down ...
        await manager.shutdown()
    """

    def __init__(self, loader: SnapshotLoader, cache: MarketCache, feed: TickerFeed) -> None:
        self._loader = loader
        self._cache = cache
        self._feed = feed
        self._state = CacheState.UNINITIALIZED
        self._bootstrap_task: asyncio.Task[BootstrapResult] | None = None
        self._init_lock = Lock()  # guards check-and-create of _bootstrap_task
        self._result: BootstrapResult | None = None

    async def initialize(self) -> BootstrapResult:
        """Bootstrap the cache and open the stream, exactly once.

        Concurrent and later callers all await the same bootstrap and get the
        same result. A failed bootstrap is returned, not raised. The bootstrap
        task belongs to the event loop of the first caller; callers on other
        threads must submit to that loop (asyncio.run_coroutine_threadsafe).
        Once shutdown() has cancelled the bootstrap, later calls return the
        FAILED result instead of bootstrapping again.
        """
        with self._init_lock:
            if self._bootstrap_task is None:
                self._state = CacheState.BOOTSTRAPPING
                self._bootstrap_task = asyncio.create_task(
                    self._bootstrap(), name="market-bootstrap"
                )
            task = self._bootstrap_task

        if task.cancelled() and self._result is not None:
            return self._result
        # A cancelled caller must not cancel the shared bootstrap
        return await asyncio.shield(task)

    async def shutdown(self) -> None:
        """Cancel a pending bootstrap, stop the feed and close its connection."""
        task = self._bootstrap_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._feed.stop()
        logger.info("Market data manager shut down")

    # --- Queries ---

    def get_market_data(
        self,
        sort_field: SortField | str = SortField.SORT_ORDER,
        order: SortOrder | str = SortOrder.ASC,
        limit: int | None = None,
    ) -> list[MarketEntity]:
        return self._cache.get_market_data(sort_field, order, limit)

    def get_default_sorted_data(self, limit: int | None = None) -> list[MarketEntity]:
        return self._cache.get_default_sorted_data(limit)

    def get_total_count(self) -> int:
        return self._cache.get_total_count()

    def fuzzy_search(self, query: str, limit: int | None = None) -> list[MarketEntity]:
        return self._cache.fuzzy_search(query, limit)

    def toggle_favorite(self, pair_name: str) -> bool:
        return self._cache.toggle_favorite(pair_name)

    def get_favorites(self) -> list[MarketEntity]:
        return self._cache.get_favorites()

    def is_favorite(self, pair_name: str) -> bool:
        return self._cache.is_favorite(pair_name)

    # --- Observability ---

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def bootstrap_result(self) -> BootstrapResult | None:
        """None until the bootstrap has finished."""
        return self._result

    @property
    def last_update_at(self) -> float | None:
        return self._cache.last_update_at

    @property
    def is_streaming(self) -> bool:
        return self._feed.is_running

    @property
    def version(self) -> int:
        return self._cache.version

    def status(self) -> dict:
        return {
            "state": self._state.value,
            "bootstrap": self._result.to_dict() if self._result else None,
            "pairs": self._cache.get_total_count(),
            "streaming": self.is_streaming,
            "last_update_at": self._cache.last_update_at,
            "connect_count": self._feed.connect_count,
        }

    # --- Internal ---

    async def _bootstrap(self) -> BootstrapResult:
        try:
            result = await self._loader.load()
        except asyncio.CancelledError:
            self._result = BootstrapResult(status=BootstrapStatus.FAILED, reason="cancelled")
            self._state = CacheState.READY_EMPTY
            logger.warning("Bootstrap cancelled; serving an empty cache")
            raise
        self._result = result

        if not result.ok:
            self._state = CacheState.READY_EMPTY
            logger.error("Bootstrap failed (%s); serving an empty cache", result.reason)
            return result

        count = self._cache.load(result.entities)
        self._state = CacheState.READY
        if count == 0:
            logger.warning("Bootstrap returned no pairs; not opening the stream")
            return result

        await self._feed.start(self._cache.pair_names())
        return result
