"""HTTP and SSE endpoints over the market data manager."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .manager import MarketDataManager
from .models import MarketEntity

logger = logging.getLogger(__name__)


def _dump(entities: list[MarketEntity]) -> list[dict]:
    return [entity.to_dict() for entity in entities]


def create_market_router(manager: MarketDataManager) -> APIRouter:
    """Create the market router with a reference to the manager.

    This factory pattern lets us inject the manager without globals.
    """
    router = APIRouter(prefix="/api/market", tags=["market"])

    @router.get("")
    async def market_data(
        sort: str = "sort_order",
        order: str = "asc",
        limit: int | None = None,
    ) -> list[dict]:
        """All pairs sorted by ``sort``; an unknown field keeps the stored order."""
        return _dump(manager.get_market_data(sort, order, limit))

    @router.get("/default")
    async def default_sorted(limit: int | None = None) -> list[dict]:
        return _dump(manager.get_default_sorted_data(limit))

    @router.get("/count")
    async def count() -> dict:
        return {"count": manager.get_total_count()}

    @router.get("/search")
    async def search(q: str = "", limit: int | None = None) -> list[dict]:
        return _dump(manager.fuzzy_search(q, limit))

    @router.get("/favorites")
    async def favorites() -> list[dict]:
        return _dump(manager.get_favorites())

    @router.get("/favorites/{pair_name}")
    async def favorite_status(pair_name: str) -> dict:
        return {"pair_name": pair_name, "is_favorite": manager.is_favorite(pair_name)}

    @router.post("/favorites/{pair_name}")
    async def toggle_favorite(pair_name: str) -> dict:
        return {"pair_name": pair_name, "is_favorite": manager.toggle_favorite(pair_name)}

    @router.get("/status")
    async def status() -> dict:
        """Bootstrap outcome and freshness, so callers can tell stale from empty."""
        return manager.status()

    @router.get("/stream")
    async def stream_market(request: Request) -> StreamingResponse:
        """SSE endpoint for live market data.

        Sends the default-sorted list whenever the cache changes. The client
        connects with EventSource and receives events in the format:

            data: [{"pair_name": "BTCUSDT", "ticker": {...}, ...}, ...]
        """
        return StreamingResponse(
            _generate_events(manager, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    manager: MarketDataManager,
    request: Request,
    interval: float = 1.0,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted market snapshots.

    Checks the cache version every `interval` seconds and sends only on
    change. Stops when the client disconnects.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = manager.version
            if current_version != last_version:
                last_version = current_version
                entities = manager.get_default_sorted_data()
                if entities:
                    yield f"data: {json.dumps(_dump(entities))}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
