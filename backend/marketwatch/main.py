"""FastAPI application entry point."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .market import MarketDataManager, create_market_data_manager, create_market_router


def create_app(manager: MarketDataManager | None = None) -> FastAPI:
    """Build the app. The manager bootstraps on startup and shuts down on exit."""
    manager = manager or create_market_data_manager()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await manager.initialize()
        yield
        await manager.shutdown()

    app = FastAPI(title="marketwatch", lifespan=lifespan)
    app.state.market = manager
    app.include_router(create_market_router(manager))
    return app
