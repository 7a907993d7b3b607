"""aiohttp implementations of the snapshot fetcher and stream transport."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import aiohttp

from .interface import SnapshotFetcher, StreamConnection, StreamTransport

logger = logging.getLogger(__name__)


class HttpSnapshotFetcher(SnapshotFetcher):
    """GET the bootstrap snapshot over HTTP. Opens a fresh session per call."""

    def __init__(self, url: str) -> None:
        self._url = url

    async def fetch(self) -> Any:
        async with aiohttp.ClientSession(trust_env=True) as session:
            async with session.get(self._url) as response:
                response.raise_for_status()
                return await response.json(content_type=None)


class WebSocketConnection(StreamConnection):
    """StreamConnection over an aiohttp websocket. Owns its session."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
    ) -> None:
        self._session = session
        self._ws = ws

    async def send(self, message: str) -> None:
        await self._ws.send_str(message)

    async def messages(self) -> AsyncIterator[str]:
        # aiohttp stops iterating on CLOSE/CLOSING/CLOSED frames
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data.decode("utf-8", errors="replace")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error("WebSocket error: %s", self._ws.exception())

    async def close(self) -> None:
        try:
            if not self._ws.closed:
                await self._ws.close()
        finally:
            if not self._session.closed:
                await self._session.close()


class WebSocketTransport(StreamTransport):
    """Opens websocket connections to the streaming endpoint."""

    def __init__(self, url: str, heartbeat: float | None = 30.0) -> None:
        self._url = url
        self._heartbeat = heartbeat

    async def connect(self) -> StreamConnection:
        session = aiohttp.ClientSession(trust_env=True)
        try:
            ws = await session.ws_connect(self._url, heartbeat=self._heartbeat)
        except BaseException:
            await session.close()
            raise
        logger.info("WebSocket connection established: %s", self._url)
        return WebSocketConnection(session, ws)
