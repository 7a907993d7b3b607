"""Live ticker feed: subscribe, apply updates, reconnect forever."""

from __future__ import annotations

import asyncio
import json
import logging

from pydantic import ValidationError

from .cache import MarketCache
from .interface import StreamConnection, StreamTransport
from .models import StreamEnvelope, Ticker

logger = logging.getLogger(__name__)


class TickerFeed:
    """Keeps the MarketCache current from the streaming endpoint.

    Runs one background asyncio task. Each cycle opens a connection, sends a
    single batched subscription for every pair, and applies ticker updates
    until the connection closes. Any close, including a failed connect,
    schedules exactly one reconnect after ``reconnect_delay`` seconds; there
    is no backoff and no attempt cap. stop() cancels the task and closes the
    live connection.
    """

    def __init__(
        self,
        transport: StreamTransport,
        cache: MarketCache,
        reconnect_delay: float = 5.0,
        topic_suffix: str = "@ticker",
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._reconnect_delay = reconnect_delay
        self._suffix = topic_suffix
        self._pairs: list[str] = []
        self._task: asyncio.Task | None = None
        self._connection: StreamConnection | None = None
        self.connect_count: int = 0
        self.messages_received: int = 0
        self.messages_discarded: int = 0

    async def start(self, pairs: list[str]) -> None:
        """Begin streaming updates for ``pairs``. Calling twice is a no-op."""
        if self.is_running:
            return
        self._pairs = list(pairs)
        self._task = asyncio.create_task(self._run_loop(), name="ticker-feed")
        logger.info("Ticker feed started: %d pairs", len(self._pairs))

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        await self._close_connection()
        logger.info("Ticker feed stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscription_message(self) -> str:
        return json.dumps({"sub": [f"{pair}{self._suffix}" for pair in self._pairs]})

    def handle_message(self, raw: str | bytes) -> bool:
        """Parse one inbound frame and apply it. Returns True if the cache changed.

        Malformed frames are logged and dropped; this never raises.
        """
        self.messages_received += 1
        try:
            envelope = StreamEnvelope.model_validate_json(raw)
        except ValidationError as e:
            self.messages_discarded += 1
            logger.warning("Discarding malformed stream message: %s", e.errors()[0]["msg"])
            return False

        if not envelope.is_ticker_update(self._suffix):
            return False

        try:
            ticker = Ticker.model_validate(envelope.data)
        except ValidationError as e:
            self.messages_discarded += 1
            logger.warning("Discarding malformed ticker on %s: %s", envelope.topic, e.errors()[0]["msg"])
            return False
        return self._cache.apply_ticker(ticker)

    # --- Internal ---

    async def _run_loop(self) -> None:
        while True:
            try:
                await self._run_connection()
            except Exception:
                logger.exception("Ticker stream failed")
            logger.info(
                "Ticker stream closed. Reconnecting in %.1fs...", self._reconnect_delay
            )
            await asyncio.sleep(self._reconnect_delay)

    async def _run_connection(self) -> None:
        """One connect → subscribe → receive cycle. Returns when the stream closes."""
        connection = await self._transport.connect()
        self._connection = connection
        self.connect_count += 1
        try:
            await connection.send(self.subscription_message())
            async for raw in connection.messages():
                self.handle_message(raw)
        finally:
            await self._close_connection()

    async def _close_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as e:
            logger.warning("Error closing stream connection: %s", e)
