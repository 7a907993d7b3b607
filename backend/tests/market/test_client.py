"""Tests for the aiohttp collaborators (mocked sessions)."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from marketwatch.market.client import HttpSnapshotFetcher, WebSocketConnection, WebSocketTransport


class _FakeWebSocket:
    """Async-iterable stand-in for aiohttp.ClientWebSocketResponse."""

    def __init__(self, frames) -> None:
        self._frames = list(frames)
        self.closed = False
        self.sent: list[str] = []
        self.exception = MagicMock(return_value=RuntimeError("boom"))

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._frames:
            raise StopAsyncIteration
        return self._frames.pop(0)

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True


def _frame(kind, data=None):
    return SimpleNamespace(type=kind, data=data)


def _session() -> MagicMock:
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    return session


@pytest.mark.asyncio
class TestWebSocketConnection:
    async def test_yields_text_and_binary_frames(self):
        ws = _FakeWebSocket([
            _frame(aiohttp.WSMsgType.TEXT, '{"a": 1}'),
            _frame(aiohttp.WSMsgType.BINARY, b'{"b": 2}'),
        ])
        connection = WebSocketConnection(_session(), ws)

        received = [raw async for raw in connection.messages()]
        assert received == ['{"a": 1}', '{"b": 2}']

    async def test_error_frames_are_skipped(self):
        ws = _FakeWebSocket([
            _frame(aiohttp.WSMsgType.ERROR),
            _frame(aiohttp.WSMsgType.TEXT, "after-error"),
        ])
        connection = WebSocketConnection(_session(), ws)

        received = [raw async for raw in connection.messages()]
        assert received == ["after-error"]
        ws.exception.assert_called_once()

    async def test_send(self):
        ws = _FakeWebSocket([])
        connection = WebSocketConnection(_session(), ws)
        await connection.send('{"sub": []}')
        assert ws.sent == ['{"sub": []}']

    async def test_close_closes_socket_and_session(self):
        ws = _FakeWebSocket([])
        session = _session()
        connection = WebSocketConnection(session, ws)

        await connection.close()
        assert ws.closed
        session.close.assert_awaited_once()


@pytest.mark.asyncio
class TestWebSocketTransport:
    async def test_connect_wraps_socket(self):
        session = _session()
        ws = _FakeWebSocket([])
        session.ws_connect = AsyncMock(return_value=ws)

        with patch("marketwatch.market.client.aiohttp.ClientSession", return_value=session):
            connection = await WebSocketTransport("wss://example.com", heartbeat=None).connect()

        session.ws_connect.assert_awaited_once_with("wss://example.com", heartbeat=None)
        assert isinstance(connection, WebSocketConnection)

    async def test_failed_connect_closes_session(self):
        session = _session()
        session.ws_connect = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with patch("marketwatch.market.client.aiohttp.ClientSession", return_value=session):
            with pytest.raises(aiohttp.ClientConnectionError):
                await WebSocketTransport("wss://example.com").connect()

        session.close.assert_awaited_once()


@pytest.mark.asyncio
class TestHttpSnapshotFetcher:
    async def test_returns_decoded_body(self):
        body = {"status_code": 200, "message": "ok", "data": []}
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json = AsyncMock(return_value=body)

        session = MagicMock()
        session.__aenter__.return_value = session
        session.get.return_value.__aenter__.return_value = response

        with patch("marketwatch.market.client.aiohttp.ClientSession", return_value=session):
            result = await HttpSnapshotFetcher("https://example.com/tickers").fetch()

        assert result == body
        session.get.assert_called_once_with("https://example.com/tickers")
        response.raise_for_status.assert_called_once()

    async def test_http_error_propagates(self):
        response = MagicMock()
        response.raise_for_status = MagicMock(side_effect=aiohttp.ClientError("502"))

        session = MagicMock()
        session.__aenter__.return_value = session
        session.get.return_value.__aenter__.return_value = response

        with patch("marketwatch.market.client.aiohttp.ClientSession", return_value=session):
            with pytest.raises(aiohttp.ClientError):
                await HttpSnapshotFetcher("https://example.com/tickers").fetch()
