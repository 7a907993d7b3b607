"""Abstract interfaces for the external market data collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any


class SnapshotFetcher(ABC):
    """One-shot source of the bootstrap snapshot.

    The loader calls fetch() once per attempt and enforces its own timeout,
    so implementations don't need to.
    """

    @abstractmethod
    async def fetch(self) -> Any:
        """Return the decoded JSON body of the snapshot endpoint.

        Raise on transport failures or an HTTP error status.
        """


class StreamConnection(ABC):
    """An open bidirectional message channel.

    Lifecycle:
        connection = await transport.connect()
        await connection.send('{"sub": [...]}')
        async for raw in connection.messages():
            ...  # iteration ends when the channel closes
        await connection.close()
    """

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one text frame."""

    @abstractmethod
    def messages(self) -> AsyncIterator[str]:
        """Yield inbound text frames until the connection closes."""

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. Safe to call more than once."""


class StreamTransport(ABC):
    """Factory for stream connections; called again on every reconnect."""

    @abstractmethod
    async def connect(self) -> StreamConnection:
        """Open a new connection to the streaming endpoint."""
