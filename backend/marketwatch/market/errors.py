"""Exceptions raised inside the market data subsystem."""


class MarketDataError(Exception):
    """Base class for market data errors."""


class SnapshotError(MarketDataError):
    """The bootstrap endpoint answered, but not with a usable snapshot."""
