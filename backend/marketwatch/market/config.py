"""Settings for the market data subsystem."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class MarketSettings:
    """Endpoints and timing for bootstrap and streaming.

    Defaults point at the spot market. The futures feed is a second
    instance with different URLs.
    """

    snapshot_url: str = "https://b.cexyes.com/api/spot/tickers"
    stream_url: str = "wss://stream.cexyes.com"
    fetch_timeout: float = 10.0  # seconds per bootstrap attempt
    max_attempts: int = 3
    retry_delay: float = 5.0  # between bootstrap attempts
    reconnect_delay: float = 5.0  # after every stream close
    topic_suffix: str = "@ticker"
    reject_stale_updates: bool = False

    @classmethod
    def from_env(cls) -> MarketSettings:
        """Build settings from MARKETWATCH_* environment variables.

        Unset or blank variables keep the default.
        """
        defaults = cls()

        def _get(name: str) -> str | None:
            value = os.environ.get(f"MARKETWATCH_{name}", "").strip()
            return value or None

        def _float(name: str, default: float) -> float:
            value = _get(name)
            return float(value) if value is not None else default

        stale = _get("REJECT_STALE_UPDATES")
        attempts = _get("MAX_ATTEMPTS")

        return cls(
            snapshot_url=_get("SNAPSHOT_URL") or defaults.snapshot_url,
            stream_url=_get("STREAM_URL") or defaults.stream_url,
            fetch_timeout=_float("FETCH_TIMEOUT", defaults.fetch_timeout),
            max_attempts=int(attempts) if attempts is not None else defaults.max_attempts,
            retry_delay=_float("RETRY_DELAY", defaults.retry_delay),
            reconnect_delay=_float("RECONNECT_DELAY", defaults.reconnect_delay),
            topic_suffix=_get("TOPIC_SUFFIX") or defaults.topic_suffix,
            reject_stale_updates=(
                stale.lower() in _TRUE_VALUES if stale is not None else defaults.reject_stale_updates
            ),
        )
