"""Data models for market data."""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _as_text(value: Any) -> Any:
    """Exchanges send some numeric fields as JSON numbers. Keep them as text."""
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


NumericText = Annotated[str, BeforeValidator(_as_text)]


def parse_number(text: str) -> float | None:
    """Parse a numeric text field, or None if it is empty or malformed."""
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    if math.isnan(value):
        return None
    return value


class Ticker(BaseModel):
    """Immutable 24h market stats for one pair, as sent by the exchange.

    Wire keys are the exchange's single-letter names; numeric values stay
    as text and are only parsed when compared.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    symbol: str = Field(..., alias="s")
    event_type: str = Field("", alias="e")
    event_time: NumericText = Field("", alias="E")
    price_change: NumericText = Field("", alias="p")
    price_change_percent: NumericText = Field("", alias="P")
    weighted_avg_price: NumericText = Field("", alias="w")
    prev_close_price: NumericText = Field("", alias="x")
    last_price: NumericText = Field("", alias="c")
    last_qty: NumericText = Field("", alias="Q")
    bid_price: NumericText = Field("", alias="b")
    bid_qty: NumericText = Field("", alias="B")
    ask_price: NumericText = Field("", alias="a")
    ask_qty: NumericText = Field("", alias="A")
    open_price: NumericText = Field("", alias="o")
    high_price: NumericText = Field("", alias="h")
    low_price: NumericText = Field("", alias="l")
    volume: NumericText = Field("", alias="v")
    quote_volume: NumericText = Field("", alias="q")
    open_time: NumericText = Field("", alias="O")
    close_time: NumericText = Field("", alias="C")
    first_trade_id: NumericText = Field("", alias="F")
    last_trade_id: NumericText = Field("", alias="L")
    trade_count: NumericText = Field("", alias="n")


class MarketEntity(BaseModel):
    """One tracked trading pair and its current ticker."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    pair_name: str
    image: str = ""
    sort_order: int = 0
    ticker: Ticker
    is_favorite: bool = Field(False, alias="is_collect")

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return self.model_dump()


class SnapshotResponse(BaseModel):
    """Body of the bootstrap REST endpoint.

    Records in ``data`` are validated one by one so a bad record only costs
    that pair.
    """

    model_config = ConfigDict(extra="ignore")

    status_code: int
    message: str = ""
    data: list[Any] = Field(default_factory=list)


class StreamEnvelope(BaseModel):
    """Inbound stream frame. ``data`` is validated separately per message kind."""

    model_config = ConfigDict(extra="ignore")

    type: str
    topic: str = ""
    data: Any = None

    def is_ticker_update(self, suffix: str) -> bool:
        return self.type == "message" and self.topic.endswith(suffix)
