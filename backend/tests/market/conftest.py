"""Fixtures for market data tests.

The external collaborators (snapshot fetch and stream transport) are
replaced by the in-memory fakes in tests.market.fakes.
"""

import pytest

from marketwatch.market.cache import MarketCache
from marketwatch.market.models import MarketEntity
from tests.market.fakes import FakeTransport, make_record


@pytest.fixture
def records() -> list[dict]:
    """Four pairs with distinct names, volumes, prices and changes."""
    return [
        make_record("BTCUSDT", 1, last="43000.5", volume="2500.1", change="2.10"),
        make_record("ETHUSDT", 2, last="2300.25", volume="18000.0", change="-1.30"),
        make_record("SOLUSDT", 3, last="98.7", volume="90000.0", change="5.75"),
        make_record("USDCBTC", 4, last="0.000023", volume="12.0", change="0.00"),
    ]


@pytest.fixture
def entities(records) -> list[MarketEntity]:
    return [MarketEntity.model_validate(r) for r in records]


@pytest.fixture
def cache(entities) -> MarketCache:
    cache = MarketCache()
    cache.load(entities)
    return cache


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
