"""Thread-safe in-memory market data cache."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum
from threading import Lock

from .models import MarketEntity, Ticker, parse_number

logger = logging.getLogger(__name__)


class SortField(str, Enum):
    PAIR_NAME = "pair_name"
    VOLUME_24H = "volume24h"
    LAST_PRICE = "lastPrice"
    PRICE_CHANGE_24H = "priceChange24h"
    SORT_ORDER = "sort_order"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Comparable projection per sort field. Numeric ticker fields are parsed here,
# at sort time, and come back as None when malformed.
_PROJECTIONS: dict[SortField, Callable[[MarketEntity], str | float | int | None]] = {
    SortField.PAIR_NAME: lambda e: e.pair_name,
    SortField.VOLUME_24H: lambda e: parse_number(e.ticker.volume),
    SortField.LAST_PRICE: lambda e: parse_number(e.ticker.last_price),
    SortField.PRICE_CHANGE_24H: lambda e: parse_number(e.ticker.price_change_percent),
    SortField.SORT_ORDER: lambda e: e.sort_order,
}


def _limited(items: list[MarketEntity], limit: int | None) -> list[MarketEntity]:
    return items[:limit] if limit and limit > 0 else items


class MarketCache:
    """Thread-safe in-memory list of tracked pairs.

    The list is populated once from the bootstrap snapshot and never grows or
    shrinks afterwards. Writers: the ticker feed (ticker replacement) and
    favorite toggles. Readers: every query, which copies under the lock and
    never hands out the cache's own entity objects.
    """

    def __init__(self, reject_stale_updates: bool = False) -> None:
        self._entities: list[MarketEntity] = []
        self._index: dict[str, int] = {}  # pair_name -> position in _entities
        self._lock = Lock()
        self._reject_stale = reject_stale_updates
        self._version: int = 0  # Monotonically increasing; bumped on every mutation
        self._last_update_at: float | None = None

    # --- Writes ---

    def load(self, entities: Iterable[MarketEntity]) -> int:
        """Replace the contents wholesale with the bootstrap snapshot.

        Pair names must be unique; later duplicates are dropped. Returns the
        number of pairs kept.
        """
        kept: list[MarketEntity] = []
        index: dict[str, int] = {}
        for entity in entities:
            if entity.pair_name in index:
                logger.warning("Duplicate pair %s in snapshot; keeping first", entity.pair_name)
                continue
            index[entity.pair_name] = len(kept)
            kept.append(entity.model_copy(update={"is_favorite": False}))

        with self._lock:
            self._entities = kept
            self._index = index
            self._version += 1
        return len(kept)

    def apply_ticker(self, ticker: Ticker) -> bool:
        """Replace the ticker of the pair named by ``ticker.symbol``.

        The whole ticker is swapped; there is no field-level merge. Updates
        for untracked pairs are dropped. Returns True if the cache changed.
        """
        with self._lock:
            position = self._index.get(ticker.symbol)
            if position is None:
                logger.debug("Ignoring ticker for untracked pair %s", ticker.symbol)
                return False
            entity = self._entities[position]
            if self._reject_stale and self._is_older(ticker, entity.ticker):
                logger.debug(
                    "Dropping stale ticker for %s (%s < %s)",
                    ticker.symbol,
                    ticker.event_time,
                    entity.ticker.event_time,
                )
                return False
            entity.ticker = ticker
            self._touch()
            return True

    def toggle_favorite(self, pair_name: str) -> bool:
        """Flip the favorite flag of a pair. Returns the new value.

        Unknown pairs are left alone and report False.
        """
        with self._lock:
            position = self._index.get(pair_name)
            if position is None:
                return False
            entity = self._entities[position]
            entity.is_favorite = not entity.is_favorite
            self._touch()
            return entity.is_favorite

    # --- Reads ---

    def get_market_data(
        self,
        sort_field: SortField | str = SortField.SORT_ORDER,
        order: SortOrder | str = SortOrder.ASC,
        limit: int | None = None,
    ) -> list[MarketEntity]:
        """Sorted copy of every tracked pair, optionally truncated to ``limit``.

        String fields sort lexicographically, ticker fields numerically. An
        unknown field returns the list in its stored order. Any order other
        than "asc" sorts descending. Pairs whose value is malformed go last in
        stored order; the rest stay correctly ordered.
        """
        items = self._snapshot()
        try:
            projection = _PROJECTIONS[SortField(sort_field)]
        except ValueError:
            return _limited(items, limit)

        keyed = [(projection(e), e) for e in items]
        valid = [pair for pair in keyed if pair[0] is not None]
        malformed = [e for value, e in keyed if value is None]
        valid.sort(key=lambda pair: pair[0], reverse=order != SortOrder.ASC)
        return _limited([e for _, e in valid] + malformed, limit)

    def get_default_sorted_data(self, limit: int | None = None) -> list[MarketEntity]:
        return self.get_market_data(SortField.SORT_ORDER, SortOrder.ASC, limit)

    def get_total_count(self) -> int:
        return len(self)

    def fuzzy_search(self, query: str, limit: int | None = None) -> list[MarketEntity]:
        """Pairs whose name contains ``query``, case-insensitively.

        Names starting with the query come first; original order is kept
        within each group.
        """
        needle = query.lower()
        starts: list[MarketEntity] = []
        contains: list[MarketEntity] = []
        for entity in self._snapshot():
            name = entity.pair_name.lower()
            if name.startswith(needle):
                starts.append(entity)
            elif needle in name:
                contains.append(entity)
        return _limited(starts + contains, limit)

    def get_favorites(self) -> list[MarketEntity]:
        with self._lock:
            return [e.model_copy() for e in self._entities if e.is_favorite]

    def is_favorite(self, pair_name: str) -> bool:
        with self._lock:
            position = self._index.get(pair_name)
            return position is not None and self._entities[position].is_favorite

    def get(self, pair_name: str) -> MarketEntity | None:
        """Copy of a single pair, or None if untracked."""
        with self._lock:
            position = self._index.get(pair_name)
            return self._entities[position].model_copy() if position is not None else None

    def pair_names(self) -> list[str]:
        with self._lock:
            return [e.pair_name for e in self._entities]

    @property
    def version(self) -> int:
        """Current version counter. Useful for SSE change detection."""
        return self._version

    @property
    def last_update_at(self) -> float | None:
        """Unix time of the last ticker update or favorite toggle."""
        return self._last_update_at

    def __len__(self) -> int:
        with self._lock:
            return len(self._entities)

    def __contains__(self, pair_name: str) -> bool:
        with self._lock:
            return pair_name in self._index

    # --- Internal ---

    def _snapshot(self) -> list[MarketEntity]:
        # Ticker is frozen, so a shallow copy of each entity is independent.
        with self._lock:
            return [e.model_copy() for e in self._entities]

    def _touch(self) -> None:
        self._version += 1
        self._last_update_at = time.time()

    @staticmethod
    def _is_older(incoming: Ticker, current: Ticker) -> bool:
        new_time = parse_number(incoming.event_time)
        old_time = parse_number(current.event_time)
        if new_time is None or old_time is None:
            return False
        return new_time < old_time
