from __future__ import annotations

import math
import threading
from dataclasses import astuple
from typing import Any

from loguru import logger as log

from deribitdash.core.types import Balance, MarketSnapshot, Position, Quote


def _same(a: Any, b: Any) -> bool:
    # NaN == NaN so a repeated NaN field is not counted as a change
    if isinstance(a, float) and isinstance(b, float):
        return a == b or (math.isnan(a) and math.isnan(b))
    if a is None or b is None:
        return a is b
    if isinstance(a, (Quote, Position, Balance)) and type(a) is type(b):
        return all(_same(x, y) for x, y in zip(astuple(a), astuple(b)))
    return a == b


class MarketStore:
    """Latest known quotes, positions, balance and equity for one account.

    Every apply_* call replaces a value wholesale (last write wins). The
    version only moves when the stored value actually changes, so applying
    the same event twice leaves the snapshot identical. Writes and snapshot
    copies share one lock so a reader never observes half of an event.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = MarketSnapshot()

    @property
    def version(self) -> int:
        with self._lock:
            return self._state.version

    def apply_quote(self, quote: Quote) -> None:
        with self._lock:
            if not _same(self._state.quotes.get(quote.instrument), quote):
                self._state.quotes[quote.instrument] = quote
                self._state.version += 1
        log.trace("quote {} bid={} ask={}", quote.instrument, quote.bid, quote.ask)

    def apply_position(self, position: Position) -> None:
        # size 0 is kept; positions are never removed
        with self._lock:
            if not _same(self._state.positions.get(position.instrument), position):
                self._state.positions[position.instrument] = position
                self._state.version += 1
        log.trace("position {} size={}", position.instrument, position.size)

    def apply_balance(self, balance: Balance) -> None:
        with self._lock:
            if not _same(self._state.balance, balance):
                self._state.balance = balance
                self._state.version += 1
        log.trace("balance {} size={}", balance.instrument, balance.size)

    def apply_summary(self, equity: float) -> None:
        with self._lock:
            if not _same(self._state.equity, equity):
                self._state.equity = equity
                self._state.version += 1
        log.trace("equity {}", equity)

    def snapshot(self) -> MarketSnapshot:
        with self._lock:
            return MarketSnapshot(
                quotes=dict(self._state.quotes),
                positions=dict(self._state.positions),
                balance=self._state.balance,
                equity=self._state.equity,
                version=self._state.version,
            )
