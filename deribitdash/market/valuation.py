from __future__ import annotations

import math
import re
from functools import cmp_to_key
from typing import Iterable, List, Optional, Tuple

from deribitdash.core.config import INDEX_INSTRUMENT
from deribitdash.core.types import Balance, MarketSnapshot, Position, PositionValuation, Quote


# Futures and options expiries, e.g. BTC-25DEC20 or BTC-25DEC20-20000-C
_EXPIRY_RE = re.compile(r"^[A-Z0-9]+-(\d{1,2})([A-Z]{3})(\d{2})(?:-|$)")

_MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
_MONTH_RANK = {m: i for i, m in enumerate(_MONTHS)}


def _usable_price(price: float) -> bool:
    return math.isfinite(price) and price > 0


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def position_value_base(position: Position, quote: Optional[Quote]) -> Optional[float]:
    """Value of a position in the base unit at the price it could be closed at.

    Longs are sold into the bid, shorts are bought back at the ask. The result
    is a magnitude, so shorts come out positive as well. None when there is no
    quote or the relevant side of the book is zero, negative or not a number.
    """
    if quote is None or not math.isfinite(position.size):
        return None
    if position.size >= 0:
        if not _usable_price(quote.bid):
            return None
        return _finite_or_none(position.size / quote.bid)
    if not _usable_price(quote.ask):
        return None
    return _finite_or_none(-position.size / quote.ask)


def position_value_quote(
    position: Position,
    quote: Optional[Quote],
    index_quote: Optional[Quote],
) -> Optional[float]:
    if index_quote is None or not _usable_price(index_quote.ask):
        return None
    base = position_value_base(position, quote)
    if base is None:
        return None
    return _finite_or_none(base * index_quote.ask)


def index_quote(snapshot: MarketSnapshot, index_instrument: str = INDEX_INSTRUMENT) -> Optional[Quote]:
    return snapshot.quotes.get(index_instrument)


def balance_value_quote(balance: Optional[Balance], index_quote: Optional[Quote]) -> Optional[float]:
    if balance is None or index_quote is None or not _usable_price(index_quote.ask):
        return None
    return _finite_or_none(balance.size * index_quote.ask)


def book_value(snapshot: MarketSnapshot, index_instrument: str = INDEX_INSTRUMENT) -> float:
    """Sum of every position and the balance in quote currency.

    Anything that cannot be valued yet (no quote, no index, degenerate prices)
    counts as zero instead of poisoning the total.
    """
    idx = index_quote(snapshot, index_instrument)
    total = 0.0
    for pos in snapshot.positions.values():
        value = position_value_quote(pos, snapshot.quotes.get(pos.instrument), idx)
        if value is not None:
            total += value
    bal = balance_value_quote(snapshot.balance, idx)
    if bal is not None:
        total += bal
    return total


def liquidation_value(snapshot: MarketSnapshot, index_instrument: str = INDEX_INSTRUMENT) -> Optional[float]:
    idx = index_quote(snapshot, index_instrument)
    if snapshot.equity is None or idx is None or not _usable_price(idx.ask):
        return None
    return _finite_or_none(snapshot.equity * idx.ask)


def _expiry_key(instrument: str) -> Optional[Tuple[str, int, int]]:
    m = _EXPIRY_RE.match(instrument)
    if m is None:
        return None
    day, month, year = m.groups()
    rank = _MONTH_RANK.get(month)
    if rank is None:
        return None
    return year, rank, int(day)


def compare_instruments_for_display(a: str, b: str) -> int:
    """Order perpetual/index names first, then dated contracts by expiry."""
    ka = _expiry_key(a)
    kb = _expiry_key(b)
    if ka is None and kb is None:
        return 0
    if ka is None:
        return -1
    if kb is None:
        return 1
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def sort_instruments_for_display(instruments: Iterable[str]) -> List[str]:
    return sorted(instruments, key=cmp_to_key(compare_instruments_for_display))


def sort_quotes_for_display(quotes: Iterable[Quote]) -> List[Quote]:
    return sorted(
        quotes,
        key=cmp_to_key(lambda qa, qb: compare_instruments_for_display(qa.instrument, qb.instrument)),
    )


def value_positions(
    snapshot: MarketSnapshot,
    index_instrument: str = INDEX_INSTRUMENT,
) -> List[PositionValuation]:
    idx = index_quote(snapshot, index_instrument)
    rows: List[PositionValuation] = []
    for name in sort_instruments_for_display(snapshot.positions):
        pos = snapshot.positions[name]
        quote = snapshot.quotes.get(name)
        rows.append(
            PositionValuation(
                instrument=name,
                size=pos.size,
                side="long" if pos.size >= 0 else "short",
                value_base=position_value_base(pos, quote),
                value_quote=position_value_quote(pos, quote, idx),
            )
        )
    return rows
