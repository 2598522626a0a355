from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Optional


@dataclass(frozen=True)
class Quote:
    instrument: str
    bid: float
    ask: float


@dataclass(frozen=True)
class Position:
    instrument: str
    size: float  # signed, positive = long


@dataclass(frozen=True)
class Balance:
    # Same shape as a position but singular for the account
    instrument: str
    size: float


@dataclass
class MarketSnapshot:
    quotes: Dict[str, Quote] = field(default_factory=dict)
    positions: Dict[str, Position] = field(default_factory=dict)
    balance: Optional[Balance] = None
    equity: Optional[float] = None
    version: int = 0


Side = Literal["long", "short"]


@dataclass(frozen=True)
class PositionValuation:
    instrument: str
    size: float
    side: Side
    value_base: Optional[float]
    value_quote: Optional[float]
