from __future__ import annotations

import math
from typing import Optional

from rich.console import Console, Group
from rich.table import Table

from deribitdash.core.config import INDEX_INSTRUMENT, DisplayConfig
from deribitdash.core.types import MarketSnapshot
from deribitdash.market.valuation import (
    book_value,
    liquidation_value,
    sort_quotes_for_display,
    value_positions,
)


console = Console()


def fmt_usd(value: Optional[float], decimals: int = 2) -> str:
    # None means "not available yet" and renders blank; 0.0 is a real value
    if value is None or not math.isfinite(value):
        return ""
    return f"${value:,.{decimals}f}"


def fmt_btc(value: Optional[float], decimals: int = 6) -> str:
    if value is None or not math.isfinite(value):
        return ""
    return f"₿{value:.{decimals}f}"


def market_table(snap: MarketSnapshot, cfg: Optional[DisplayConfig] = None) -> Table:
    cfg = cfg or DisplayConfig()
    table = Table(title="Market")
    table.add_column("Instrument")
    table.add_column("Ask", justify="right", style="red")
    table.add_column("Bid", justify="right", style="green")
    for q in sort_quotes_for_display(snap.quotes.values()):
        table.add_row(q.instrument, fmt_usd(q.ask, cfg.price_decimals), fmt_usd(q.bid, cfg.price_decimals))
    return table


def positions_table(
    snap: MarketSnapshot,
    cfg: Optional[DisplayConfig] = None,
    index_instrument: str = INDEX_INSTRUMENT,
) -> Table:
    cfg = cfg or DisplayConfig()
    table = Table(title="Positions")
    table.add_column("Size", justify="right")
    table.add_column("Instrument")
    table.add_column("Value (BTC)", justify="right")
    table.add_column("Value (USD)", justify="right")
    for row in value_positions(snap, index_instrument):
        colour = "green" if row.side == "long" else "red"
        table.add_row(
            f"[{colour}]{row.size:g}[/{colour}]",
            row.instrument,
            fmt_btc(row.value_base, cfg.base_decimals),
            fmt_usd(row.value_quote, cfg.price_decimals),
        )
    return table


def account_table(
    snap: MarketSnapshot,
    cfg: Optional[DisplayConfig] = None,
    index_instrument: str = INDEX_INSTRUMENT,
) -> Table:
    cfg = cfg or DisplayConfig()
    table = Table(title="Account")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    balance = snap.balance.size if snap.balance is not None else None
    table.add_row("Balance", fmt_btc(balance, cfg.base_decimals))
    table.add_row("Equity", fmt_btc(snap.equity, cfg.base_decimals))
    table.add_row("Book Value", fmt_usd(book_value(snap, index_instrument), cfg.price_decimals))
    table.add_row("Liquidation Value", fmt_usd(liquidation_value(snap, index_instrument), cfg.price_decimals))
    return table


def dashboard(
    snap: MarketSnapshot,
    cfg: Optional[DisplayConfig] = None,
    index_instrument: str = INDEX_INSTRUMENT,
) -> Group:
    return Group(
        market_table(snap, cfg),
        positions_table(snap, cfg, index_instrument),
        account_table(snap, cfg, index_instrument),
    )
