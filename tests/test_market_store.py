from __future__ import annotations

from deribitdash.core.types import Balance, MarketSnapshot, Position, Quote
from deribitdash.market.store import MarketStore


def test_new_store_is_empty() -> None:
    store = MarketStore()
    snap = store.snapshot()
    assert snap == MarketSnapshot()
    assert snap.balance is None and snap.equity is None
    assert store.version == 0


def test_quotes_last_write_wins_per_instrument() -> None:
    store = MarketStore()
    updates = [
        Quote("BTC-25DEC20", 100.0, 101.0),
        Quote("BTC", 99.0, 99.0),
        Quote("BTC-25DEC20", 102.0, 103.0),
        Quote("BTC-26MAR21", 110.0, 111.0),
        Quote("BTC", 98.5, 98.5),
        Quote("BTC-25DEC20", 104.0, 105.0),
    ]
    latest = {}
    for q in updates:
        store.apply_quote(q)
        latest[q.instrument] = q
        # checked after every apply, not just at the end
        assert store.snapshot().quotes == latest
    assert store.snapshot().quotes["BTC-25DEC20"].bid == 104.0


def test_zero_size_position_is_kept() -> None:
    store = MarketStore()
    store.apply_position(Position("BTC-PERPETUAL", 500.0))
    store.apply_position(Position("BTC-PERPETUAL", 0.0))
    snap = store.snapshot()
    assert "BTC-PERPETUAL" in snap.positions
    assert snap.positions["BTC-PERPETUAL"].size == 0.0


def test_quote_and_position_share_identifier() -> None:
    store = MarketStore()
    store.apply_quote(Quote("BTC-25DEC20", 100.0, 101.0))
    store.apply_position(Position("BTC-25DEC20", -10.0))
    snap = store.snapshot()
    assert snap.quotes["BTC-25DEC20"].ask == 101.0
    assert snap.positions["BTC-25DEC20"].size == -10.0


def test_balance_and_equity_replaced_wholesale() -> None:
    store = MarketStore()
    store.apply_balance(Balance("BTC", 1.25))
    store.apply_balance(Balance("BTC", 0.75))
    store.apply_summary(2.0)
    store.apply_summary(-0.5)
    snap = store.snapshot()
    assert snap.balance == Balance("BTC", 0.75)
    assert snap.equity == -0.5


def test_reapplying_same_value_is_idempotent() -> None:
    store = MarketStore()
    q = Quote("BTC", 50000.0, 50010.0)
    store.apply_quote(q)
    store.apply_summary(1.5)
    before = store.snapshot()
    store.apply_quote(q)
    store.apply_summary(1.5)
    assert store.snapshot() == before
    assert store.version == 2


def test_version_moves_on_change() -> None:
    store = MarketStore()
    store.apply_quote(Quote("BTC", 1.0, 1.0))
    store.apply_position(Position("BTC-25DEC20", 1.0))
    store.apply_balance(Balance("BTC", 1.0))
    store.apply_summary(1.0)
    assert store.version == 4
    assert store.snapshot().version == 4


def test_snapshot_is_detached() -> None:
    store = MarketStore()
    store.apply_quote(Quote("BTC", 1.0, 1.0))
    snap = store.snapshot()
    snap.quotes.clear()
    snap.positions["X"] = Position("X", 1.0)
    fresh = store.snapshot()
    assert "BTC" in fresh.quotes
    assert "X" not in fresh.positions


def test_degenerate_prices_are_accepted() -> None:
    store = MarketStore()
    store.apply_quote(Quote("BTC-25DEC20", -1.0, float("nan")))
    q = store.snapshot().quotes["BTC-25DEC20"]
    assert q.bid == -1.0


def test_repeated_nan_values_do_not_move_version() -> None:
    store = MarketStore()
    for _ in range(3):
        store.apply_summary(float("nan"))
    assert store.version == 1

    store.apply_quote(Quote("BTC-25DEC20", float("nan"), 101.0))
    store.apply_quote(Quote("BTC-25DEC20", float("nan"), 101.0))
    store.apply_position(Position("BTC-25DEC20", float("nan")))
    store.apply_position(Position("BTC-25DEC20", float("nan")))
    store.apply_balance(Balance("BTC", float("nan")))
    store.apply_balance(Balance("BTC", float("nan")))
    assert store.version == 4

    store.apply_summary(1.0)
    store.apply_quote(Quote("BTC-25DEC20", 100.0, 101.0))
    assert store.version == 6
