from __future__ import annotations

from typing import Union

from loguru import logger as log

from deribitdash.core.types import Balance, Position, Quote
from deribitdash.feed.events import (
    BalanceEvent,
    FeedEvent,
    PositionEvent,
    SummaryEvent,
    TickEvent,
    parse_message,
)
from deribitdash.market.store import MarketStore


def dispatch(event: FeedEvent, store: MarketStore) -> bool:
    """Apply one event to the store. Returns False when the event was discarded."""
    if isinstance(event, TickEvent):
        t = event.tick
        store.apply_quote(Quote(instrument=t.instrument_name, bid=t.bid, ask=t.ask))
    elif isinstance(event, PositionEvent):
        p = event.position
        store.apply_position(Position(instrument=p.instrument_name, size=p.size))
    elif isinstance(event, BalanceEvent):
        b = event.payload
        store.apply_balance(Balance(instrument=b.instrument_name, size=b.size))
    elif isinstance(event, SummaryEvent):
        store.apply_summary(event.summary.equity)
    else:
        log.warning("Unhandled message type: {}", event.event)
        return False
    return True


def dispatch_raw(raw: Union[str, bytes], store: MarketStore) -> bool:
    """Parse and apply one frame; MalformedMessageError propagates before any mutation."""
    return dispatch(parse_message(raw), store)
