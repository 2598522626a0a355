from __future__ import annotations

import math
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse

from deribitdash.core.config import AppConfig
from deribitdash.core.types import MarketSnapshot
from deribitdash.market.store import MarketStore
from deribitdash.market.valuation import (
    balance_value_quote,
    book_value,
    index_quote,
    liquidation_value,
    sort_quotes_for_display,
    value_positions,
)


def _num(value: Optional[float]) -> Optional[float]:
    # JSON has no inf/nan; raw feed numbers are stored unvalidated
    if value is None or not math.isfinite(value):
        return None
    return value


def state_payload(
    snap: MarketSnapshot,
    index_instrument: str,
    feed: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """JSON-ready view of a snapshot plus its derived values. Unavailable values are None."""
    idx = index_quote(snap, index_instrument)
    balance = None
    if snap.balance is not None:
        balance = {
            "instrument": snap.balance.instrument,
            "size": _num(snap.balance.size),
            "value_quote": balance_value_quote(snap.balance, idx),
        }
    return {
        "version": snap.version,
        "index_instrument": index_instrument,
        "market": [
            {"instrument": q.instrument, "bid": _num(q.bid), "ask": _num(q.ask)}
            for q in sort_quotes_for_display(snap.quotes.values())
        ],
        "positions": [
            {
                "instrument": p.instrument,
                "size": _num(p.size),
                "side": p.side,
                "value_base": p.value_base,
                "value_quote": p.value_quote,
            }
            for p in value_positions(snap, index_instrument)
        ],
        "balance": balance,
        "equity": _num(snap.equity),
        "book_value": book_value(snap, index_instrument),
        "liquidation_value": liquidation_value(snap, index_instrument),
        "feed": feed,
    }


_INDEX_HTML = """
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Deribit Dashboard</title>
  <style>
    body { font-family: sans-serif; margin: 20px; }
    .cols { display: flex; gap: 40px; }
    .col { flex: 1; }
    table { border-collapse: collapse; width: 100%; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f0f0f0; }
    .long, .bid { color: #198754; }
    .short, .ask { color: #dc3545; }
  </style>
</head>
<body>
  <h1>Deribit Dashboard</h1>
  <div>
    <strong>Balance:</strong> <span id="balance"></span>
    &nbsp; <strong>Equity:</strong> <span id="equity"></span>
    &nbsp; <strong>Book value:</strong> <span id="book"></span>
    &nbsp; <strong>Liquidation value:</strong> <span id="liq"></span>
    &nbsp; <small id="feed"></small>
  </div>
  <div class="cols">
    <div class="col">
      <h2>Market</h2>
      <table id="market">
        <thead><tr><th>Instrument</th><th>Ask</th><th>Bid</th></tr></thead>
        <tbody></tbody>
      </table>
    </div>
    <div class="col">
      <h2>Positions</h2>
      <table id="pos">
        <thead><tr><th>Size</th><th>Instrument</th><th>Value (BTC)</th><th>Value (USD)</th></tr></thead>
        <tbody></tbody>
      </table>
    </div>
  </div>
  <script>
    const POLL_MS = __POLL_MS__;
    const usd = v => (v === null || v === undefined) ? '' : `$${v.toFixed(2)}`;
    const btc = v => (v === null || v === undefined) ? '' : `₿${v.toFixed(6)}`;
    // Feed strings go in as text only, never as markup
    const cell = (text, cls) => {
      const td = document.createElement('td');
      td.textContent = String(text);
      if (cls) td.className = cls;
      return td;
    };
    const row = (...cells) => {
      const tr = document.createElement('tr');
      tr.append(...cells);
      return tr;
    };
    let lastVersion = -1;
    async function render() {
      const res = await fetch('/api/state');
      const s = await res.json();
      document.getElementById('feed').textContent = s.feed ? (s.feed.connected ? 'live' : 'disconnected') : '';
      if (s.version === lastVersion) return;
      lastVersion = s.version;
      document.getElementById('balance').textContent = s.balance ? btc(s.balance.size) : '';
      document.getElementById('equity').textContent = btc(s.equity);
      document.getElementById('book').textContent = usd(s.book_value);
      document.getElementById('liq').textContent = usd(s.liquidation_value);
      const market = document.querySelector('#market tbody');
      market.replaceChildren(...s.market.map(q =>
        row(cell(q.instrument), cell(usd(q.ask), 'ask'), cell(usd(q.bid), 'bid'))));
      const pos = document.querySelector('#pos tbody');
      pos.replaceChildren(...s.positions.map(p =>
        row(cell(p.size ?? '', p.side), cell(p.instrument), cell(btc(p.value_base)), cell(usd(p.value_quote)))));
    }
    // Keep the last rendered values on fetch errors
    setInterval(() => render().catch(err => console.warn('state fetch failed', err)), POLL_MS);
    render().catch(err => console.warn('state fetch failed', err));
  </script>
</body>
</html>
"""


def create_app(
    store: MarketStore,
    cfg: Optional[AppConfig] = None,
    feed_status: Optional[Callable[[], Dict[str, Any]]] = None,
) -> FastAPI:
    cfg = cfg or AppConfig()
    app = FastAPI(title="Deribit Dashboard")
    index_instrument = cfg.feed.index_instrument
    html = _INDEX_HTML.replace("__POLL_MS__", str(int(cfg.dashboard.poll_interval_ms)))

    @app.get("/api/state")
    async def get_state():
        feed = feed_status() if feed_status is not None else None
        return JSONResponse(state_payload(store.snapshot(), index_instrument, feed))

    @app.get("/")
    async def index():
        return HTMLResponse(html)

    return app
