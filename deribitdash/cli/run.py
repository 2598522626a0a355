from __future__ import annotations

import argparse
import asyncio
import threading

from rich.live import Live

from deribitdash.core.config import AppConfig
from deribitdash.core.env import load_local_environment
from deribitdash.core.logging import get_logger, setup_logging
from deribitdash.feed.client import FeedClient
from deribitdash.market.store import MarketStore
from deribitdash.monitor.display import console, dashboard
from deribitdash.webapp.api import create_app


async def _console_loop(store: MarketStore, cfg: AppConfig) -> None:  # pragma: no cover - terminal glue
    last_version = -1
    with Live(dashboard(store.snapshot(), cfg.display, cfg.feed.index_instrument), console=console) as live:
        while True:
            snap = store.snapshot()
            if snap.version != last_version:
                last_version = snap.version
                live.update(dashboard(snap, cfg.display, cfg.feed.index_instrument))
            await asyncio.sleep(cfg.display.refresh_sec)


async def _run(client: FeedClient, store: MarketStore, cfg: AppConfig, with_console: bool) -> None:
    tasks = [asyncio.create_task(client.run())]
    if with_console:
        tasks.append(asyncio.create_task(_console_loop(store, cfg)))
    try:
        await asyncio.gather(*tasks)
    finally:
        client.stop()
        for t in tasks:
            t.cancel()


def main() -> None:
    parser = argparse.ArgumentParser(description="Deribit market/positions dashboard")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config")
    parser.add_argument("--url", type=str, default=None, help="Feed websocket URL (overrides config)")
    parser.add_argument("--env-file", type=str, default=None, help="Path to a .env file")
    parser.add_argument("--no-dashboard", action="store_true")
    parser.add_argument("--dashboard-host", type=str, default=None)
    parser.add_argument("--dashboard-port", type=int, default=None)
    parser.add_argument("--console", action="store_true", help="Render a live terminal view")
    args = parser.parse_args()

    load_local_environment(args.env_file)
    cfg = AppConfig.load(args.config) if args.config else AppConfig().apply_env_overrides()
    if args.url:
        cfg.feed.url = args.url
    setup_logging(log_dir=cfg.logging.dir, level=cfg.logging.level)
    log = get_logger()

    log.info("=" * 60)
    log.info("Deribit dashboard starting...")
    log.info(f"Feed: {cfg.feed.url}")
    log.info(f"Index instrument: {cfg.feed.index_instrument}")

    store = MarketStore()
    client = FeedClient(store, cfg.feed)

    if cfg.dashboard.enabled and not args.no_dashboard:
        host = args.dashboard_host or cfg.dashboard.host
        port = args.dashboard_port or cfg.dashboard.port
        app = create_app(store, cfg, feed_status=client.status_dict)

        def run_dashboard():
            import uvicorn
            uvicorn.run(app, host=host, port=port, reload=False, workers=1, log_level="warning")

        t = threading.Thread(target=run_dashboard, daemon=True)
        t.start()
        log.info(f"Dashboard listening on http://{host}:{port}/")

    try:
        asyncio.run(_run(client, store, cfg, with_console=bool(args.console)))
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
