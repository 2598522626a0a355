from __future__ import annotations

import asyncio
import random
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Union

import websockets
import websockets.exceptions

from deribitdash.core.config import FeedConfig
from deribitdash.core.errors import MalformedMessageError
from deribitdash.core.logging import get_feed_logger, get_logger
from deribitdash.feed.dispatch import dispatch
from deribitdash.feed.events import parse_message
from deribitdash.market.store import MarketStore


log = get_logger()
frame_log = get_feed_logger()


@dataclass
class FeedStatus:
    url: str
    connected: bool = False
    last_connect_ts: Optional[float] = None
    last_message_ts: Optional[float] = None
    last_error: Optional[str] = None
    messages: int = 0
    dropped: int = 0
    ignored: int = 0


class FeedClient:
    """Websocket subscriber that feeds every frame into a MarketStore.

    Bad frames are logged and dropped; the store keeps whatever it had. The
    connection is retried forever with exponential backoff plus jitter.
    """

    def __init__(self, store: MarketStore, cfg: FeedConfig) -> None:
        self.store = store
        self.cfg = cfg
        self.status = FeedStatus(url=cfg.url)
        self._stop = asyncio.Event()

    def handle_frame(self, raw: Union[str, bytes]) -> bool:
        self.status.messages += 1
        self.status.last_message_ts = time.time()
        frame_log.debug("frame received", frame=raw if isinstance(raw, str) else raw.decode("utf-8", "replace"))
        try:
            event = parse_message(raw)
        except MalformedMessageError as exc:
            self.status.dropped += 1
            self.status.last_error = str(exc)
            log.warning("Dropping malformed frame: {} raw={!r}", exc, exc.raw)
            return False
        applied = dispatch(event, self.store)
        if not applied:
            self.status.ignored += 1
        return applied

    async def _connect_once(self) -> None:
        log.info("Connecting to feed {}", self.cfg.url)
        async with websockets.connect(self.cfg.url) as ws:
            self.status.connected = True
            self.status.last_connect_ts = time.time()
            self.status.last_error = None
            log.info("Connection opened: {}", self.cfg.url)
            stop_wait = asyncio.ensure_future(self._stop.wait())
            recv: Optional[asyncio.Future] = None
            try:
                while not self._stop.is_set():
                    recv = asyncio.ensure_future(ws.recv())
                    # stop() has to win even when the feed is quiet
                    await asyncio.wait({recv, stop_wait}, return_when=asyncio.FIRST_COMPLETED)
                    if not recv.done():
                        break
                    try:
                        message = recv.result()
                    except websockets.exceptions.ConnectionClosedOK:
                        log.info("Connection closed by server: {}", self.cfg.url)
                        return
                    self.handle_frame(message)
            finally:
                stop_wait.cancel()
                if recv is not None and not recv.done():
                    recv.cancel()

    async def run(self) -> None:
        backoff = float(self.cfg.reconnect_initial_sec)
        max_backoff = float(self.cfg.reconnect_max_sec)
        while not self._stop.is_set():
            try:
                await self._connect_once()
                backoff = float(self.cfg.reconnect_initial_sec)
            except Exception as exc:
                self.status.last_error = str(exc)
                log.error("websocket error: {}", exc)
            finally:
                self.status.connected = False
            if self._stop.is_set():
                break

            sleep_for = backoff + random.uniform(0, backoff / 2)
            log.info("Reconnecting to feed in {:.1f}s", sleep_for)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=sleep_for)
            except asyncio.TimeoutError:
                pass
            backoff = min(backoff * 2, max_backoff)
        log.info("Feed client stopped")

    def stop(self) -> None:
        self._stop.set()

    def status_dict(self) -> Dict[str, Any]:
        return asdict(self.status)
