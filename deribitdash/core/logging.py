from __future__ import annotations

import os
import json
from pathlib import Path

from loguru import logger as _logger


def _env_flag(name: str) -> bool:
    return str(os.getenv(name, "0")).lower() in {"1", "true", "yes"}


def setup_logging(log_dir: str = "logs", level: str = "INFO") -> None:
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    # Allow env override for log level (e.g., DEBUG, TRACE)
    level = str(os.getenv("DERIBITDASH_LOG_LEVEL", level)).upper()

    _logger.remove()
    # Console sink gets in the way of the rich terminal view, so it can be turned off
    if not _env_flag("DERIBITDASH_DISABLE_CONSOLE_LOG"):
        _logger.add(
            sink=lambda msg: print(msg, end=""),
            level=level,
            colorize=True,
            backtrace=False,
            diagnose=False,
        )
    _logger.add(
        Path(log_dir) / "deribitdash.log",
        rotation="10 MB",
        retention=10,
        level=level,
        enqueue=True,
        backtrace=False,
        diagnose=False,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
    )

    # Optional raw frame trace (JSONL), enabled when DERIBITDASH_FEED_DEBUG is set
    if _env_flag("DERIBITDASH_FEED_DEBUG"):
        def _frame_formatter(record: dict) -> str:
            extra = record.get("extra", {}) or {}
            payload = {
                "ts": record["time"].strftime("%Y-%m-%d %H:%M:%S.%f"),
                "level": record["level"].name,
                "message": record["message"],
                "frame": extra.get("frame"),
            }
            # loguru treats braces in the returned string as format fields
            return json.dumps(payload, ensure_ascii=False).replace("{", "{{").replace("}", "}}") + "\n"

        _logger.add(
            Path(log_dir) / "feed.jsonl",
            rotation="10 MB",
            retention=5,
            level="DEBUG",
            enqueue=True,
            backtrace=False,
            diagnose=False,
            filter=lambda record: record["extra"].get("component") == "feed",
            format=_frame_formatter,
        )


def get_logger() -> _logger.__class__:
    return _logger


def get_feed_logger() -> _logger.__class__:
    """Return a logger bound for feed tracing. Only emits to feed.jsonl when feed debug is enabled."""
    return _logger.bind(component="feed")
