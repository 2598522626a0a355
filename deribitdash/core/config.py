from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, PositiveFloat, PositiveInt

from deribitdash.core.errors import ConfigError


INDEX_INSTRUMENT = "BTC"


class FeedConfig(BaseModel):
    url: str = "ws://localhost:12345/subscribe"
    # Quote key of the spot index used to convert BTC values into USD
    index_instrument: str = INDEX_INSTRUMENT
    reconnect_initial_sec: PositiveFloat = 1.0
    reconnect_max_sec: PositiveFloat = 60.0


class DashboardConfig(BaseModel):
    enabled: bool = True
    host: str = "127.0.0.1"
    port: PositiveInt = 8000
    poll_interval_ms: PositiveInt = 1000


class DisplayConfig(BaseModel):
    price_decimals: int = Field(default=2, ge=0)
    base_decimals: int = Field(default=6, ge=0)
    refresh_sec: PositiveFloat = 1.0


class LoggingConfig(BaseModel):
    dir: str = "logs"
    level: str = "INFO"


class AppConfig(BaseModel):
    feed: FeedConfig = Field(default_factory=FeedConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def apply_env_overrides(self) -> "AppConfig":
        url = os.getenv("DERIBITDASH_SUBSCRIBE_URL")
        if url:
            self.feed.url = url
        return self

    @staticmethod
    def load(path: str | Path) -> "AppConfig":
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"config file not found: {p}")
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"config root must be a mapping: {p}")
        return AppConfig(**data).apply_env_overrides()
