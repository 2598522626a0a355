from __future__ import annotations

from typing import Optional


class DeribitDashError(Exception):
    """Base class for errors raised by deribitdash."""


class ConfigError(DeribitDashError):
    pass


class MalformedMessageError(DeribitDashError, ValueError):
    """A feed frame that is not valid JSON or does not match its event shape."""

    def __init__(self, message: str, *, raw: Optional[str] = None, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.raw = raw
        self.kind = kind
