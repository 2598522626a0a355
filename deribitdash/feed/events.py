from __future__ import annotations

import json
from typing import Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictStr, ValidationError, model_validator

from deribitdash.core.errors import MalformedMessageError


class _Payload(BaseModel):
    # No coercion: "100" or true in a numeric field is a malformed frame
    model_config = ConfigDict(populate_by_name=True)


class TickPayload(_Payload):
    instrument_name: StrictStr = Field(alias="instrumentName")
    bid: StrictFloat
    ask: StrictFloat


class PositionPayload(_Payload):
    instrument_name: StrictStr = Field(alias="instrumentName")
    size: StrictFloat


class SummaryPayload(_Payload):
    equity: StrictFloat


class TickEvent(BaseModel):
    event: Literal["tick"] = "tick"
    tick: TickPayload


class PositionEvent(BaseModel):
    event: Literal["position"] = "position"
    position: PositionPayload


class BalanceEvent(BaseModel):
    event: Literal["balance"] = "balance"
    balance: Optional[PositionPayload] = None
    # The relay server sends the balance under the "position" key
    position: Optional[PositionPayload] = None

    @model_validator(mode="after")
    def _require_payload(self) -> "BalanceEvent":
        if self.balance is None and self.position is None:
            raise ValueError("balance event carries neither 'balance' nor 'position'")
        return self

    @property
    def payload(self) -> PositionPayload:
        return self.balance if self.balance is not None else self.position  # type: ignore[return-value]


class SummaryEvent(BaseModel):
    event: Literal["summary"] = "summary"
    summary: SummaryPayload


class UnknownEvent(BaseModel):
    event: str


FeedEvent = Union[TickEvent, PositionEvent, BalanceEvent, SummaryEvent, UnknownEvent]

EVENT_MODELS: Dict[str, Type[BaseModel]] = {
    "tick": TickEvent,
    "position": PositionEvent,
    "balance": BalanceEvent,
    "summary": SummaryEvent,
}


def _preview(raw: str, limit: int = 200) -> str:
    return raw if len(raw) <= limit else raw[:limit] + "..."


def parse_message(raw: Union[str, bytes]) -> FeedEvent:
    """Decode one feed frame into a typed event.

    Unknown event kinds come back as UnknownEvent; anything that is not JSON,
    not an object, lacks a string "event" field, or does not fit the shape of
    its kind raises MalformedMessageError.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedMessageError(f"frame is not UTF-8: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedMessageError(f"frame is not JSON: {exc.msg}", raw=_preview(raw)) from exc
    if not isinstance(data, dict):
        raise MalformedMessageError("frame is not a JSON object", raw=_preview(raw))
    kind = data.get("event")
    if not isinstance(kind, str):
        raise MalformedMessageError("frame has no string 'event' field", raw=_preview(raw))

    model = EVENT_MODELS.get(kind)
    if model is None:
        return UnknownEvent(event=kind)
    try:
        return model.model_validate(data)  # type: ignore[return-value]
    except ValidationError as exc:
        raise MalformedMessageError(
            f"bad {kind} payload: {exc.error_count()} validation error(s)",
            raw=_preview(raw),
            kind=kind,
        ) from exc


def encode_event(event: FeedEvent) -> str:
    return event.model_dump_json(by_alias=True, exclude_none=True)
