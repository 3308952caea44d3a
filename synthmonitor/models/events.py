"""Inbound event envelopes from the live transport.

The transport delivers ``{kind, data}`` envelopes whose ``data`` is either
structured (explicit fields) or a single free-text log line.  ``parse_event``
resolves any raw input into exactly one variant of the ``InboundEvent``
tagged union; it never raises.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from synthmonitor.models.activity import coerce_progress


class EventKind(str, Enum):
    """Discriminator carried by every transport envelope."""

    GENERATION_UPDATE = "generation_update"
    AGENT_ACTIVITY = "agent_activity"
    ERROR = "error"
    RAW = "raw"


# Kinds whose ``data`` object is copied field-by-field.
STRUCTURED_KINDS: frozenset[EventKind] = frozenset(
    {EventKind.GENERATION_UPDATE, EventKind.AGENT_ACTIVITY, EventKind.ERROR}
)


class EventData(BaseModel):
    """The ``data`` object of an envelope.  Unknown keys are kept as extras."""

    model_config = ConfigDict(frozen=True, extra="allow")

    message: str | None = None
    step: str | None = None
    progress: int | None = None
    agent: str | None = None
    status: str | None = None
    level: str | None = None
    type: str | None = None
    metadata: dict[str, Any] = {}

    @field_validator("message", "step", "agent", "status", "level", "type", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value)

    @field_validator("progress", mode="before")
    @classmethod
    def _coerce_progress(cls, value: Any) -> int | None:
        return coerce_progress(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_mapping(cls, value: Any) -> dict[str, Any]:
        return dict(value) if isinstance(value, Mapping) else {}

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class StructuredEvent(BaseModel):
    """Envelope whose data already carries explicit fields."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["structured"] = "structured"
    kind: EventKind
    data: EventData


class FreeTextEvent(BaseModel):
    """Envelope carrying only a free-text log line."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["free_text"] = "free_text"
    kind: EventKind | None = None
    text: str


class MalformedEvent(BaseModel):
    """Input that is neither structured nor free text."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["malformed"] = "malformed"
    reason: str


InboundEvent = Annotated[
    Union[StructuredEvent, FreeTextEvent, MalformedEvent],
    Field(discriminator="shape"),
]

_VARIANTS = (StructuredEvent, FreeTextEvent, MalformedEvent)


def parse_event(raw: Any) -> StructuredEvent | FreeTextEvent | MalformedEvent:
    """Resolve a raw transport payload into an ``InboundEvent`` variant.

    Accepts an envelope mapping, a JSON string/bytes of one, a bare log
    line, or an already-parsed variant.
    """
    if isinstance(raw, _VARIANTS):
        return raw

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            return MalformedEvent(reason=f"Undecodable payload: {exc}")

    if isinstance(raw, str):
        stripped = raw.strip()
        if stripped.startswith("{"):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError:
                return FreeTextEvent(kind=EventKind.RAW, text=raw)
            return _parse_envelope(decoded)
        if not stripped:
            return MalformedEvent(reason="Empty payload")
        return FreeTextEvent(kind=EventKind.RAW, text=raw)

    return _parse_envelope(raw)


def _parse_envelope(raw: Any) -> StructuredEvent | FreeTextEvent | MalformedEvent:
    if not isinstance(raw, Mapping):
        return MalformedEvent(
            reason=f"Envelope must be a mapping, got {type(raw).__name__}"
        )

    # The websocket layer historically used ``type`` as the discriminator.
    kind_raw = raw.get("kind", raw.get("type"))
    try:
        kind = EventKind(kind_raw) if kind_raw is not None else None
    except ValueError:
        kind = None

    data = raw.get("data")
    if not isinstance(data, Mapping):
        data = {}

    if kind in STRUCTURED_KINDS and data:
        try:
            return StructuredEvent(kind=kind, data=EventData.model_validate(data))
        except ValidationError as exc:
            return MalformedEvent(reason=f"Invalid event data: {exc}")

    message = data.get("message")
    if isinstance(message, str) and message.strip():
        return FreeTextEvent(kind=kind, text=message)

    return MalformedEvent(reason="Envelope carries neither fields nor a message")
