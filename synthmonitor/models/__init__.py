"""synthmonitor data models — all Pydantic v2, all frozen (immutable)."""

from synthmonitor.models.activity import (
    DEFAULT_AGENT,
    ERROR_PROGRESS,
    PLACEHOLDER_MESSAGE,
    ActivityLevel,
    ActivityRecord,
    ActivityStatus,
    ActivityType,
    ClassifiedActivity,
    NormalizedFields,
    StatusMarker,
)
from synthmonitor.models.events import (
    EventData,
    EventKind,
    FreeTextEvent,
    InboundEvent,
    MalformedEvent,
    StructuredEvent,
    parse_event,
)
from synthmonitor.models.status import AIServiceState, SystemStatus

__all__ = [
    # activity
    "ActivityType",
    "ActivityStatus",
    "ActivityLevel",
    "StatusMarker",
    "NormalizedFields",
    "ClassifiedActivity",
    "ActivityRecord",
    "PLACEHOLDER_MESSAGE",
    "DEFAULT_AGENT",
    "ERROR_PROGRESS",
    # events
    "EventKind",
    "EventData",
    "StructuredEvent",
    "FreeTextEvent",
    "MalformedEvent",
    "InboundEvent",
    "parse_event",
    # status
    "AIServiceState",
    "SystemStatus",
]
