"""Activity taxonomy and record models.

The closed taxonomy (type / status / level) is fixed by the upstream
generation backend's log vocabulary.  Records are frozen once stamped.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

PLACEHOLDER_MESSAGE = "Processing..."
DEFAULT_AGENT = "System"
ERROR_PROGRESS = -1


class ActivityType(str, Enum):
    """Pipeline stage an activity record is attributed to."""

    INITIALIZATION = "initialization"
    DOMAIN_ANALYSIS = "domain_analysis"
    PRIVACY_ASSESSMENT = "privacy_assessment"
    BIAS_DETECTION = "bias_detection"
    RELATIONSHIP_MAPPING = "relationship_mapping"
    QUALITY_PLANNING = "quality_planning"
    DATA_GENERATION = "data_generation"
    QUALITY_VALIDATION = "quality_validation"
    FINAL_ASSEMBLY = "final_assembly"
    COMPLETION = "completion"
    ERROR = "error"
    SYSTEM = "system"
    GEMINI_CALL = "gemini_call"
    AGENT_RESPONSE = "agent_response"


class ActivityStatus(str, Enum):
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"
    FALLBACK = "fallback"


class ActivityLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class StatusMarker(str, Enum):
    """Status implied by a leading glyph or marker word in free text."""

    SUCCESS = "success"
    IN_PROGRESS = "in_progress"
    ERROR = "error"
    WARNING = "warning"
    AGENT = "agent"


def coerce_progress(value: Any) -> int | None:
    """Coerce a raw progress value into ``None``, ``-1`` or ``0..100``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None
    if number < 0:
        return ERROR_PROGRESS
    return min(number, 100)


class NormalizedFields(BaseModel):
    """Field set produced by the normalizer for a single inbound event.

    Every field except ``message`` is optional; the classifier fills the
    gaps.  Values are kept as loose strings here because structured events
    may carry words or glyphs that the classifier interprets.
    """

    model_config = ConfigDict(frozen=True)

    message: str = PLACEHOLDER_MESSAGE
    step: str | None = None
    progress: int | None = None
    agent: str | None = None
    status: str | None = None
    level: str | None = None
    type: str | None = None
    metadata: dict[str, Any] = {}

    @field_validator("progress", mode="before")
    @classmethod
    def _coerce_progress(cls, value: Any) -> int | None:
        return coerce_progress(value)

    @field_validator("message", mode="before")
    @classmethod
    def _non_empty_message(cls, value: Any) -> str:
        if value is None:
            return PLACEHOLDER_MESSAGE
        text = str(value).strip()
        return text or PLACEHOLDER_MESSAGE


class ClassifiedActivity(BaseModel):
    """A fully classified activity, not yet stamped by the buffer."""

    model_config = ConfigDict(frozen=True)

    type: ActivityType = ActivityType.SYSTEM
    status: ActivityStatus = ActivityStatus.STARTED
    level: ActivityLevel = ActivityLevel.INFO
    message: str = PLACEHOLDER_MESSAGE
    agent: str = DEFAULT_AGENT
    progress: int | None = None
    metadata: dict[str, Any] = {}

    @field_validator("progress", mode="before")
    @classmethod
    def _coerce_progress(cls, value: Any) -> int | None:
        return coerce_progress(value)

    @field_validator("message", mode="before")
    @classmethod
    def _non_empty_message(cls, value: Any) -> str:
        if value is None:
            return PLACEHOLDER_MESSAGE
        text = str(value).strip()
        return text or PLACEHOLDER_MESSAGE


class ActivityRecord(ClassifiedActivity):
    """One classified unit of operational telemetry, as held by the buffer."""

    id: str
    timestamp: datetime

    @property
    def step(self) -> str | None:
        return self.metadata.get("step")
