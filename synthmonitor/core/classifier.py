"""ActivityClassifier — derives the closed-taxonomy fields for an event.

Status and level resolve explicit value > status marker > default.  Type
resolves explicit value > stage keywords > agent stage > error signal >
system.  Unrecognised input always resolves to the default tuple
``(system, started, info, "System")``; classification never raises.
"""

from __future__ import annotations

from synthmonitor.core.patterns import GEMINI_AGENT, marker_for_glyph
from synthmonitor.models.activity import (
    DEFAULT_AGENT,
    ERROR_PROGRESS,
    ActivityLevel,
    ActivityStatus,
    ActivityType,
    ClassifiedActivity,
    NormalizedFields,
    StatusMarker,
)

# Ordered (keywords, type) cascade, tested against step first, then message.
TYPE_CASCADE: tuple[tuple[tuple[str, ...], ActivityType], ...] = (
    (("gemini", "2.0 flash"), ActivityType.GEMINI_CALL),
    (("initializ",), ActivityType.INITIALIZATION),
    (("domain",), ActivityType.DOMAIN_ANALYSIS),
    (("privacy",), ActivityType.PRIVACY_ASSESSMENT),
    (("bias",), ActivityType.BIAS_DETECTION),
    (("relationship",), ActivityType.RELATIONSHIP_MAPPING),
    (("quality",), ActivityType.QUALITY_PLANNING),
    (("generation", "generating"), ActivityType.DATA_GENERATION),
    (("validation", "validating"), ActivityType.QUALITY_VALIDATION),
    (("assembly", "assembling"), ActivityType.FINAL_ASSEMBLY),
    (("completion", "completed"), ActivityType.COMPLETION),
    (("agent",), ActivityType.AGENT_RESPONSE),
)

# Stage owned by each known agent label.
AGENT_TYPES: dict[str, ActivityType] = {
    "Domain Expert": ActivityType.DOMAIN_ANALYSIS,
    "Privacy Agent": ActivityType.PRIVACY_ASSESSMENT,
    "Bias Detector": ActivityType.BIAS_DETECTION,
    "Relationship Agent": ActivityType.RELATIONSHIP_MAPPING,
    "Quality Agent": ActivityType.QUALITY_PLANNING,
    GEMINI_AGENT: ActivityType.GEMINI_CALL,
}

# Agent inference: substrings of the message first, then of the step.
MESSAGE_AGENTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("domain expert",), "Domain Expert"),
    (("privacy agent",), "Privacy Agent"),
    (("bias detector", "bias detection"), "Bias Detector"),
    (("quality agent",), "Quality Agent"),
    (("relationship agent",), "Relationship Agent"),
    (("gemini", "2.0 flash"), GEMINI_AGENT),
    (("ollama",), "Ollama"),
)

STEP_AGENTS: tuple[tuple[str, str], ...] = (
    ("domain", "Domain Expert"),
    ("privacy", "Privacy Agent"),
    ("bias", "Bias Detector"),
    ("quality", "Quality Agent"),
    ("relationship", "Relationship Agent"),
)

# Marker words accepted in an explicit ``status`` field.
_MARKER_WORDS: dict[str, StatusMarker] = {
    "success": StatusMarker.SUCCESS,
    "succeeded": StatusMarker.SUCCESS,
    "ok": StatusMarker.SUCCESS,
    "done": StatusMarker.SUCCESS,
    "error": StatusMarker.ERROR,
    "failed": StatusMarker.ERROR,
    "failure": StatusMarker.ERROR,
    "warning": StatusMarker.WARNING,
    "warn": StatusMarker.WARNING,
    "in_progress": StatusMarker.IN_PROGRESS,
    "in-progress": StatusMarker.IN_PROGRESS,
    "running": StatusMarker.IN_PROGRESS,
    "agent": StatusMarker.AGENT,
}

_MARKER_STATUS: dict[StatusMarker, ActivityStatus] = {
    StatusMarker.SUCCESS: ActivityStatus.COMPLETED,
    StatusMarker.ERROR: ActivityStatus.ERROR,
    StatusMarker.WARNING: ActivityStatus.FALLBACK,
    StatusMarker.IN_PROGRESS: ActivityStatus.IN_PROGRESS,
}

_LEVEL_ALIASES: dict[str, ActivityLevel] = {
    "warn": ActivityLevel.WARNING,
    "err": ActivityLevel.ERROR,
}


def resolve_marker(status: str | None) -> StatusMarker | None:
    """Interpret a status value as a glyph or marker word."""
    if not status:
        return None
    text = status.strip()
    marker = marker_for_glyph(text)
    if marker is not None:
        return marker
    return _MARKER_WORDS.get(text.lower())


def resolve_level(level: str | None) -> ActivityLevel | None:
    if not level:
        return None
    text = level.strip().lower()
    try:
        return ActivityLevel(text)
    except ValueError:
        return _LEVEL_ALIASES.get(text)


def _first_match(
    text: str, table: tuple[tuple[tuple[str, ...], object], ...]
) -> object | None:
    for keywords, result in table:
        if any(keyword in text for keyword in keywords):
            return result
    return None


class ActivityClassifier:
    """Pure mapping from ``NormalizedFields`` to a ``ClassifiedActivity``."""

    def classify(self, fields: NormalizedFields) -> ClassifiedActivity:
        marker = resolve_marker(fields.status)
        level = self.detect_level(fields, marker)
        agent = self.detect_agent(fields)

        return ClassifiedActivity(
            type=self.detect_type(fields, marker, level, agent),
            status=self.detect_status(fields, marker),
            level=level,
            message=fields.message,
            agent=agent,
            progress=fields.progress,
            metadata=dict(fields.metadata),
        )

    # ------------------------------------------------------------------
    # Field rules
    # ------------------------------------------------------------------

    def detect_type(
        self,
        fields: NormalizedFields,
        marker: StatusMarker | None = None,
        level: ActivityLevel | None = None,
        agent: str | None = None,
    ) -> ActivityType:
        if fields.type:
            try:
                return ActivityType(fields.type.strip().lower())
            except ValueError:
                pass

        message = fields.message.lower()
        for text in (fields.step or "", message):
            found = _first_match(text.lower(), TYPE_CASCADE)
            if found is not None:
                return found  # type: ignore[return-value]

        if agent and agent in AGENT_TYPES:
            return AGENT_TYPES[agent]

        # Stage keywords outrank the error signal; status and level carry it.
        if (
            fields.progress == ERROR_PROGRESS
            or level == ActivityLevel.ERROR
            or marker == StatusMarker.ERROR
            or "error" in message
            or "failed" in message
        ):
            return ActivityType.ERROR
        return ActivityType.SYSTEM

    def detect_status(
        self, fields: NormalizedFields, marker: StatusMarker | None = None
    ) -> ActivityStatus:
        progress = fields.progress
        if progress == 100:
            return ActivityStatus.COMPLETED
        if progress == ERROR_PROGRESS:
            return ActivityStatus.ERROR
        if progress is not None and progress > 0:
            return ActivityStatus.IN_PROGRESS

        if fields.status:
            try:
                return ActivityStatus(fields.status.strip().lower())
            except ValueError:
                pass
        if marker in _MARKER_STATUS:
            return _MARKER_STATUS[marker]

        level = resolve_level(fields.level)
        if level == ActivityLevel.ERROR:
            return ActivityStatus.ERROR
        if level == ActivityLevel.SUCCESS:
            return ActivityStatus.COMPLETED
        return ActivityStatus.STARTED

    def detect_level(
        self, fields: NormalizedFields, marker: StatusMarker | None = None
    ) -> ActivityLevel:
        explicit = resolve_level(fields.level)
        if explicit is not None:
            return explicit
        if marker == StatusMarker.ERROR or fields.progress == ERROR_PROGRESS:
            return ActivityLevel.ERROR
        if marker == StatusMarker.SUCCESS or fields.progress == 100:
            return ActivityLevel.SUCCESS
        if marker == StatusMarker.WARNING:
            return ActivityLevel.WARNING
        return ActivityLevel.INFO

    def detect_agent(self, fields: NormalizedFields) -> str:
        if fields.agent and fields.agent.strip():
            return fields.agent.strip()

        found = _first_match(fields.message.lower(), MESSAGE_AGENTS)
        if found is not None:
            return found  # type: ignore[return-value]

        step = (fields.step or "").lower()
        for keyword, agent in STEP_AGENTS:
            if keyword in step:
                return agent
        return DEFAULT_AGENT
