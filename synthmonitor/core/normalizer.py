"""MessageNormalizer — turns one raw transport event into ``NormalizedFields``.

Structured envelopes are a direct field copy.  Free-text lines go through
the ordered pattern table in ``synthmonitor.core.patterns``.  Anything else
becomes the minimal placeholder.  ``normalize`` is pure and never raises.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from synthmonitor.core.patterns import (
    FREE_TEXT_PATTERNS,
    FreeTextPattern,
    extract_figures,
    match_free_text,
)
from synthmonitor.models.activity import (
    PLACEHOLDER_MESSAGE,
    ActivityLevel,
    ActivityType,
    NormalizedFields,
)
from synthmonitor.models.events import (
    EventKind,
    FreeTextEvent,
    MalformedEvent,
    StructuredEvent,
    parse_event,
)

logger = logging.getLogger(__name__)

FALLBACK_FIELDS = NormalizedFields(message=PLACEHOLDER_MESSAGE)


class MessageNormalizer:
    """Maps inbound event variants onto a flat ``NormalizedFields`` set.

    Parameters
    ----------
    patterns:
        Ordered free-text pattern table.  Defaults to the upstream log
        vocabulary; override only in tests or for a different backend.
    """

    def __init__(
        self, patterns: tuple[FreeTextPattern, ...] = FREE_TEXT_PATTERNS
    ) -> None:
        self._patterns = patterns

    def normalize(self, raw: Any) -> NormalizedFields:
        """Normalize one raw event.  Falls back to a placeholder on any doubt."""
        event = parse_event(raw)

        if isinstance(event, StructuredEvent):
            return self._from_structured(event)
        if isinstance(event, FreeTextEvent):
            return self._from_free_text(event)

        logger.debug("Unrecognised event shape: %s", event.reason)
        return FALLBACK_FIELDS

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    def _from_structured(self, event: StructuredEvent) -> NormalizedFields:
        data = event.data
        metadata: dict[str, Any] = {**data.extras, **data.metadata}
        if data.step:
            metadata.setdefault("step", data.step)

        level = data.level
        type_ = data.type
        if event.kind == EventKind.ERROR:
            level = level or ActivityLevel.ERROR.value
            type_ = type_ or ActivityType.ERROR.value

        return NormalizedFields(
            message=data.message,
            step=data.step,
            progress=data.progress,
            agent=data.agent,
            status=data.status,
            level=level,
            type=type_,
            metadata=metadata,
        )

    def _from_free_text(self, event: FreeTextEvent) -> NormalizedFields:
        text = event.text
        pattern_name, fields = match_free_text(text, self._patterns)

        metadata: dict[str, Any] = {
            "raw_message": text,
            "pattern": pattern_name,
            **extract_figures(text),
            **fields.pop("metadata", {}),
        }
        if fields.get("step"):
            metadata["step"] = fields["step"]

        try:
            return NormalizedFields(**fields, metadata=metadata)
        except ValidationError as exc:
            logger.warning("Free-text fields rejected (%s): %s", pattern_name, exc)
            return NormalizedFields(message=text, metadata=metadata)
