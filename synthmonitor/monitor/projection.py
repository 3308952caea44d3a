"""ActivityProjection — read-only filter/search view over buffered records.

The projection never stores records.  Every call works on the sequence it is
handed (normally ``ActivityBuffer.records()``) and preserves its order.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from synthmonitor.models.activity import ActivityLevel, ActivityRecord, ActivityType

ALL = "all"

STEP_LABELS: dict[ActivityType, str] = {
    ActivityType.INITIALIZATION: "\U0001f916 Initializing AI Agents",
    ActivityType.DOMAIN_ANALYSIS: "\U0001f9e0 Domain Expert Analysis",
    ActivityType.PRIVACY_ASSESSMENT: "\U0001f512 Privacy Assessment",
    ActivityType.BIAS_DETECTION: "\u2696\ufe0f Bias Detection",
    ActivityType.RELATIONSHIP_MAPPING: "\U0001f517 Relationship Mapping",
    ActivityType.QUALITY_PLANNING: "\U0001f3af Quality Planning",
    ActivityType.DATA_GENERATION: "\U0001f916 Data Generation",
    ActivityType.QUALITY_VALIDATION: "\U0001f50d Quality Validation",
    ActivityType.FINAL_ASSEMBLY: "\U0001f4e6 Final Assembly",
    ActivityType.COMPLETION: "\U0001f389 Generation Complete",
    ActivityType.ERROR: "\u274c Error Occurred",
    ActivityType.SYSTEM: "\u2699\ufe0f System Event",
    ActivityType.GEMINI_CALL: "\U0001f9e0 Gemini AI Call",
    ActivityType.AGENT_RESPONSE: "\U0001f916 Agent Response",
}


class FilterCriteria(BaseModel):
    """Active filter settings.  ``None`` or ``"all"`` disables a criterion."""

    model_config = ConfigDict(frozen=True)

    level: str | None = None
    agent: str | None = None
    search: str = ""

    @property
    def is_empty(self) -> bool:
        return (
            self.level in (None, ALL)
            and self.agent in (None, ALL)
            and not self.search
        )


def step_label(activity_type: ActivityType | str) -> str:
    """Human-readable label for an activity type."""
    try:
        return STEP_LABELS[ActivityType(activity_type)]
    except ValueError:
        return str(activity_type).replace("_", " ").upper()


class ActivityProjection:
    """Pure filter and summary functions over activity records."""

    @staticmethod
    def matches(record: ActivityRecord, criteria: FilterCriteria) -> bool:
        if criteria.level not in (None, ALL) and record.level.value != criteria.level:
            return False
        if criteria.agent not in (None, ALL) and record.agent != criteria.agent:
            return False
        if criteria.search:
            needle = criteria.search.lower()
            return needle in record.message.lower() or needle in record.agent.lower()
        return True

    def apply(
        self,
        records: Iterable[ActivityRecord],
        criteria: FilterCriteria | None = None,
    ) -> list[ActivityRecord]:
        """Return the records that satisfy every active criterion, in order."""
        if criteria is None or criteria.is_empty:
            return list(records)
        return [r for r in records if self.matches(r, criteria)]

    @staticmethod
    def unique_agents(records: Iterable[ActivityRecord]) -> list[str]:
        """Distinct agents in first-seen order, for building filter choices."""
        return list(dict.fromkeys(r.agent for r in records if r.agent))

    @staticmethod
    def level_counts(records: Sequence[ActivityRecord]) -> dict[ActivityLevel, int]:
        counts = Counter(r.level for r in records)
        return {level: counts.get(level, 0) for level in ActivityLevel}
