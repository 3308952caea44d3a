"""ActivityBuffer — bounded, newest-first activity log with a progress gauge.

The buffer owns its records exclusively.  ``append`` stamps a classified
activity with an id and timestamp, prepends it, and evicts the oldest record
once ``capacity`` is exceeded.  While paused, appends are dropped for good;
nothing is queued for replay.
"""

from __future__ import annotations

import collections
import logging
import uuid

from synthmonitor.core.clock import Clock, SystemClock
from synthmonitor.models.activity import ActivityRecord, ClassifiedActivity

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class ActivityBuffer:
    """Bounded newest-first store of ``ActivityRecord`` plus progress gauge.

    Parameters
    ----------
    capacity:
        Maximum number of records kept.  Must be at least 1.
    clock:
        Time source used to stamp records.  Defaults to ``SystemClock``.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        *,
        clock: Clock | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._clock = clock or SystemClock()
        self._records: collections.deque[ActivityRecord] = collections.deque(
            maxlen=capacity
        )
        self._progress = 0
        self._paused = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def paused(self) -> bool:
        return self._paused

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, activity: ClassifiedActivity) -> ActivityRecord | None:
        """Stamp and prepend *activity*.

        Returns the stored record, or ``None`` when the buffer is paused.
        """
        if self._paused:
            logger.debug("Buffer paused; dropping %s activity", activity.type.value)
            return None

        record = ActivityRecord(
            id=self._next_id(),
            timestamp=self._clock.now(),
            **activity.model_dump(),
        )
        # deque(maxlen) drops from the right end, i.e. the oldest record.
        self._records.appendleft(record)

        if record.progress is not None and record.progress >= 0:
            self._progress = record.progress
        return record

    def clear(self) -> None:
        """Drop every record and reset the gauge to 0."""
        self._records.clear()
        self._progress = 0

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def records(self) -> tuple[ActivityRecord, ...]:
        """Snapshot of the records, newest first."""
        return tuple(self._records)

    def progress(self) -> int:
        """Most recently observed non-negative progress, 0 after ``clear``."""
        return self._progress

    def _next_id(self) -> str:
        millis = int(self._clock.now().timestamp() * 1000)
        return f"{millis}_{uuid.uuid4().hex[:9]}"
