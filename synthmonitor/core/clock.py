"""Injectable time sources and interval schedulers.

The monitor never reads the wall clock or sleeps directly.  Production code
uses ``SystemClock`` and ``AsyncioScheduler``; tests use ``ManualScheduler``,
which owns a ``ManualClock`` and fires due callbacks only when advanced.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, runtime_checkable

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler as APScheduler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class Clock(Protocol):
    """Source of wall-clock timestamps and monotonic readings."""

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, for measuring latency."""
        ...


@runtime_checkable
class ScheduledHandle(Protocol):
    def cancel(self) -> None:
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Runs a callback repeatedly every ``interval`` seconds until cancelled.

    The callback may be a plain function or a coroutine function; coroutines
    are awaited.  With ``immediate=True`` the first run happens right away.
    """

    def call_every(
        self,
        interval: float,
        callback: Callable[[], object],
        *,
        immediate: bool = False,
    ) -> ScheduledHandle:
        ...


# ---------------------------------------------------------------------------
# Real time
# ---------------------------------------------------------------------------


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()


class _JobHandle:
    def __init__(self, job: Job) -> None:
        self._job: Job | None = job

    def cancel(self) -> None:
        if self._job is None:
            return
        try:
            self._job.remove()
        except JobLookupError:
            pass
        self._job = None


class AsyncioScheduler:
    """Repeating interval jobs on APScheduler's ``AsyncIOScheduler``.

    Each tick is wrapped in a coroutine so it runs on the loop thread and
    never interleaves with transport handlers.  Coroutine callbacks are
    awaited, so a slow probe suspends only its own job.  The underlying
    scheduler is created and started on first use, which must happen inside
    a running loop.
    """

    def __init__(self, scheduler: APScheduler | None = None) -> None:
        self._scheduler = scheduler

    def call_every(
        self,
        interval: float,
        callback: Callable[[], object],
        *,
        immediate: bool = False,
    ) -> _JobHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if self._scheduler is None:
            self._scheduler = APScheduler(
                timezone="UTC", event_loop=asyncio.get_running_loop()
            )
        if not self._scheduler.running:
            self._scheduler.start()

        async def _tick() -> None:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                logger.exception("Scheduled callback %r failed", callback)

        options: dict[str, Any] = {}
        if immediate:
            options["next_run_time"] = datetime.now(timezone.utc)
        job = self._scheduler.add_job(_tick, "interval", seconds=interval, **options)
        return _JobHandle(job)

    def shutdown(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)


# ---------------------------------------------------------------------------
# Deterministic time for tests
# ---------------------------------------------------------------------------


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)
        self._elapsed = 0.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._elapsed

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        self._elapsed += seconds
        self._now += timedelta(seconds=seconds)


def _run(callback: Callable[[], object]) -> None:
    result = callback()
    # Coroutine callbacks are driven to completion on a private loop.
    if inspect.iscoroutine(result):
        asyncio.run(result)


class _ManualTimer:
    def __init__(self, interval: float, callback: Callable[[], object], due: float) -> None:
        self.interval = interval
        self.callback = callback
        self.due = due
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by ``advance()`` over a ``ManualClock``.

    Due timers fire in due-time order (registration order on ties), and a
    timer that falls due several times within one advance fires each time.
    """

    def __init__(self, clock: ManualClock | None = None) -> None:
        self.clock = clock or ManualClock()
        self._timers: list[_ManualTimer] = []

    def call_every(
        self,
        interval: float,
        callback: Callable[[], object],
        *,
        immediate: bool = False,
    ) -> _ManualTimer:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if immediate:
            _run(callback)
        timer = _ManualTimer(interval, callback, self.clock.monotonic() + interval)
        self._timers.append(timer)
        return timer

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.clock.monotonic() + seconds
        while True:
            live = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not live:
                break
            timer = min(live, key=lambda t: t.due)
            self.clock.advance(max(0.0, timer.due - self.clock.monotonic()))
            timer.due += timer.interval
            _run(timer.callback)
        self.clock.advance(max(0.0, target - self.clock.monotonic()))
        self._timers = [t for t in self._timers if not t.cancelled]
