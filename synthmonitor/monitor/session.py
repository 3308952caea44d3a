"""ActivityMonitor — one monitor session's owned state and operations.

A session wires a transport subscription to the normalize -> classify ->
append pipeline and drives a ``StatusPoller`` from an injected scheduler.
Each session owns its buffer and poller exclusively; nothing is shared
between sessions.  ``close()`` (or leaving the ``with`` block) cancels the
poll timer and unsubscribes from the transport.
"""

from __future__ import annotations

import logging
from typing import Any

from synthmonitor.config import MonitorSettings
from synthmonitor.core.buffer import ActivityBuffer
from synthmonitor.core.classifier import ActivityClassifier
from synthmonitor.core.clock import Clock, Scheduler, SystemClock
from synthmonitor.core.normalizer import MessageNormalizer
from synthmonitor.models.activity import (
    DEFAULT_AGENT,
    ActivityLevel,
    ActivityRecord,
    ActivityStatus,
    ActivityType,
    ClassifiedActivity,
)
from synthmonitor.models.status import SystemStatus
from synthmonitor.monitor.poller import HealthProbe, HttpHealthProbe, StatusPoller
from synthmonitor.monitor.projection import ActivityProjection, FilterCriteria
from synthmonitor.monitor.transport import Transport, Unsubscribe

logger = logging.getLogger(__name__)

PARSE_FAILURE_MESSAGE = "Failed to parse incoming log message"


class ActivityMonitor:
    """Owned activity log, progress gauge and system status for one view.

    Parameters
    ----------
    settings:
        Session settings.  A fresh ``MonitorSettings()`` is read if omitted.
    transport:
        Live event source.  Without one, events can still be fed through
        ``append``.
    probe:
        Health probe.  Defaults to ``HttpHealthProbe`` on ``settings.health_url``.
    scheduler:
        Timer source for the status poller.  Without one, the poller only
        runs when ``refresh_status()`` is called.
    clock:
        Time source for record stamps and status checks.
    """

    def __init__(
        self,
        settings: MonitorSettings | None = None,
        *,
        transport: Transport | None = None,
        probe: HealthProbe | None = None,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or MonitorSettings()
        self._clock = clock or SystemClock()
        self._transport = transport
        self._scheduler = scheduler
        self._unsubscribe: Unsubscribe | None = None

        self._normalizer = MessageNormalizer()
        self._classifier = ActivityClassifier()
        self._projection = ActivityProjection()
        self._buffer = ActivityBuffer(self.settings.capacity, clock=self._clock)

        self._owned_probe: HttpHealthProbe | None = None
        if probe is None:
            self._owned_probe = HttpHealthProbe(
                self.settings.health_url,
                timeout=self.settings.health_timeout_seconds,
            )
            probe = self._owned_probe

        self._poller = StatusPoller(
            probe,
            transport_connected=self._transport_connected,
            clock=self._clock,
            interval=self.settings.poll_interval_seconds,
            agents_total=self.settings.agents_total,
            default_model=self.settings.ai_model,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None or self._poller.running

    def open(self) -> ActivityMonitor:
        """Subscribe to the transport and start status polling."""
        if self._transport is not None and self._unsubscribe is None:
            self._unsubscribe = self._transport.subscribe(self.append)
        if self._scheduler is not None:
            self._poller.start(self._scheduler)
        logger.info(
            "Activity monitor opened (capacity=%d, poll every %.0fs)",
            self._buffer.capacity,
            self._poller.interval,
        )
        return self

    def close(self) -> None:
        """Cancel the poll timer and unsubscribe.  Safe to call twice."""
        self._poller.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._owned_probe is not None:
            self._owned_probe.close()
            self._owned_probe = None

    def __enter__(self) -> ActivityMonitor:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    def append(self, event: Any) -> ActivityRecord | None:
        """Normalize, classify and buffer one inbound event.

        Never raises.  Returns the stored record, or ``None`` while paused.
        """
        if self._buffer.paused:
            return None
        try:
            fields = self._normalizer.normalize(event)
            activity = self._classifier.classify(fields)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to parse activity event")
            activity = ClassifiedActivity(
                type=ActivityType.ERROR,
                status=ActivityStatus.ERROR,
                level=ActivityLevel.ERROR,
                message=PARSE_FAILURE_MESSAGE,
                agent=DEFAULT_AGENT,
            )
        return self._buffer.append(activity)

    def clear(self) -> None:
        self._buffer.clear()

    def pause(self) -> None:
        self._buffer.pause()

    def resume(self) -> None:
        self._buffer.resume()

    @property
    def paused(self) -> bool:
        return self._buffer.paused

    def records(self) -> tuple[ActivityRecord, ...]:
        return self._buffer.records()

    def filter(
        self, criteria: FilterCriteria | None = None, **kwargs: Any
    ) -> list[ActivityRecord]:
        """Filtered records, newest first.

        Accepts a ``FilterCriteria`` or its fields as keyword arguments.
        """
        if criteria is None and kwargs:
            criteria = FilterCriteria(**kwargs)
        return self._projection.apply(self._buffer.records(), criteria)

    def agents(self) -> list[str]:
        return self._projection.unique_agents(self._buffer.records())

    def current_progress(self) -> int:
        return self._buffer.progress()

    # ------------------------------------------------------------------
    # System status
    # ------------------------------------------------------------------

    def current_status(self) -> SystemStatus:
        return self._poller.snapshot()

    def refresh_status(self) -> SystemStatus:
        """Run one blocking health probe immediately."""
        return self._poller.poll()

    async def refresh_status_async(self) -> SystemStatus:
        """Await one health probe without blocking the event loop."""
        return await self._poller.poll_async()

    def _transport_connected(self) -> bool:
        return self._transport is not None and self._transport.connected
