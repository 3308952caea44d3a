"""Shared test fixtures for synthmonitor."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any

import pytest

from synthmonitor.config import MonitorSettings
from synthmonitor.core.buffer import ActivityBuffer
from synthmonitor.core.classifier import ActivityClassifier
from synthmonitor.core.clock import ManualClock, ManualScheduler
from synthmonitor.core.normalizer import MessageNormalizer
from synthmonitor.models.activity import ClassifiedActivity
from synthmonitor.monitor.session import ActivityMonitor
from synthmonitor.monitor.transport import LocalTransport


class FakeProbe:
    """Health probe returning queued responses; exceptions in the queue are raised."""

    def __init__(self, *responses: Any) -> None:
        self.responses: list[Any] = list(responses)
        self.calls = 0

    def check(self) -> Mapping[str, Any]:
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


HEALTHY_BODY: dict[str, Any] = {
    "healthy": True,
    "data": {
        "services": {
            "ai": {"status": "ready", "model": "gemini-2.0-flash", "quota_preserved": True},
            "agents": "active",
            "websockets": "ready",
        }
    },
}


@pytest.fixture
def settings() -> MonitorSettings:
    """Settings with a small capacity and short poll interval."""
    return MonitorSettings(capacity=5, poll_interval_seconds=10.0)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler(clock: ManualClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def normalizer() -> MessageNormalizer:
    return MessageNormalizer()


@pytest.fixture
def classifier() -> ActivityClassifier:
    return ActivityClassifier()


@pytest.fixture
def buffer(clock: ManualClock) -> ActivityBuffer:
    """A three-slot buffer stamped by the manual clock."""
    return ActivityBuffer(3, clock=clock)


@pytest.fixture
def transport() -> LocalTransport:
    return LocalTransport()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe(HEALTHY_BODY)


@pytest.fixture
def monitor(
    settings: MonitorSettings,
    transport: LocalTransport,
    probe: FakeProbe,
    scheduler: ManualScheduler,
    clock: ManualClock,
) -> Iterator[ActivityMonitor]:
    """An opened monitor wired to the local transport and manual scheduler."""
    with ActivityMonitor(
        settings,
        transport=transport,
        probe=probe,
        scheduler=scheduler,
        clock=clock,
    ) as mon:
        yield mon


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_activity() -> Callable[..., ClassifiedActivity]:
    """Factory fixture: build a ClassifiedActivity with sensible defaults."""

    def _factory(message: str = "test activity", **overrides: Any) -> ClassifiedActivity:
        return ClassifiedActivity(message=message, **overrides)

    return _factory


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Factory fixture: build a transport envelope."""

    def _factory(kind: str = "generation_update", **data: Any) -> dict[str, Any]:
        return {"kind": kind, "data": data}

    return _factory


@pytest.fixture
def raw_line(make_event: Callable[..., dict[str, Any]]) -> Callable[[str], dict[str, Any]]:
    """Factory fixture: wrap a free-text log line in a raw envelope."""

    def _factory(text: str) -> dict[str, Any]:
        return make_event("raw", message=text)

    return _factory
