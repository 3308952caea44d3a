"""End-to-end tests: transport -> normalize -> classify -> buffer -> projection.

Every event enters through ``LocalTransport.publish`` so the subscription,
pause gate, gauge and status poller are exercised together.
"""

from __future__ import annotations

import pytest

from conftest import HEALTHY_BODY, FakeProbe
from synthmonitor.config import MonitorSettings
from synthmonitor.core.clock import ManualClock, ManualScheduler
from synthmonitor.models.activity import ActivityLevel, ActivityStatus, ActivityType
from synthmonitor.models.status import AIServiceState
from synthmonitor.monitor.projection import FilterCriteria
from synthmonitor.monitor.session import ActivityMonitor
from synthmonitor.monitor.transport import LocalTransport


# A generation run as the backend streams it.
GENERATION_RUN = [
    {"kind": "generation_update", "data": {"step": "initialization", "progress": 5,
                                           "message": "Starting generation"}},
    {"kind": "raw", "data": {"message": "[15%] Domain Analysis: scanning columns"}},
    {"kind": "raw", "data": {"message": "✅ Domain Expert: Detected retail domain"}},
    {"kind": "raw", "data": {"message": "Privacy Agent: 92% privacy compliance"}},
    {"kind": "raw", "data": {"message": "Gemini 2.0 Flash: drafting schema"}},
    {"kind": "agent_activity", "data": {"agent": "Bias Detector",
                                        "message": "bias score 4%", "progress": 55}},
    {"kind": "raw", "data": {"message": "Error: quota exceeded"}},
    {"kind": "generation_update", "data": {"progress": 100,
                                           "message": "Generated 1000 records"}},
]


@pytest.fixture
def session(transport: LocalTransport, scheduler: ManualScheduler, clock: ManualClock):
    with ActivityMonitor(
        MonitorSettings(capacity=4, poll_interval_seconds=30.0),
        transport=transport,
        probe=FakeProbe(HEALTHY_BODY),
        scheduler=scheduler,
        clock=clock,
    ) as mon:
        yield mon


class TestBufferProperties:
    def test_capacity_and_reverse_arrival_order(self, session, transport):
        for i, event in enumerate(GENERATION_RUN):
            transport.publish(event)
            assert len(session.records()) == min(i + 1, 4)
        messages = [r.message for r in session.records()]
        assert messages == [
            "Generated 1000 records",
            "quota exceeded",
            "bias score 4%",
            "drafting schema",
        ]

    def test_pause_discards_and_keeps_gauge(self, session, transport, make_event):
        transport.publish(make_event(message="a", progress=30))
        session.pause()
        transport.publish(make_event(message="b", progress=70))
        assert [r.message for r in session.records()] == ["a"]
        assert session.current_progress() == 30
        session.resume()
        transport.publish(make_event(message="c"))
        assert [r.message for r in session.records()] == ["c", "a"]

    def test_gauge_only_moves_on_progress(self, session, transport, make_event, raw_line):
        transport.publish(make_event(message="halfway", progress=50))
        transport.publish(raw_line("Quality Agent: checking distributions"))
        assert session.current_progress() == 50
        transport.publish(raw_line("[0%] Generation: restarting"))
        assert session.current_progress() == 0

    def test_clear_then_append(self, session, transport, make_event):
        for event in GENERATION_RUN:
            transport.publish(event)
        session.clear()
        transport.publish(make_event(message="fresh", progress=12))
        (record,) = session.records()
        assert record.message == "fresh"
        assert session.current_progress() == 12

        session.clear()
        transport.publish(make_event(message="no progress"))
        assert session.current_progress() == 0


class TestClassificationEndToEnd:
    def test_bracketed_progress_wins_over_labeled_agent(self, session, transport, raw_line):
        transport.publish(raw_line("[40%] Domain Analysis: scanning columns"))
        (record,) = session.records()
        assert record.progress == 40
        assert record.step == "Domain Analysis"
        assert record.message == "scanning columns"
        assert record.metadata["pattern"] == "progress"
        assert record.type == ActivityType.DOMAIN_ANALYSIS
        assert record.status == ActivityStatus.IN_PROGRESS

    def test_error_line(self, session, transport, raw_line):
        transport.publish(raw_line("Error: connection refused"))
        (record,) = session.records()
        assert record.type == ActivityType.ERROR
        assert record.level == ActivityLevel.ERROR
        assert record.status == ActivityStatus.ERROR
        assert record.message == "connection refused"

    def test_stage_outranks_error_progress(self, session, transport, make_event):
        transport.publish(
            make_event(step="Privacy Assessment", message="scan aborted", progress=-1)
        )
        (record,) = session.records()
        assert record.type == ActivityType.PRIVACY_ASSESSMENT
        assert record.status == ActivityStatus.ERROR
        assert record.level == ActivityLevel.ERROR
        assert session.current_progress() == 0

    def test_full_run(self, transport, scheduler, clock):
        mon = ActivityMonitor(
            MonitorSettings(capacity=100),
            transport=transport,
            probe=FakeProbe(HEALTHY_BODY),
            scheduler=scheduler,
            clock=clock,
        ).open()
        transport.replay(GENERATION_RUN)
        by_message = {r.message: r for r in mon.records()}

        detected = by_message["Detected retail domain"]
        assert detected.agent == "Domain Expert"
        assert detected.status == ActivityStatus.COMPLETED
        assert detected.metadata["domain"] == "retail"
        assert by_message["92% privacy compliance"].metadata["privacy_score"] == 92

        gemini = by_message["drafting schema"]
        assert gemini.agent == "Gemini AI"
        assert gemini.type == ActivityType.GEMINI_CALL

        done = by_message["Generated 1000 records"]
        assert done.status == ActivityStatus.COMPLETED
        assert done.level == ActivityLevel.SUCCESS
        assert mon.current_progress() == 100
        mon.close()


class TestProjectionEndToEnd:
    def test_agent_and_search_filter(self, session, transport, make_event):
        transport.publish(make_event(message="privacy score 0.97", agent="Privacy Agent"))
        transport.publish(make_event(message="masking emails", agent="Privacy Agent"))
        result = session.filter(FilterCriteria(agent="Privacy Agent", search="score"))
        assert [r.message for r in result] == ["privacy score 0.97"]


class TestStatusEndToEnd:
    def test_poller_tracks_backend_and_transport(self, transport, scheduler, clock):
        probe = FakeProbe(HEALTHY_BODY, HEALTHY_BODY, ConnectionError("refused"))
        with ActivityMonitor(
            MonitorSettings(poll_interval_seconds=30.0),
            transport=transport,
            probe=probe,
            scheduler=scheduler,
            clock=clock,
        ) as mon:
            assert mon.current_status().backend_healthy is True
            scheduler.advance(30)
            transport.connected = False
            scheduler.advance(30)
            status = mon.current_status()
            assert status.backend_healthy is False
            assert status.transport_connected is False
            assert status.ai_service_state == AIServiceState.ONLINE
            assert probe.calls == 3
        assert scheduler.active_timers == 0
