"""Tests for ActivityClassifier — precedence of explicit > marker > cascade > default."""

from __future__ import annotations

import pytest

from synthmonitor.core.classifier import ActivityClassifier, resolve_level, resolve_marker
from synthmonitor.core.normalizer import MessageNormalizer
from synthmonitor.models.activity import (
    ActivityLevel,
    ActivityStatus,
    ActivityType,
    NormalizedFields,
    StatusMarker,
)


def _classify(classifier: ActivityClassifier, **fields):
    return classifier.classify(NormalizedFields(**fields))


class TestDefaults:
    def test_unrecognised_input_yields_default_tuple(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="warming caches")
        assert (activity.type, activity.status, activity.level, activity.agent) == (
            ActivityType.SYSTEM,
            ActivityStatus.STARTED,
            ActivityLevel.INFO,
            "System",
        )

    def test_placeholder_message(self, classifier: ActivityClassifier):
        activity = _classify(classifier)
        assert activity.message == "Processing..."


class TestType:
    def test_explicit_type_wins(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="privacy stuff", type="final_assembly")
        assert activity.type == ActivityType.FINAL_ASSEMBLY

    def test_unrecognised_explicit_type_falls_through(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="privacy stuff", type="progress")
        assert activity.type == ActivityType.PRIVACY_ASSESSMENT

    def test_step_is_checked_before_message(self, classifier: ActivityClassifier):
        activity = _classify(classifier, step="Bias Detection", message="privacy pass")
        assert activity.type == ActivityType.BIAS_DETECTION

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Initializing agents", ActivityType.INITIALIZATION),
            ("domain looks like retail", ActivityType.DOMAIN_ANALYSIS),
            ("checking relationship keys", ActivityType.RELATIONSHIP_MAPPING),
            ("Generating 500 rows", ActivityType.DATA_GENERATION),
            ("validating output", ActivityType.QUALITY_VALIDATION),
            ("assembling dataset", ActivityType.FINAL_ASSEMBLY),
            ("job completed", ActivityType.COMPLETION),
            ("calling gemini", ActivityType.GEMINI_CALL),
            ("agent replied", ActivityType.AGENT_RESPONSE),
        ],
    )
    def test_keyword_cascade(self, classifier: ActivityClassifier, message, expected):
        assert _classify(classifier, message=message).type == expected

    def test_cascade_order_quality_before_validation(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="quality validation running")
        assert activity.type == ActivityType.QUALITY_PLANNING

    def test_agent_label_maps_to_stage(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="analyzing columns", agent="Privacy Agent")
        assert activity.type == ActivityType.PRIVACY_ASSESSMENT

    def test_stage_keyword_beats_error_progress(self, classifier: ActivityClassifier):
        activity = _classify(
            classifier, step="Privacy Assessment", message="scan aborted", progress=-1
        )
        assert activity.type == ActivityType.PRIVACY_ASSESSMENT
        assert activity.status == ActivityStatus.ERROR
        assert activity.level == ActivityLevel.ERROR

    def test_agent_stage_beats_error_marker(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="crashed", agent="Bias Detector", status="❌")
        assert activity.type == ActivityType.BIAS_DETECTION
        assert activity.status == ActivityStatus.ERROR

    @pytest.mark.parametrize(
        "kwargs",
        [{"progress": -1}, {"level": "error"}, {"status": "❌"}],
    )
    def test_error_signal_without_stage_is_error(self, classifier: ActivityClassifier, kwargs):
        activity = _classify(classifier, message="upstream timeout", **kwargs)
        assert activity.type == ActivityType.ERROR

    def test_error_word_in_message(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="request failed upstream")
        assert activity.type == ActivityType.ERROR


class TestStatus:
    @pytest.mark.parametrize(
        "progress,expected",
        [
            (100, ActivityStatus.COMPLETED),
            (-1, ActivityStatus.ERROR),
            (45, ActivityStatus.IN_PROGRESS),
            (0, ActivityStatus.STARTED),
        ],
    )
    def test_progress_drives_status(self, classifier: ActivityClassifier, progress, expected):
        assert _classify(classifier, message="m", progress=progress).status == expected

    def test_progress_beats_marker(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="m", progress=50, status="❌")
        assert activity.status == ActivityStatus.IN_PROGRESS

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("✅", ActivityStatus.COMPLETED),
            ("❌", ActivityStatus.ERROR),
            ("⚠️", ActivityStatus.FALLBACK),
            ("success", ActivityStatus.COMPLETED),
            ("warning", ActivityStatus.FALLBACK),
            ("completed", ActivityStatus.COMPLETED),
            ("in_progress", ActivityStatus.IN_PROGRESS),
            ("agent", ActivityStatus.STARTED),
        ],
    )
    def test_marker_drives_status(self, classifier: ActivityClassifier, status, expected):
        assert _classify(classifier, message="m", status=status).status == expected

    def test_level_drives_status_last(self, classifier: ActivityClassifier):
        assert _classify(classifier, message="m", level="error").status == ActivityStatus.ERROR
        assert (
            _classify(classifier, message="m", level="success").status
            == ActivityStatus.COMPLETED
        )


class TestLevel:
    def test_explicit_level_wins(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="m", level="warning", status="❌")
        assert activity.level == ActivityLevel.WARNING

    def test_warn_alias(self, classifier: ActivityClassifier):
        assert _classify(classifier, message="m", level="warn").level == ActivityLevel.WARNING

    def test_invalid_level_falls_back_to_markers(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="m", level="loud", status="✅")
        assert activity.level == ActivityLevel.SUCCESS

    @pytest.mark.parametrize(
        "kwargs,expected",
        [
            ({"status": "❌"}, ActivityLevel.ERROR),
            ({"progress": -1}, ActivityLevel.ERROR),
            ({"status": "✅"}, ActivityLevel.SUCCESS),
            ({"progress": 100}, ActivityLevel.SUCCESS),
            ({"status": "⚠️"}, ActivityLevel.WARNING),
            ({"progress": 30}, ActivityLevel.INFO),
        ],
    )
    def test_derived_level(self, classifier: ActivityClassifier, kwargs, expected):
        assert _classify(classifier, message="m", **kwargs).level == expected


class TestAgent:
    def test_explicit_agent_wins(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="privacy agent says hi", agent="Custom Bot")
        assert activity.agent == "Custom Bot"

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("handing off to the Domain Expert", "Domain Expert"),
            ("Bias Detection running", "Bias Detector"),
            ("Gemini 2.0 Flash warm", "Gemini AI"),
            ("falling back to ollama", "Ollama"),
        ],
    )
    def test_agent_from_message(self, classifier: ActivityClassifier, message, expected):
        assert _classify(classifier, message=message).agent == expected

    def test_agent_from_step(self, classifier: ActivityClassifier):
        activity = _classify(classifier, message="scanning", step="Relationship Mapping")
        assert activity.agent == "Relationship Agent"


class TestHelpers:
    def test_resolve_marker(self):
        assert resolve_marker("⚠") == StatusMarker.WARNING
        assert resolve_marker("FAILED") == StatusMarker.ERROR
        assert resolve_marker("whatever") is None
        assert resolve_marker(None) is None

    def test_resolve_level(self):
        assert resolve_level("ERROR") == ActivityLevel.ERROR
        assert resolve_level("") is None


class TestEndToEndLines:
    """Free-text lines through normalize + classify."""

    def test_bracketed_progress_line(
        self, normalizer: MessageNormalizer, classifier: ActivityClassifier
    ):
        activity = classifier.classify(
            normalizer.normalize("[40%] Domain Analysis: scanning columns")
        )
        assert activity.progress == 40
        assert activity.message == "scanning columns"
        assert activity.metadata["step"] == "Domain Analysis"
        assert activity.type == ActivityType.DOMAIN_ANALYSIS
        assert activity.status == ActivityStatus.IN_PROGRESS
        assert activity.agent == "Domain Expert"

    def test_error_line(self, normalizer: MessageNormalizer, classifier: ActivityClassifier):
        activity = classifier.classify(normalizer.normalize("Error: connection refused"))
        assert activity.type == ActivityType.ERROR
        assert activity.level == ActivityLevel.ERROR
        assert activity.status == ActivityStatus.ERROR
        assert activity.message == "connection refused"

    def test_success_marker_line(
        self, normalizer: MessageNormalizer, classifier: ActivityClassifier
    ):
        activity = classifier.classify(
            normalizer.normalize("✅ Privacy Agent: 92% privacy score")
        )
        assert activity.agent == "Privacy Agent"
        assert activity.status == ActivityStatus.COMPLETED
        assert activity.level == ActivityLevel.SUCCESS
        assert activity.type == ActivityType.PRIVACY_ASSESSMENT
        assert activity.metadata["privacy_score"] == 92

    def test_completion_line(self, normalizer: MessageNormalizer, classifier: ActivityClassifier):
        activity = classifier.classify(normalizer.normalize("Done: 500 rows"))
        assert activity.type == ActivityType.COMPLETION
        assert activity.level == ActivityLevel.SUCCESS
        assert activity.status == ActivityStatus.COMPLETED
