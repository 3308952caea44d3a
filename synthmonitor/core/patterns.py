"""Ordered pattern table for free-text backend log lines.

The table is evaluated top to bottom and the first match wins.  Several
patterns can match the same line (``"[40%] Domain Expert: ..."`` also looks
like a labeled-agent line), so the order below is part of the upstream log
contract and must not be rearranged.

Each entry pairs a compiled regex with an extractor that turns the match
into a partial field mapping for ``NormalizedFields``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, NamedTuple

from synthmonitor.models.activity import ActivityLevel, ActivityType, StatusMarker

Extractor = Callable[[re.Match[str]], dict[str, Any]]


class FreeTextPattern(NamedTuple):
    name: str
    regex: re.Pattern[str]
    extract: Extractor


# ---------------------------------------------------------------------------
# Marker vocabulary
# ---------------------------------------------------------------------------

# Leading glyphs emitted by the backend agents.  The variation selector on
# the warning and scales glyphs is optional in practice.
GLYPH_MARKERS: dict[str, StatusMarker] = {
    "\u2705": StatusMarker.SUCCESS,          # white heavy check mark
    "\U0001f504": StatusMarker.IN_PROGRESS,  # counterclockwise arrows
    "\u274c": StatusMarker.ERROR,            # cross mark
    "\u26a0": StatusMarker.WARNING,          # warning sign
    "\U0001f916": StatusMarker.AGENT,        # robot
    "\U0001f9e0": StatusMarker.AGENT,        # brain
    "\U0001f512": StatusMarker.AGENT,        # lock
    "\u2696": StatusMarker.AGENT,            # scales
    "\U0001f517": StatusMarker.AGENT,        # link
    "\U0001f3af": StatusMarker.AGENT,        # direct hit
}

_VARIATION_SELECTOR = "\ufe0f"

# Agent labels recognised in ``<Label>: <rest>`` lines, keyed by lower case.
AGENT_LABELS: dict[str, str] = {
    "domain expert": "Domain Expert",
    "privacy agent": "Privacy Agent",
    "bias detector": "Bias Detector",
    "bias detection": "Bias Detector",
    "bias detection agent": "Bias Detector",
    "quality agent": "Quality Agent",
    "relationship agent": "Relationship Agent",
}

GEMINI_AGENT = "Gemini AI"


def marker_for_glyph(glyph: str) -> StatusMarker | None:
    """Return the status marker for a leading glyph, if it is one."""
    return GLYPH_MARKERS.get(glyph.replace(_VARIATION_SELECTOR, ""))


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


def _extract_progress(match: re.Match[str]) -> dict[str, Any]:
    return {
        "progress": int(match.group("percent")),
        "step": match.group("step").strip(),
        "message": match.group("rest").strip(),
    }


def _extract_agent_marker(match: re.Match[str]) -> dict[str, Any]:
    marker = marker_for_glyph(match.group("glyph"))
    return {
        "status": marker.value if marker else None,
        "agent": match.group("agent").strip(),
        "message": match.group("rest").strip(),
        "metadata": {"glyph": match.group("glyph")},
    }


def _extract_named_service(match: re.Match[str]) -> dict[str, Any]:
    return {
        "agent": GEMINI_AGENT,
        "message": match.group("rest").strip(),
        "metadata": {"service_qualifier": match.group("qualifier").strip()},
    }


def _extract_labeled_agent(match: re.Match[str]) -> dict[str, Any]:
    label = match.group("label")
    return {
        "agent": AGENT_LABELS.get(label.lower(), label),
        "message": match.group("rest").strip(),
    }


def _extract_error(match: re.Match[str]) -> dict[str, Any]:
    return {
        "level": ActivityLevel.ERROR.value,
        "type": ActivityType.ERROR.value,
        "message": match.group("rest").strip(),
    }


def _extract_completion(match: re.Match[str]) -> dict[str, Any]:
    return {
        "level": ActivityLevel.SUCCESS.value,
        "type": ActivityType.COMPLETION.value,
        "message": match.group("rest").strip(),
    }


# ---------------------------------------------------------------------------
# The table
# ---------------------------------------------------------------------------

_GLYPH_ALTERNATION = "|".join(
    re.escape(glyph) + (f"{_VARIATION_SELECTOR}?" if glyph in ("\u26a0", "\u2696") else "")
    for glyph in GLYPH_MARKERS
)

_LABEL_ALTERNATION = "|".join(
    re.escape(label) for label in sorted(AGENT_LABELS, key=len, reverse=True)
)

FREE_TEXT_PATTERNS: tuple[FreeTextPattern, ...] = (
    FreeTextPattern(
        "progress",
        re.compile(r"\[(?P<percent>\d+)%\]\s*(?P<step>[^:]+):\s*(?P<rest>.+)", re.DOTALL),
        _extract_progress,
    ),
    FreeTextPattern(
        "agent_marker",
        re.compile(
            rf"(?P<glyph>{_GLYPH_ALTERNATION})\s*(?P<agent>[^:]+):\s*(?P<rest>.+)",
            re.DOTALL,
        ),
        _extract_agent_marker,
    ),
    FreeTextPattern(
        "named_service",
        re.compile(
            r"Gemini\s+(?P<qualifier>[\w .]+?)\s*:\s*(?P<rest>.+)",
            re.IGNORECASE | re.DOTALL,
        ),
        _extract_named_service,
    ),
    FreeTextPattern(
        "labeled_agent",
        re.compile(
            rf"(?P<label>{_LABEL_ALTERNATION})\s*:\s*(?P<rest>.+)",
            re.IGNORECASE | re.DOTALL,
        ),
        _extract_labeled_agent,
    ),
    FreeTextPattern(
        "error",
        re.compile(r"(?P<keyword>Error|Failed|Exception):\s*(?P<rest>.+)", re.IGNORECASE | re.DOTALL),
        _extract_error,
    ),
    FreeTextPattern(
        "completion",
        re.compile(
            r"(?P<keyword>Completed|Finished|Done):\s*(?P<rest>.+)",
            re.IGNORECASE | re.DOTALL,
        ),
        _extract_completion,
    ),
)


def match_free_text(
    text: str,
    patterns: tuple[FreeTextPattern, ...] = FREE_TEXT_PATTERNS,
) -> tuple[str | None, dict[str, Any]]:
    """Return ``(pattern_name, fields)`` for the first matching pattern.

    When nothing matches the result is ``(None, {"message": text})``.
    """
    for pattern in patterns:
        match = pattern.regex.search(text)
        if match:
            return pattern.name, pattern.extract(match)
    return None, {"message": text}


# ---------------------------------------------------------------------------
# Domain figures
# ---------------------------------------------------------------------------

# Figures reported inline by the agents, e.g. "detected healthcare domain"
# or "92% privacy score".  Extracted independently of the table above.
_FIGURE_PATTERNS: tuple[tuple[str, re.Pattern[str], Callable[[str], Any]], ...] = (
    ("domain", re.compile(r"detected\s+(\w+)\s+domain", re.IGNORECASE), str.lower),
    ("privacy_score", re.compile(r"(\d+)%\s+privacy", re.IGNORECASE), int),
    ("bias_score", re.compile(r"(\d+)%\s+bias", re.IGNORECASE), int),
    ("relationship_count", re.compile(r"(\d+)\s+relationships", re.IGNORECASE), int),
    ("record_count", re.compile(r"Generated\s+(\d+)\s+records", re.IGNORECASE), int),
    ("quality_score", re.compile(r"(\d+)%\s+quality", re.IGNORECASE), int),
)


def extract_figures(text: str) -> dict[str, Any]:
    """Pull domain-specific figures out of a free-text line."""
    figures: dict[str, Any] = {}
    for key, regex, convert in _FIGURE_PATTERNS:
        match = regex.search(text)
        if match:
            figures[key] = convert(match.group(1))
    return figures
