"""synthmonitor session layer — the pieces a display surface talks to.

Modules
-------
session
    ``ActivityMonitor`` owns one view's buffer and poller and exposes
    ``append``, ``clear``, ``pause``, ``resume``, ``filter``,
    ``current_progress`` and ``current_status``.
projection
    ``ActivityProjection`` filters buffered records without storing them.
poller
    ``StatusPoller`` turns periodic health probes into ``SystemStatus``.
transport
    ``Transport`` protocol and the in-memory ``LocalTransport``.
renderer
    ``ActivityRenderer`` turns the monitor into Rich renderables.
"""
