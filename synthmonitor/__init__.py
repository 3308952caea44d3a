"""synthmonitor: live activity log and status monitor for synthetic-data generation.

Normalizes the generation backend's mixed structured/free-text event stream
into typed activity records, keeps a bounded newest-first log with a
progress gauge, and polls backend health into a ``SystemStatus`` snapshot.
"""

__version__ = "0.1.0"

from synthmonitor.monitor.projection import FilterCriteria
from synthmonitor.monitor.session import ActivityMonitor

__all__ = ["ActivityMonitor", "FilterCriteria", "__version__"]
