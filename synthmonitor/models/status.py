"""System status snapshot produced by the status poller."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class AIServiceState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    STARTING = "starting"
    UNKNOWN = "unknown"


class SystemStatus(BaseModel):
    """Point-in-time health of the generation backend and its services.

    Replaced wholesale on every poll tick; never partially updated.
    """

    model_config = ConfigDict(frozen=True)

    backend_healthy: bool = False
    backend_latency_ms: int = 0
    ai_service_state: AIServiceState = AIServiceState.UNKNOWN
    agents_operational: int = 0
    agents_total: int = 5
    transport_connected: bool = False

    ai_model: str = "gemini-2.0-flash-exp"
    quota_preserved: bool = False
    websocket_status: str = "unknown"
    last_check: datetime | None = None

    @property
    def agents_active(self) -> bool:
        return self.agents_total > 0 and self.agents_operational == self.agents_total
