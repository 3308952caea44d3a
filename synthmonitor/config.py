"""Monitor configuration — env-driven via pydantic-settings.

Reads from a .env file and SYNTHMONITOR_* environment variables.
"""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.logging import RichHandler

_LOGGING_CONFIGURED = False


class MonitorSettings(BaseSettings):
    """Settings for one activity monitor session.

    All settings can be overridden via SYNTHMONITOR_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export SYNTHMONITOR_CAPACITY=50
        export SYNTHMONITOR_POLL_INTERVAL_SECONDS=10
        export SYNTHMONITOR_HEALTH_BASE_URL=http://backend:8000
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SYNTHMONITOR_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Activity log
    capacity: int = Field(default=100, ge=1)

    # Health polling
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    health_base_url: str = "http://localhost:8000"
    health_path: str = "/api/health"
    health_timeout_seconds: float = Field(default=5.0, gt=0)

    # Backend agent fleet
    agents_total: int = Field(default=5, ge=0)
    ai_model: str = "gemini-2.0-flash-exp"

    @property
    def health_url(self) -> str:
        return self.health_base_url.rstrip("/") + "/" + self.health_path.lstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def configure_logging(level: str | int = "INFO") -> None:
    """Install a Rich handler on the root logger.

    Safe to call multiple times; later calls only adjust the level.
    """
    global _LOGGING_CONFIGURED
    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    if _LOGGING_CONFIGURED:
        return

    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    _LOGGING_CONFIGURED = True


# Module-level singleton: import as `from synthmonitor.config import settings`
settings = MonitorSettings()
