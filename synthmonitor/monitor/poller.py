"""StatusPoller — periodic backend health probe producing ``SystemStatus``.

The poller is independent of the activity buffer.  Each tick calls the
health probe and replaces the current snapshot wholesale.  Any probe failure
(exception, timeout, malformed body) degrades the snapshot to unhealthy and
is retried on the next tick; a tick never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

import httpx

from synthmonitor.core.clock import Clock, ScheduledHandle, Scheduler, SystemClock
from synthmonitor.models.status import AIServiceState, SystemStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 30.0

_AI_STATES: dict[str, AIServiceState] = {
    "ready": AIServiceState.ONLINE,
    "online": AIServiceState.ONLINE,
    "active": AIServiceState.ONLINE,
    "ok": AIServiceState.ONLINE,
    "healthy": AIServiceState.ONLINE,
    "starting": AIServiceState.STARTING,
    "initializing": AIServiceState.STARTING,
    "loading": AIServiceState.STARTING,
    "offline": AIServiceState.OFFLINE,
    "error": AIServiceState.OFFLINE,
    "down": AIServiceState.OFFLINE,
    "unavailable": AIServiceState.OFFLINE,
}


class MalformedHealthResponse(ValueError):
    """Raised when a health probe body does not have the expected shape."""


@runtime_checkable
class HealthProbe(Protocol):
    """Anything with a ``check() -> mapping`` method that raises on failure."""

    def check(self) -> Mapping[str, Any]:
        ...


@runtime_checkable
class AsyncHealthProbe(Protocol):
    """A probe that can also be awaited without blocking the event loop."""

    async def check_async(self) -> Mapping[str, Any]:
        ...


class HttpHealthProbe:
    """Calls the backend health endpoint over HTTP.

    ``check`` is the blocking variant used by synchronous callers;
    ``check_async`` is what the asyncio scheduler awaits.

    Parameters
    ----------
    url:
        Full URL of the health endpoint.
    timeout:
        Request timeout in seconds.
    client:
        Optional pre-built ``httpx.Client`` (e.g. with a mock transport).
    async_client:
        Optional pre-built ``httpx.AsyncClient``.  Without one, each async
        check opens and closes its own client.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
        async_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self._async_client = async_client

    def check(self) -> Mapping[str, Any]:
        return self._parse(self._client.get(self.url))

    async def check_async(self) -> Mapping[str, Any]:
        if self._async_client is not None:
            resp = await self._async_client.get(self.url)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self.url)
        return self._parse(resp)

    @staticmethod
    def _parse(resp: httpx.Response) -> Mapping[str, Any]:
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, Mapping):
            raise MalformedHealthResponse(
                f"Health body must be an object, got {type(body).__name__}"
            )
        return body

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def ai_state_from(status: Any) -> AIServiceState:
    if not isinstance(status, str):
        return AIServiceState.UNKNOWN
    return _AI_STATES.get(status.strip().lower(), AIServiceState.UNKNOWN)


class StatusPoller:
    """Builds ``SystemStatus`` snapshots from a health probe.

    Parameters
    ----------
    probe:
        The health probe to call on each tick.
    transport_connected:
        Zero-argument callable returning the live transport flag.
    clock:
        Time source for ``last_check`` and latency.
    interval:
        Seconds between ticks once started.
    agents_total:
        Size of the backend agent fleet.
    default_model:
        AI model name reported until the backend names one.
    """

    def __init__(
        self,
        probe: HealthProbe,
        *,
        transport_connected: Callable[[], bool] = lambda: False,
        clock: Clock | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        agents_total: int = 5,
        default_model: str = "gemini-2.0-flash-exp",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._probe = probe
        self._transport_connected = transport_connected
        self._clock = clock or SystemClock()
        self._interval = interval
        self._handle: ScheduledHandle | None = None
        self._snapshot = SystemStatus(agents_total=agents_total, ai_model=default_model)

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._handle is not None

    def snapshot(self) -> SystemStatus:
        return self._snapshot

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, scheduler: Scheduler) -> None:
        """Poll now, then every ``interval`` seconds until ``stop()``.

        Probes that support ``check_async`` are ticked with ``poll_async`` so
        an asyncio scheduler never blocks its loop on the HTTP request.
        """
        if self._handle is not None:
            return
        tick = self.poll_async if isinstance(self._probe, AsyncHealthProbe) else self.poll
        self._handle = scheduler.call_every(self._interval, tick, immediate=True)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def poll(self) -> SystemStatus:
        """Run one blocking probe and replace the snapshot.  Never raises."""
        started = self._clock.monotonic()
        try:
            body = self._probe.check()
        except Exception as exc:  # noqa: BLE001
            return self._degrade(exc)
        return self._accept(body, started)

    async def poll_async(self) -> SystemStatus:
        """Await one probe and replace the snapshot.  Never raises."""
        if not isinstance(self._probe, AsyncHealthProbe):
            return self.poll()
        started = self._clock.monotonic()
        try:
            body = await self._probe.check_async()
        except Exception as exc:  # noqa: BLE001
            return self._degrade(exc)
        return self._accept(body, started)

    def _accept(self, body: Mapping[str, Any], started: float) -> SystemStatus:
        latency_ms = int(round((self._clock.monotonic() - started) * 1000))
        try:
            self._snapshot = self._build_snapshot(body, latency_ms)
        except Exception as exc:  # noqa: BLE001
            return self._degrade(exc)
        return self._snapshot

    def _degrade(self, exc: Exception) -> SystemStatus:
        logger.warning("Health probe failed: %s", exc)
        self._snapshot = self._snapshot.model_copy(
            update={
                "backend_healthy": False,
                "backend_latency_ms": 0,
                "transport_connected": self._connected(),
                "last_check": self._clock.now(),
            }
        )
        return self._snapshot

    def _build_snapshot(self, body: Mapping[str, Any], latency_ms: int) -> SystemStatus:
        if not isinstance(body, Mapping) or "healthy" not in body:
            raise MalformedHealthResponse("Health body is missing 'healthy'")
        healthy = body["healthy"]
        if not isinstance(healthy, bool):
            raise MalformedHealthResponse(f"'healthy' must be a boolean, got {healthy!r}")

        data = body.get("data")
        services = data.get("services") if isinstance(data, Mapping) else None
        if not isinstance(services, Mapping):
            services = {}

        # Older backends report the AI service under "gemini".
        ai = services.get("ai", services.get("gemini"))
        if not isinstance(ai, Mapping):
            ai = {}

        previous = self._snapshot
        agents_active = services.get("agents") == "active"
        websockets = services.get("websockets")

        return SystemStatus(
            backend_healthy=healthy,
            backend_latency_ms=max(latency_ms, 0),
            ai_service_state=ai_state_from(ai.get("status")),
            agents_operational=previous.agents_total if agents_active else 0,
            agents_total=previous.agents_total,
            transport_connected=self._connected(),
            ai_model=str(ai.get("model") or previous.ai_model),
            quota_preserved=bool(ai.get("quota_preserved", False)),
            websocket_status=str(websockets) if websockets else "unknown",
            last_check=self._clock.now(),
        )

    def _connected(self) -> bool:
        try:
            return bool(self._transport_connected())
        except Exception:  # noqa: BLE001
            logger.exception("Transport connectivity check failed")
            return False
