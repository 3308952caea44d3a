"""Live event transport boundary.

The real channel (a websocket to the generation backend) lives outside this
package.  The monitor only needs ``subscribe(handler) -> unsubscribe`` and a
``connected`` flag, captured by the ``Transport`` protocol.

``LocalTransport`` is an in-memory implementation that fans each published
event out to every subscriber synchronously, in subscription order.  A
failing subscriber is logged and does not block delivery to the others.
It backs the tests and offline log replay.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], object]
Unsubscribe = Callable[[], None]


@runtime_checkable
class Transport(Protocol):
    """Protocol every live event source must satisfy."""

    @property
    def connected(self) -> bool:
        ...

    def subscribe(self, handler: EventHandler) -> Unsubscribe:
        """Register *handler*; the returned callable removes it again."""
        ...


class LocalTransport:
    """In-memory transport with synchronous fan-out."""

    def __init__(self, *, connected: bool = True) -> None:
        self._handlers: list[EventHandler] = []
        self._connected = connected

    @property
    def connected(self) -> bool:
        return self._connected

    @connected.setter
    def connected(self, value: bool) -> None:
        self._connected = value

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: EventHandler) -> Unsubscribe:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

        return _unsubscribe

    def publish(self, event: Any) -> int:
        """Deliver *event* to every subscriber.  Returns the delivery count."""
        if not self._connected:
            logger.debug("Transport disconnected; event not delivered")
            return 0

        delivered = 0
        for handler in list(self._handlers):
            try:
                handler(event)
                delivered += 1
            except Exception as exc:  # noqa: BLE001
                logger.error("Subscriber %r failed: %s", handler, exc)
        return delivered

    def replay(self, events: Iterable[Any]) -> int:
        """Publish a sequence of events in order (e.g. lines of a saved log)."""
        return sum(self.publish(event) for event in events)
