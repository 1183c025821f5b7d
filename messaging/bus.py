"""
Purpose: Fire-and-forget message bus abstraction.
What it does:
- MessageBus: the one method core logic depends on, publish(topic, event).
- InMemoryMessageBus: records events (tests, simulations); can be told to fail.
- publish_safely: the only way core code publishes. A failing publish is
  logged and swallowed; it never turns a committed state change into an error.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, List, Optional, Tuple

from .events import Event

logger = logging.getLogger(__name__)


class MessageBus:
    """
    Publish-only bus. Implementations must not block on delivery confirmation.
    """

    def publish(self, topic: str, event: Event) -> Optional[Future]:
        """
        Hand the event to the transport. Asynchronous transports return the
        Future of the send so callers may wait on it; synchronous ones return None.
        """
        raise NotImplementedError

    def close(self) -> None:
        pass


class InMemoryMessageBus(MessageBus):
    """
    Keeps every published (topic, event) pair in memory.

    `fail_when` is an injectable decision function: return True to make the
    publish raise, so tests can force deterministic failures.
    """

    def __init__(self, fail_when: Optional[Callable[[str, Event], bool]] = None):
        self.fail_when = fail_when
        self._published: List[Tuple[str, Event]] = []
        self._lock = threading.Lock()

    def publish(self, topic: str, event: Event) -> None:
        if self.fail_when is not None and self.fail_when(topic, event):
            raise ConnectionError(f"bus unavailable for topic {topic}")
        with self._lock:
            self._published.append((topic, dict(event)))

    @property
    def published(self) -> List[Tuple[str, Event]]:
        with self._lock:
            return list(self._published)

    def events_for(self, topic: str) -> List[Event]:
        return [event for published_topic, event in self.published if published_topic == topic]

    def clear(self) -> None:
        with self._lock:
            self._published.clear()


def publish_safely(bus: Optional[MessageBus], topic: str, event: Event) -> bool:
    """
    Best-effort publish. Returns False (after logging) instead of raising.
    """
    if bus is None:
        return False
    try:
        bus.publish(topic, event)
        return True
    except Exception:
        logger.exception("Failed to publish %s event to topic %s", event.get("eventType"), topic)
        return False
