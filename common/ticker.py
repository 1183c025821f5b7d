"""
Purpose: Explicit timer-driven background task (the periodic "heartbeat").
What it does:
- Calls a function every `interval_seconds` on a daemon thread.
- A failing tick is logged and the loop keeps going.
- `stop()` wakes the thread immediately instead of waiting out the interval.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    def __init__(self, name: str, interval_seconds: float, func: Callable[[], object]):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self.name = name
        self.interval_seconds = interval_seconds
        self.func = func
        self.ticks = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Ticker %s started (every %.1fs)", self.name, self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        logger.info("Ticker %s stopped after %d ticks", self.name, self.ticks)

    def tick(self) -> None:
        """Run one iteration now, on the caller's thread."""
        try:
            self.func()
        except Exception:
            logger.exception("Ticker %s: tick failed", self.name)
        finally:
            self.ticks += 1

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.tick()
