"""
Purpose: The time-based "heartbeat" for order merging.
What it does:
- run_cycle(): one sweep over every restaurant that currently has merge
  candidates, calling cluster_and_merge for each.
- start()/stop(): drive run_cycle periodically from a Ticker thread.
- trigger(restaurant_id): fire-and-forget merge right after an order is
  placed; submitted to a small thread pool so placement never waits on it.

Rule: Sweeper owns timing; merging/engine.py owns every merge decision.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, List, Optional

from common.ticker import Ticker
from messaging import MessageBus

from .directory import OrderDirectory
from .merging.engine import cluster_and_merge
from .merging.policy import MergePolicy, default_policy
from .models import MergeRecord

logger = logging.getLogger(__name__)


class MergeSweeper:
    """
    Periodic and on-demand merge runs over the order directory.
    A failure for one restaurant is logged and does not stop the sweep.
    """

    def __init__(
        self,
        directory: OrderDirectory,
        bus: Optional[MessageBus] = None,
        policy: Optional[MergePolicy] = None,
        *,
        interval_seconds: float = 60.0,
        max_workers: int = 2,
    ):
        self.directory = directory
        self.bus = bus
        self.policy = policy or default_policy()
        self._ticker = Ticker("merge-sweeper", interval_seconds, self.run_cycle)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="merge")

    @property
    def running(self) -> bool:
        return self._ticker.running

    def run_cycle(self, now: Optional[datetime] = None) -> Dict[str, List[MergeRecord]]:
        """
        Sweep every restaurant with pending, unmerged orders inside the window.
        Returns restaurant_id -> records committed in this cycle (non-empty only).
        """
        now = now or datetime.now(timezone.utc)
        results: Dict[str, List[MergeRecord]] = {}

        for restaurant_id in self.directory.restaurants_with_candidates():
            try:
                records = cluster_and_merge(
                    restaurant_id,
                    directory=self.directory,
                    bus=self.bus,
                    policy=self.policy,
                    now=now,
                )
            except Exception:
                logger.exception("Merge sweep failed for restaurant %s", restaurant_id)
                continue
            if records:
                results[restaurant_id] = records

        if results:
            logger.info(
                "Merge sweep committed %d groups across %d restaurants",
                sum(len(r) for r in results.values()), len(results),
            )
        return results

    def trigger(self, restaurant_id: str) -> Future:
        """
        Schedule a merge for one restaurant and return immediately.
        """
        future = self._executor.submit(
            cluster_and_merge,
            restaurant_id,
            directory=self.directory,
            bus=self.bus,
            policy=self.policy,
        )
        future.add_done_callback(lambda f: _log_failure(f, restaurant_id))
        return future

    def start(self) -> None:
        self._ticker.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._ticker.stop(timeout)
        self._executor.shutdown(wait=True)


def _log_failure(future: Future, restaurant_id: str) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Triggered merge for restaurant %s failed: %s", restaurant_id, exc)
