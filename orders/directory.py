"""
Purpose: The order directory (in-memory stand-in for the order document store).
What it does:
- Owns Order records and committed MergeRecords.
- Answers the queries the merge engine needs:
   - merge candidates for a restaurant (mergeable status, unmerged, recent)
   - restaurants that currently have candidates (for sweeps)
- Provides the write paths:
   - commit_merge: all member orders + the MergeRecord, atomically
   - update_status: fulfillment status changes (terminal statuses are final)

Rule: Directory owns persistence and atomicity; merging owns the decisions.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from common.exceptions import InvalidStateTransition, NotFoundError
from common.store import VersionedStore

from .models import MergeRecord, Order, OrderStatus

logger = logging.getLogger(__name__)


class OrderDirectory(VersionedStore[Order]):
    """
    Orders by id plus the append-only log of merge records.
    Orders are never deleted; they only move to a terminal status.
    """

    def __init__(self, *, max_retries: int = 5):
        super().__init__("Order", max_retries=max_retries)
        self._merge_records: Dict[str, MergeRecord] = {}
        self._merge_lock = threading.Lock()

    # --- Public API ---

    def add_order(self, order: Order) -> Order:
        stored = self.insert(order)
        logger.debug("Order %s added for restaurant %s", order.id, order.restaurant_id)
        return stored

    def get_order(self, order_id: str) -> Order:
        return self.get(order_id)

    def find_merge_candidates(self, restaurant_id: str, since: Optional[datetime] = None) -> List[Order]:
        """
        Pending-pool query: same restaurant, mergeable status, not yet merged,
        placed at/after `since`. Sorted by placement time then id.
        """
        candidates = self.select(
            lambda o: o.restaurant_id == restaurant_id
            and o.status.is_mergeable
            and not o.is_merged
            and (since is None or o.placed_at >= since)
        )
        return sorted(candidates, key=lambda o: (o.placed_at, o.id))

    def restaurants_with_candidates(self, since: Optional[datetime] = None) -> List[str]:
        restaurant_ids = {
            o.restaurant_id
            for o in self.values()
            if o.status.is_mergeable and not o.is_merged and (since is None or o.placed_at >= since)
        }
        return sorted(restaurant_ids)

    def update_status(self, order_id: str, status: OrderStatus) -> Order:
        def mutate(order: Order) -> Order:
            if order.status.is_terminal:
                raise InvalidStateTransition(order.id, order.status, status, "order is in a terminal status")
            return replace(order, status=status)

        updated = self.update(order_id, mutate)
        logger.info("Order %s status -> %s", order_id, status.value)
        return updated

    # --- Merge persistence ---

    def commit_merge(self, record: MergeRecord, expected: Sequence[Order], updated: Sequence[Order]) -> bool:
        """
        Store every updated member and the record in one step.
        Returns False (and writes nothing) if any member changed since it was read.
        """
        with self._merge_lock:
            stored = self.compare_and_set_many(list(zip(expected, updated)))
            if stored is None:
                return False
            self._merge_records[record.group_id] = record
            return True

    def get_merge_record(self, group_id: str) -> MergeRecord:
        with self._merge_lock:
            record = self._merge_records.get(group_id)
        if record is None:
            raise NotFoundError("MergeRecord", group_id)
        return record

    def merge_records(self) -> List[MergeRecord]:
        with self._merge_lock:
            return sorted(self._merge_records.values(), key=lambda r: (r.created_at, r.group_id))

    def orders_in_group(self, group_id: str) -> List[Order]:
        record = self.get_merge_record(group_id)
        return self.get_many(record.order_ids)
