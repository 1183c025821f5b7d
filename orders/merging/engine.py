"""
Purpose: The merging "orchestrator" (single entry point).
What it does:

Coordinates the pipeline end-to-end for one restaurant:

- reads the pending pool from the order directory (mergeable, unmerged, recent)

- clusters it (clustering.py)

- scores every cluster of >= 2 orders (scoring.py)

- decides accept/reject per cluster (MergeDecisionEngine.decide)

- commits accepted clusters atomically and publishes merge-completed

Public entry point:

- cluster_and_merge(restaurant_id, directory=..., bus=..., policy=...) -> List[MergeRecord]

Rule: Engine is the only file other modules should call directly for merging.
"""

# orders/merging/engine.py

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from messaging import MERGE_COMPLETED, MessageBus, merge_completed_event, publish_safely
from routing.eta import estimate_merged_delivery_time

from ..directory import OrderDirectory
from ..models import MergeRecord, Order
from .clustering import MergeCluster, build_clusters
from .policy import MergePolicy, default_policy
from .scoring import MergeScore, score_cluster

logger = logging.getLogger(__name__)

ACCEPTED = "accepted"
CLUSTER_TOO_SMALL = "cluster_too_small"
CLUSTER_TOO_LARGE = "cluster_too_large"
BELOW_THRESHOLD = "below_threshold"
ALREADY_MERGED = "already_merged"
CONCURRENT_UPDATE = "concurrent_update"


@dataclass(frozen=True)
class MergeDecision:
    """
    Outcome for one cluster. `score` is None when the cluster was rejected
    before scoring (wrong size or already merged).
    """
    accepted: bool
    reason: str
    score: Optional[MergeScore] = None


class MergeDecisionEngine:
    """
    Accepts or rejects clusters and commits the accepted ones.

    decide() is pure. commit() is the only place merge fields are ever written.
    """

    def __init__(self, directory: OrderDirectory, bus: Optional[MessageBus] = None, policy: Optional[MergePolicy] = None):
        self.directory = directory
        self.bus = bus
        self.policy = policy or default_policy()

    def decide(self, cluster: MergeCluster, score: Optional[MergeScore] = None) -> MergeDecision:
        if cluster.size < 2:
            return MergeDecision(False, CLUSTER_TOO_SMALL)

        # oversized clusters are rejected whole, never truncated
        if cluster.size > self.policy.max_orders_per_merge:
            return MergeDecision(False, CLUSTER_TOO_LARGE)

        if any(o.is_merged for o in cluster.orders):
            return MergeDecision(False, ALREADY_MERGED)

        score = score or score_cluster(cluster, self.policy)
        if score.total <= self.policy.efficiency_threshold:
            return MergeDecision(False, BELOW_THRESHOLD, score)

        return MergeDecision(True, ACCEPTED, score)

    def commit(self, cluster: MergeCluster, score: MergeScore, now: Optional[datetime] = None) -> Optional[MergeRecord]:
        """
        Write merge fields on every member plus the MergeRecord in one step.
        Returns None when a member changed underneath us; nothing is written then.
        """
        now = now or datetime.now(timezone.utc)
        members = cluster.orders

        savings = (len(members) - 1) * self.policy.time_savings_per_extra_order_minutes
        record = MergeRecord.new(members, score.total, savings, now=now)
        eta = estimate_merged_delivery_time(
            now,
            len(members),
            base_minutes=self.policy.base_delivery_minutes,
            minutes_per_extra_stop=self.policy.minutes_per_extra_stop,
        )

        updated = [
            replace(
                order,
                is_merged=True,
                merge_group_id=record.group_id,
                merged_with_order_ids=tuple(oid for oid in record.order_ids if oid != order.id),
                estimated_delivery_time=eta,
            )
            for order in members
        ]

        if not self.directory.commit_merge(record, members, updated):
            logger.info("Merge of %s skipped: orders changed concurrently", list(record.order_ids))
            return None

        logger.info(
            "Merged %d orders for restaurant %s into group %s (score=%.3f, savings=%d min)",
            len(members), record.restaurant_id, record.group_id, record.efficiency_score, savings,
        )

        publish_safely(
            self.bus,
            MERGE_COMPLETED,
            merge_completed_event(
                merge_group_id=record.group_id,
                order_ids=record.order_ids,
                restaurant_id=record.restaurant_id,
                efficiency_score=record.efficiency_score,
                estimated_time_savings=savings,
                now=now,
            ),
        )
        return record

    def process(self, cluster: MergeCluster, now: Optional[datetime] = None) -> tuple[MergeDecision, Optional[MergeRecord]]:
        decision = self.decide(cluster)
        if not decision.accepted:
            logger.debug("Cluster %s rejected: %s", list(cluster.order_ids), decision.reason)
            return decision, None

        record = self.commit(cluster, decision.score, now=now)
        if record is None:
            return MergeDecision(False, CONCURRENT_UPDATE, decision.score), None
        return decision, record


def cluster_and_merge(
    restaurant_id: str,
    *,
    directory: OrderDirectory,
    bus: Optional[MessageBus] = None,
    policy: Optional[MergePolicy] = None,
    now: Optional[datetime] = None,
) -> List[MergeRecord]:
    """
    Main merging entry point.

    Rejected orders are left untouched in the pending pool for a later pass.
    Orders already merged are excluded by the candidate query, so running this
    twice over the same pool never produces a second record.
    """
    policy = policy or default_policy()
    policy.validate()

    if not policy.merging_enabled:
        logger.debug("Merging disabled; skipping restaurant %s", restaurant_id)
        return []

    now = now or datetime.now(timezone.utc)
    since = now - timedelta(minutes=policy.candidate_window_minutes)
    candidates: List[Order] = directory.find_merge_candidates(restaurant_id, since=since)
    if len(candidates) < 2:
        return []

    engine = MergeDecisionEngine(directory, bus, policy)
    records: List[MergeRecord] = []

    for cluster in build_clusters(candidates, policy):
        if not cluster.is_mergeable_size:
            continue
        _, record = engine.process(cluster, now=now)
        if record is not None:
            records.append(record)

    return records
