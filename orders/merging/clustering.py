"""
Purpose: Decide which orders are even allowed to be considered together.
What it does:

Partitions a restaurant's pending, unmerged, recent orders into clusters:

seed = oldest unprocessed order

members = every remaining order whose drop-off is within max_distance_km of the seed

repeat until the pool is empty

Outputs:

clusters: List[MergeCluster] (size-1 clusters included; callers skip them)

Rule: Clustering does not score or commit anything; it only forms candidate groups.

Known approximation: the greedy single pass is input-order sensitive. A
different seed order can produce different (and sometimes better) groupings.
That is accepted; it is not a globally optimal partition.
"""

# orders/merging/clustering.py

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from routing.geo import haversine_km

from ..models import Order
from .policy import MergePolicy


@dataclass(frozen=True)
class MergeCluster:
    """
    Ephemeral group of orders considered together. Never persisted.
    The first order is the seed.
    """
    orders: Tuple[Order, ...]

    @property
    def seed(self) -> Order:
        return self.orders[0]

    @property
    def size(self) -> int:
        return len(self.orders)

    @property
    def order_ids(self) -> Tuple[str, ...]:
        return tuple(o.id for o in self.orders)

    @property
    def is_mergeable_size(self) -> bool:
        return self.size >= 2


def stable_order(orders: Sequence[Order]) -> List[Order]:
    """
    Placement time ascending, id as the tie-break, so identical input always
    yields identical clusters.
    """
    return sorted(orders, key=lambda o: (o.placed_at, o.id))


def build_clusters(orders: Sequence[Order], policy: MergePolicy) -> List[MergeCluster]:
    """
    Greedy seed-based clustering.

    Every member of a cluster is within `policy.max_distance_km` of the
    cluster's seed (members are not checked against each other). Orders with
    missing coordinates are infinitely far from everything and end up alone.

    Oversized clusters are returned whole; the decision engine rejects them.
    """
    if not orders:
        return []

    unprocessed: List[Order] = stable_order(orders)
    clusters: List[MergeCluster] = []

    while unprocessed:
        seed = unprocessed.pop(0)
        members = [seed]
        remaining: List[Order] = []

        for candidate in unprocessed:
            if _within_radius(seed, candidate, policy.max_distance_km):
                members.append(candidate)
            else:
                remaining.append(candidate)

        unprocessed = remaining
        clusters.append(MergeCluster(orders=tuple(members)))

    return clusters


# -------------------------
# Internal helpers
# -------------------------

def _within_radius(seed: Order, candidate: Order, max_distance_km: float) -> bool:
    return haversine_km(seed.delivery_coordinates, candidate.delivery_coordinates) <= max_distance_km
