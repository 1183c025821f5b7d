"""
Purpose: Score a candidate cluster on how worthwhile merging it would be.
What it does:

Computes three bounded factors for a cluster of >= 2 orders:

distance_efficiency = max(0, (individual - combined) / individual)
    individual = members * assumed_trip_km
    combined   = Σ consecutive drop-off legs (cluster order) + restaurant_leg_km

time_compatibility = clamp((window - span_minutes) / window, 0, 1)
    span_minutes = whole minutes between earliest and latest placement

restaurant_alignment = 1.0 if all members share a restaurant, else mixed_restaurant_alignment

total = weighted sum (0.4 / 0.3 / 0.3 by default), always within [0, 1]

Rule: Scoring is pure; it never commits or publishes anything.
"""

# orders/merging/scoring.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from routing.geo import path_length_km

from ..models import Order
from .clustering import MergeCluster
from .policy import MergePolicy


@dataclass(frozen=True)
class MergeScore:
    """
    Per-factor breakdown plus the weighted total.
    """
    distance_efficiency: float
    time_compatibility: float
    restaurant_alignment: float
    total: float


def score_cluster(cluster: MergeCluster, policy: MergePolicy) -> MergeScore:
    """
    Score a cluster. Clusters smaller than 2 score zero on every factor.
    """
    orders = cluster.orders
    if len(orders) < 2:
        return MergeScore(0.0, 0.0, 0.0, 0.0)

    distance = distance_efficiency(orders, policy)
    timing = time_compatibility(orders, policy)
    alignment = restaurant_alignment(orders, policy)

    total = (
        policy.distance_weight * distance
        + policy.time_weight * timing
        + policy.alignment_weight * alignment
    )
    return MergeScore(
        distance_efficiency=distance,
        time_compatibility=timing,
        restaurant_alignment=alignment,
        total=_clamp(total),
    )


def distance_efficiency(orders: Sequence[Order], policy: MergePolicy) -> float:
    individual = len(orders) * policy.assumed_trip_km
    combined = combined_route_km(orders, policy)
    # unreachable drop-offs make `combined` infinite, which lands on 0 here
    return _clamp(max(0.0, (individual - combined) / individual))


def combined_route_km(orders: Sequence[Order], policy: MergePolicy) -> float:
    """
    Approximate route: restaurant leg + drop-offs visited in cluster order.
    Not a TSP solution; members are visited in the order they were clustered.
    """
    dropoffs = [o.delivery_coordinates for o in orders]
    return path_length_km(dropoffs) + policy.restaurant_leg_km


def time_compatibility(orders: Sequence[Order], policy: MergePolicy) -> float:
    placed = [o.placed_at for o in orders]
    span_minutes = int((max(placed) - min(placed)).total_seconds() // 60)
    window = policy.time_window_minutes
    return _clamp((window - span_minutes) / window)


def restaurant_alignment(orders: Sequence[Order], policy: MergePolicy) -> float:
    restaurants = {o.restaurant_id for o in orders}
    return 1.0 if len(restaurants) == 1 else policy.mixed_restaurant_alignment


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
