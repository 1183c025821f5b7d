"""
Purpose: Central configuration for order merging behavior (single source of truth).
What it does:

Stores all tunable thresholds/caps:

MAX_DISTANCE_KM = 2.0

MAX_ORDERS_PER_MERGE = 5

EFFICIENCY_THRESHOLD = 0.7

CANDIDATE_WINDOW_MINUTES = 15

Optionally defines a MergePolicy object so you can pass policy explicitly.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MergePolicy:
    """
    Central configuration for order consolidation.

    Keep all merging thresholds here so behavior can be tuned without
    touching merging logic (clustering/scoring/engine).

    Notes:
    - a cluster is only ever compared against its seed order's drop-off point,
      so max_distance_km is a radius around the seed, not a diameter.
    - efficiency_threshold is a strict lower bound: score must be > threshold.
    """

    # --- Master switch ---
    merging_enabled: bool = True

    # --- Clustering ---
    # Maximum haversine distance (km) between a member's drop-off and the seed's.
    max_distance_km: float = 2.0

    # Clusters above this size are formed but rejected outright (never truncated).
    max_orders_per_merge: int = 5

    # Only orders placed within this many minutes are considered.
    candidate_window_minutes: int = 15

    # --- Acceptance ---
    efficiency_threshold: float = 0.7

    # --- Distance efficiency factor ---
    # Baseline distance assumed for delivering one order on its own.
    assumed_trip_km: float = 5.0
    # Leg from the restaurant to the first drop-off of a combined route.
    restaurant_leg_km: float = 2.0

    # --- Time window factor ---
    # Compatibility drops linearly from 1 (same minute) to 0 at this spread.
    time_window_minutes: float = 15.0

    # --- Restaurant alignment factor ---
    mixed_restaurant_alignment: float = 0.5

    # --- Factor weights (must sum to 1) ---
    distance_weight: float = 0.4
    time_weight: float = 0.3
    alignment_weight: float = 0.3

    # --- Reporting heuristics ---
    time_savings_per_extra_order_minutes: int = 12
    base_delivery_minutes: int = 30
    minutes_per_extra_stop: int = 8

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup if you want.
        """
        if self.max_distance_km <= 0:
            raise ValueError("max_distance_km must be > 0")

        if self.max_orders_per_merge < 2:
            raise ValueError("max_orders_per_merge must be >= 2")

        if self.candidate_window_minutes <= 0:
            raise ValueError("candidate_window_minutes must be > 0")

        if not 0.0 <= self.efficiency_threshold <= 1.0:
            raise ValueError("efficiency_threshold must be within [0, 1]")

        if self.assumed_trip_km <= 0:
            raise ValueError("assumed_trip_km must be > 0")

        if self.restaurant_leg_km < 0:
            raise ValueError("restaurant_leg_km must be >= 0")

        if self.time_window_minutes <= 0:
            raise ValueError("time_window_minutes must be > 0")

        if not 0.0 <= self.mixed_restaurant_alignment <= 1.0:
            raise ValueError("mixed_restaurant_alignment must be within [0, 1]")

        weights = (self.distance_weight, self.time_weight, self.alignment_weight)
        if any(w < 0 for w in weights):
            raise ValueError("factor weights must be >= 0")
        if abs(sum(weights) - 1.0) > 1e-9:
            raise ValueError("factor weights must sum to 1.0")


def default_policy() -> MergePolicy:
    """
    Convenience factory for the default policy.
    """
    p = MergePolicy()
    p.validate()
    return p


def peak_policy() -> MergePolicy:
    """
    More aggressive merging during peaks (lunch/dinner/weekends).
    """
    p = MergePolicy(
        max_distance_km=2.5,          # allow slightly wider drop-off spread
        candidate_window_minutes=20,
        efficiency_threshold=0.65,
    )
    p.validate()
    return p


def offpeak_policy() -> MergePolicy:
    """
    Less aggressive merging during off-peak to protect ETAs.
    """
    p = MergePolicy(
        max_distance_km=1.5,
        max_orders_per_merge=3,
        candidate_window_minutes=10,
        efficiency_threshold=0.75,
    )
    p.validate()
    return p


_PROFILES = {
    "default": default_policy,
    "peak": peak_policy,
    "offpeak": offpeak_policy,
}


def policy_for_profile(name: str) -> MergePolicy:
    try:
        return _PROFILES[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown merge policy profile {name!r}; expected one of {sorted(_PROFILES)}") from None
