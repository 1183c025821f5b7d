"""
Purpose: Central configuration for courier search and assignment.
What it does:

Stores all tunable thresholds/caps for finding couriers and assigning deliveries:

SEARCH_RADIUS_KM = 10.0
MIN_RATING = 0.0
DEFAULT_MAX_CONCURRENT_ORDERS = 5

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AssignmentPolicy:
    """
    Central configuration for courier search, ranking and assignment.
    """

    # --- Search ---
    # Radius around the pickup point used to build the bounding-box pre-filter.
    search_radius_km: float = 10.0

    # Couriers rated below this are never offered work.
    min_rating: float = 0.0

    # Re-check candidates with haversine against the search radius and each
    # courier's own delivery radius (the bounding box alone is a superset).
    exact_radius_check: bool = False

    # --- Registration defaults ---
    default_max_concurrent_orders: int = 5
    default_delivery_radius_km: float = 10.0

    # --- Assignment ---
    # Try to assign a courier as soon as a delivery is created.
    auto_assign_on_create: bool = True

    # Compare-and-set attempts before a write gives up with ConcurrentUpdateError.
    max_update_retries: int = 5

    # --- ETA heuristic ---
    average_speed_kmh: float = 25.0
    handling_minutes: int = 10
    default_estimate_minutes: int = 30

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.search_radius_km <= 0:
            raise ValueError("search_radius_km must be > 0")

        if not 0.0 <= self.min_rating <= 5.0:
            raise ValueError("min_rating must be within [0, 5]")

        if self.default_max_concurrent_orders < 1:
            raise ValueError("default_max_concurrent_orders must be >= 1")

        if self.default_delivery_radius_km <= 0:
            raise ValueError("default_delivery_radius_km must be > 0")

        if self.max_update_retries < 1:
            raise ValueError("max_update_retries must be >= 1")

        if self.average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be > 0")

        if self.handling_minutes < 0 or self.default_estimate_minutes <= 0:
            raise ValueError("ETA minutes must be positive")


def default_assignment_policy() -> AssignmentPolicy:
    """
    Convenience factory for the default policy.
    """
    p = AssignmentPolicy()
    p.validate()
    return p
