"""
Purpose: Core data models for the couriers domain.
What it does:
Defines the structure of a DeliveryPartner and their availability without relying on Django ORM constraints.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

LatLon = Tuple[float, float]

MIN_RATING = 0.0
MAX_RATING = 5.0


class PartnerAvailability(str, Enum):
    """
    The state a courier can be in. Only AVAILABLE couriers are offered work.
    """
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"
    ON_BREAK = "ON_BREAK"


@dataclass(frozen=True)
class DeliveryPartner:
    """
    A courier at a specific point in time (one version of the stored record).

    Invariants (checked on construction):
    - len(active_order_ids) <= max_concurrent_orders
    - 0 <= rating <= 5
    """
    id: str
    location: Optional[LatLon]
    availability: PartnerAvailability = PartnerAvailability.OFFLINE

    is_active: bool = True
    is_verified: bool = True

    rating: float = 0.0
    total_deliveries: int = 0
    completed_deliveries: int = 0
    cancelled_deliveries: int = 0

    active_order_ids: Tuple[str, ...] = ()
    max_concurrent_orders: int = 5
    delivery_radius_km: float = 10.0

    version: int = 0

    def __post_init__(self):
        if self.max_concurrent_orders < 1:
            raise ValueError("max_concurrent_orders must be >= 1")
        if len(self.active_order_ids) > self.max_concurrent_orders:
            raise ValueError(
                f"Partner {self.id} has {len(self.active_order_ids)} active orders "
                f"but capacity is {self.max_concurrent_orders}"
            )
        if not MIN_RATING <= self.rating <= MAX_RATING:
            raise ValueError(f"rating must be within [{MIN_RATING}, {MAX_RATING}], got {self.rating}")
        if self.delivery_radius_km <= 0:
            raise ValueError("delivery_radius_km must be > 0")

    @property
    def active_order_count(self) -> int:
        return len(self.active_order_ids)

    @property
    def has_capacity(self) -> bool:
        return self.active_order_count < self.max_concurrent_orders

    @property
    def completion_rate(self) -> float:
        """completed / total ever assigned, 0 when nothing was ever assigned."""
        if self.total_deliveries == 0:
            return 0.0
        return self.completed_deliveries / self.total_deliveries

    @property
    def is_dispatchable(self) -> bool:
        return self.availability == PartnerAvailability.AVAILABLE and self.is_active and self.is_verified

    @classmethod
    def new(
        cls,
        partner_id: str,
        lat: Optional[float],
        lon: Optional[float],
        availability: str | PartnerAvailability = PartnerAvailability.AVAILABLE,
        *,
        rating: float = 0.0,
        max_concurrent_orders: int = 5,
        delivery_radius_km: float = 10.0,
        is_active: bool = True,
        is_verified: bool = True,
        total_deliveries: int = 0,
        completed_deliveries: int = 0,
        cancelled_deliveries: int = 0,
        active_order_ids: Tuple[str, ...] = (),
    ) -> DeliveryPartner:
        if isinstance(availability, str):
            availability = PartnerAvailability(availability.upper())

        location = None if lat is None or lon is None else (lat, lon)
        return cls(
            id=partner_id,
            location=location,
            availability=availability,
            is_active=is_active,
            is_verified=is_verified,
            rating=rating,
            total_deliveries=total_deliveries,
            completed_deliveries=completed_deliveries,
            cancelled_deliveries=cancelled_deliveries,
            active_order_ids=tuple(active_order_ids),
            max_concurrent_orders=max_concurrent_orders,
            delivery_radius_km=delivery_radius_km,
        )
