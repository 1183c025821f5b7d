"""
Purpose: Domain models for the delivery (transport) side of dispatch.
What it does:
- Delivery: one trip for one order, from pickup to drop-off.
- DeliveryStatus: the delivery state machine's states.
- TrackingEntry: append-only audit trail (status, time, optional location).

Rule: No transition rules here; see dispatch/state_machines/delivery_state.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple
import uuid

LatLon = Tuple[float, float]


class DeliveryStatus(str, Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    ACCEPTED = "ACCEPTED"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
    RETURNED = "RETURNED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_DELIVERY_STATUSES


TERMINAL_DELIVERY_STATUSES = frozenset(
    {DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED, DeliveryStatus.FAILED, DeliveryStatus.RETURNED}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TrackingEntry:
    status: DeliveryStatus
    timestamp: datetime
    location: Optional[LatLon] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class Delivery:
    """
    A delivery is never deleted; it ends in a terminal status and is kept for
    tracking and audit.
    """

    id: str
    order_id: str
    pickup_coordinates: Optional[LatLon]
    dropoff_coordinates: Optional[LatLon]

    partner_id: Optional[str] = None
    status: DeliveryStatus = DeliveryStatus.PENDING

    distance_km: Optional[float] = None
    estimated_time_minutes: Optional[int] = None

    created_at: datetime = field(default_factory=_utcnow)
    assigned_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    tracking: Tuple[TrackingEntry, ...] = ()

    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def last_known_location(self) -> Optional[LatLon]:
        for entry in reversed(self.tracking):
            if entry.location is not None:
                return entry.location
        return None

    @staticmethod
    def new(
        order_id: str,
        pickup: Optional[LatLon],
        dropoff: Optional[LatLon],
        *,
        delivery_id: Optional[str] = None,
        distance_km: Optional[float] = None,
        estimated_time_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Delivery:
        now = now or _utcnow()
        return Delivery(
            id=delivery_id or str(uuid.uuid4()),
            order_id=order_id,
            pickup_coordinates=pickup,
            dropoff_coordinates=dropoff,
            distance_km=distance_km,
            estimated_time_minutes=estimated_time_minutes,
            created_at=now,
            tracking=(TrackingEntry(DeliveryStatus.PENDING, now, pickup, "Delivery created"),),
        )
