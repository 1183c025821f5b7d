from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional

from common.exceptions import InvalidStateTransition
from dispatch.models import Delivery, DeliveryStatus, LatLon, TrackingEntry

# Anything not listed here is rejected. Terminal statuses have no way out.
ALLOWED_TRANSITIONS: Dict[DeliveryStatus, FrozenSet[DeliveryStatus]] = {
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.ASSIGNED, DeliveryStatus.CANCELLED}),
    DeliveryStatus.ASSIGNED: frozenset({DeliveryStatus.ACCEPTED, DeliveryStatus.CANCELLED}),
    DeliveryStatus.ACCEPTED: frozenset({DeliveryStatus.PICKED_UP, DeliveryStatus.CANCELLED}),
    DeliveryStatus.PICKED_UP: frozenset(
        {DeliveryStatus.IN_TRANSIT, DeliveryStatus.CANCELLED, DeliveryStatus.FAILED}
    ),
    DeliveryStatus.IN_TRANSIT: frozenset(
        {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, DeliveryStatus.RETURNED}
    ),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.CANCELLED: frozenset(),
    DeliveryStatus.FAILED: frozenset(),
    DeliveryStatus.RETURNED: frozenset(),
}

# Which timestamp field a transition stamps.
_TIMESTAMP_FIELDS = {
    DeliveryStatus.ASSIGNED: "assigned_at",
    DeliveryStatus.ACCEPTED: "accepted_at",
    DeliveryStatus.PICKED_UP: "picked_up_at",
    DeliveryStatus.DELIVERED: "delivered_at",
    DeliveryStatus.CANCELLED: "cancelled_at",
    DeliveryStatus.FAILED: "cancelled_at",
}


def can_transition(current: DeliveryStatus, requested: DeliveryStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition_delivery(
    delivery: Delivery,
    new_status: DeliveryStatus,
    *,
    now: Optional[datetime] = None,
    location: Optional[LatLon] = None,
    reason: Optional[str] = None,
) -> Delivery:
    """
    Pure: returns the delivery in `new_status` with a tracking entry appended
    and the matching timestamp stamped. Raises before building anything if the
    move is not in ALLOWED_TRANSITIONS.
    """
    if not can_transition(delivery.status, new_status):
        detail = "delivery is in a terminal status" if delivery.is_terminal else ""
        raise InvalidStateTransition(delivery.id, delivery.status, new_status, detail)

    now = now or datetime.now(timezone.utc)
    changes = {
        "status": new_status,
        "tracking": delivery.tracking + (TrackingEntry(new_status, now, location, reason),),
    }

    stamp = _TIMESTAMP_FIELDS.get(new_status)
    if stamp is not None:
        changes[stamp] = now

    if new_status in (DeliveryStatus.CANCELLED, DeliveryStatus.FAILED, DeliveryStatus.RETURNED) and reason:
        changes["cancellation_reason"] = reason

    return replace(delivery, **changes)


def assign_partner(delivery: Delivery, partner_id: str, *, now: Optional[datetime] = None) -> Delivery:
    """
    PENDING -> ASSIGNED with the courier attached. Only PENDING deliveries
    can be assigned, so a delivery is assigned at most once.
    """
    if delivery.status != DeliveryStatus.PENDING:
        raise InvalidStateTransition(
            delivery.id, delivery.status, DeliveryStatus.ASSIGNED, "only PENDING deliveries can be assigned"
        )
    assigned = transition_delivery(delivery, DeliveryStatus.ASSIGNED, now=now, reason=f"Assigned to {partner_id}")
    return replace(assigned, partner_id=partner_id)


def record_location(delivery: Delivery, location: LatLon, *, now: Optional[datetime] = None) -> Delivery:
    """
    Append a location ping without changing status.
    """
    if delivery.is_terminal:
        raise InvalidStateTransition(
            delivery.id, delivery.status, delivery.status, "cannot track a finished delivery"
        )
    entry = TrackingEntry(delivery.status, now or datetime.now(timezone.utc), location, "Location update")
    return replace(delivery, tracking=delivery.tracking + (entry,))
