"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, restaurant, customer, drop-off coords, placed_at, status, merge fields)
- MergeRecord (group id, member ids, efficiency score, restaurant, created_at)

Defines enums/constants:
- OrderStatus = PENDING | CONFIRMED | PREPARING | READY_FOR_PICKUP | PICKED_UP
  | OUT_FOR_DELIVERY | DELIVERED | CANCELLED | REJECTED | REFUNDED

Rule: No clustering or scoring logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Tuple
import uuid

LatLon = Tuple[float, float]


class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY_FOR_PICKUP = "READY_FOR_PICKUP"
    PICKED_UP = "PICKED_UP"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_ORDER_STATUSES

    @property
    def is_mergeable(self) -> bool:
        """Only orders that have not started preparation may be consolidated."""
        return self in (OrderStatus.PENDING, OrderStatus.CONFIRMED)


TERMINAL_ORDER_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REJECTED, OrderStatus.REFUNDED}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Order:
    """
    A customer order as seen by the consolidation engine.

    An order belongs to at most one merge group; `merge_group_id` is only set
    by the merge engine when it commits.
    """

    id: str
    restaurant_id: str
    customer_id: str
    delivery_coordinates: Optional[LatLon]
    placed_at: datetime = field(default_factory=_utcnow)

    status: OrderStatus = OrderStatus.PENDING

    is_merged: bool = False
    merge_group_id: Optional[str] = None
    merged_with_order_ids: Tuple[str, ...] = ()
    estimated_delivery_time: Optional[datetime] = None

    version: int = 0

    def __post_init__(self):
        # naive timestamps are taken as UTC so candidate windows can compare them
        if self.placed_at.tzinfo is None:
            object.__setattr__(self, "placed_at", self.placed_at.replace(tzinfo=timezone.utc))

    @staticmethod
    def new(
        restaurant_id: str,
        customer_id: str,
        lat: Optional[float],
        lon: Optional[float],
        *,
        order_id: Optional[str] = None,
        placed_at: Optional[datetime] = None,
        status: str | OrderStatus = OrderStatus.PENDING,
    ) -> Order:
        if isinstance(status, str):
            status = OrderStatus(status)

        coordinates = None if lat is None and lon is None else (lat, lon)
        return Order(
            id=order_id or str(uuid.uuid4()),
            restaurant_id=restaurant_id,
            customer_id=customer_id,
            delivery_coordinates=coordinates,
            placed_at=placed_at or _utcnow(),
            status=status,
        )


@dataclass(frozen=True)
class MergeRecord:
    """
    Committed result of a cluster that passed the efficiency threshold.
    Created together with the order updates it causes and never mutated.
    """
    group_id: str
    order_ids: Tuple[str, ...]
    efficiency_score: float
    restaurant_id: str
    estimated_time_savings_minutes: int
    created_at: datetime = field(default_factory=_utcnow)

    @staticmethod # Factory method to create a MergeRecord from the member orders
    def new(
        orders: Sequence[Order],
        efficiency_score: float,
        estimated_time_savings_minutes: int,
        now: Optional[datetime] = None,
    ) -> MergeRecord:
        #uuid for unique merge group id generation
        return MergeRecord(
            group_id=str(uuid.uuid4()),
            order_ids=tuple(order.id for order in orders),
            efficiency_score=efficiency_score,
            restaurant_id=orders[0].restaurant_id,
            estimated_time_savings_minutes=estimated_time_savings_minutes,
            created_at=now or _utcnow(),
        )
