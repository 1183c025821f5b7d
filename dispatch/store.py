"""
In-memory delivery store (stand-in for the delivery collection).
"""

from __future__ import annotations

from typing import List, Optional

from common.store import VersionedStore

from .models import Delivery, DeliveryStatus


class DeliveryStore(VersionedStore[Delivery]):

    def __init__(self, *, max_retries: int = 5):
        super().__init__("Delivery", max_retries=max_retries)

    def add_delivery(self, delivery: Delivery) -> Delivery:
        return self.insert(delivery)

    def get_delivery(self, delivery_id: str) -> Delivery:
        return self.get(delivery_id)

    def active_for_order(self, order_id: str) -> Optional[Delivery]:
        """The order's non-terminal delivery, if it has one."""
        for delivery in self.values():
            if delivery.order_id == order_id and not delivery.is_terminal:
                return delivery
        return None

    def for_order(self, order_id: str) -> List[Delivery]:
        return sorted(self.select(lambda d: d.order_id == order_id), key=lambda d: (d.created_at, d.id))

    def for_partner(self, partner_id: str, *, active_only: bool = False) -> List[Delivery]:
        found = self.select(
            lambda d: d.partner_id == partner_id and not (active_only and d.is_terminal)
        )
        return sorted(found, key=lambda d: (d.created_at, d.id))

    def pending(self) -> List[Delivery]:
        found = self.select(lambda d: d.status == DeliveryStatus.PENDING)
        return sorted(found, key=lambda d: (d.created_at, d.id))
