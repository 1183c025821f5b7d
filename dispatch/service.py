"""
Purpose: The one object an API layer talks to.
What it does:
Wires the order directory, courier directory, delivery store, message bus and
policies together and exposes the public operations:

    cluster_and_merge(restaurant_id)            -> List[MergeRecord]
    find_partners_near(lat, lon, radius, rating)-> List[DeliveryPartner]
    rank_partners(candidates, rating)           -> List[DeliveryPartner]
    assign_delivery(delivery_id, partner_id)    -> Delivery
    auto_assign_delivery(delivery_id)           -> (bool, Delivery | None)
    update_delivery_status(delivery_id, status) -> Delivery
    complete_order(partner_id, order_id)        -> DeliveryPartner
    cancel_order(partner_id, order_id, reason)  -> DeliveryPartner

Rule: No business rules here; every call delegates.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from common.settings import Settings
from common.ticker import Ticker
from couriers.directory import CourierDirectory
from couriers.models import DeliveryPartner
from couriers.policy import AssignmentPolicy, default_assignment_policy
from couriers import selection
from messaging import InMemoryMessageBus, MessageBus, RestProxyMessageBus
from orders.directory import OrderDirectory
from orders.merging.engine import cluster_and_merge
from orders.merging.policy import MergePolicy, default_policy
from orders.models import MergeRecord, Order
from orders.sweep import MergeSweeper
from routing.geo import LatLon

from .coordinator import AssignmentCoordinator
from .models import Delivery, DeliveryStatus
from .store import DeliveryStore

logger = logging.getLogger(__name__)


class DispatchService:

    def __init__(
        self,
        *,
        orders: Optional[OrderDirectory] = None,
        couriers: Optional[CourierDirectory] = None,
        deliveries: Optional[DeliveryStore] = None,
        bus: Optional[MessageBus] = None,
        merge_policy: Optional[MergePolicy] = None,
        assignment_policy: Optional[AssignmentPolicy] = None,
        sweep_interval_seconds: float = 30.0,
    ):
        self.merge_policy = merge_policy or default_policy()
        self.assignment_policy = assignment_policy or default_assignment_policy()
        retries = self.assignment_policy.max_update_retries

        self.orders = orders or OrderDirectory(max_retries=retries)
        self.couriers = couriers or CourierDirectory(max_retries=retries)
        self.deliveries = deliveries or DeliveryStore(max_retries=retries)
        self.bus = bus if bus is not None else InMemoryMessageBus()

        self.coordinator = AssignmentCoordinator(
            self.deliveries, self.couriers, self.bus, self.assignment_policy
        )
        self.sweeper = MergeSweeper(
            self.orders, self.bus, self.merge_policy, interval_seconds=sweep_interval_seconds
        )
        self._retry_ticker = Ticker(
            "assignment-retry", sweep_interval_seconds, self.coordinator.retry_pending_assignments
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> DispatchService:
        """
        HTTP bus when EVENT_BUS_URL is set, in-memory otherwise.
        """
        if settings.event_bus_url:
            bus: MessageBus = RestProxyMessageBus(settings.event_bus_url, timeout=settings.event_bus_timeout)
        else:
            bus = InMemoryMessageBus()
        return cls(
            bus=bus,
            merge_policy=settings.merge_policy(),
            assignment_policy=settings.assignment_policy(),
            sweep_interval_seconds=settings.merge_sweep_interval_sec,
        )

    # --- Orders / merging ---

    def place_order(self, order: Order, *, merge_now: bool = False) -> Order:
        """
        Store a new order. Merging never runs on the caller's thread: it is
        either triggered in the background (`merge_now`) or left to the sweep.
        """
        stored = self.orders.add_order(order)
        if merge_now:
            self.sweeper.trigger(order.restaurant_id)
        return stored

    def cluster_and_merge(self, restaurant_id: str, *, now: Optional[datetime] = None) -> List[MergeRecord]:
        return cluster_and_merge(
            restaurant_id, directory=self.orders, bus=self.bus, policy=self.merge_policy, now=now
        )

    # --- Couriers ---

    def register_partner(self, partner: DeliveryPartner) -> DeliveryPartner:
        return self.couriers.register_partner(partner)

    def find_partners_near(
        self,
        lat: float,
        lon: float,
        radius_km: Optional[float] = None,
        min_rating: Optional[float] = None,
        *,
        exact: Optional[bool] = None,
    ) -> List[DeliveryPartner]:
        return selection.find_partners_near(
            self.couriers,
            lat,
            lon,
            radius_km if radius_km is not None else self.assignment_policy.search_radius_km,
            min_rating,
            exact=self.assignment_policy.exact_radius_check if exact is None else exact,
        )

    def rank_partners(
        self, candidates: Iterable[DeliveryPartner], min_rating: Optional[float] = None
    ) -> List[DeliveryPartner]:
        return selection.rank_partners(candidates, min_rating)

    # --- Deliveries ---

    def create_delivery(
        self,
        order_id: str,
        pickup: Optional[LatLon],
        dropoff: Optional[LatLon],
        *,
        auto_assign: Optional[bool] = None,
    ) -> Delivery:
        return self.coordinator.create_delivery(order_id, pickup, dropoff, auto_assign=auto_assign)

    def assign_delivery(self, delivery_id: str, partner_id: str) -> Delivery:
        return self.coordinator.assign_delivery(delivery_id, partner_id)

    def auto_assign_delivery(self, delivery_id: str) -> Tuple[bool, Optional[Delivery]]:
        return self.coordinator.auto_assign_delivery(delivery_id)

    def update_delivery_status(
        self,
        delivery_id: str,
        new_status: DeliveryStatus | str,
        *,
        location: Optional[LatLon] = None,
        reason: Optional[str] = None,
    ) -> Delivery:
        return self.coordinator.update_delivery_status(delivery_id, new_status, location=location, reason=reason)

    def complete_order(self, partner_id: str, order_id: str) -> DeliveryPartner:
        return self.coordinator.complete_order(partner_id, order_id)

    def cancel_order(self, partner_id: str, order_id: str, reason: Optional[str] = None) -> DeliveryPartner:
        return self.coordinator.cancel_order(partner_id, order_id, reason)

    # --- Background work ---

    def start(self) -> None:
        self.sweeper.start()
        self._retry_ticker.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._retry_ticker.stop(timeout)
        self.sweeper.stop(timeout)
        self.bus.close()
