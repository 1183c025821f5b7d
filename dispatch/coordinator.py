"""
Purpose: Orchestrator for moving deliveries onto couriers (the "glue").
What it does:
- create_delivery: one live delivery per order, distance + ETA estimated up front,
  optionally auto-assigned straight away.
- assign_delivery: PENDING delivery + courier with a spare slot -> ASSIGNED.
- auto_assign_delivery: locate -> rank -> assign the best courier that still has room.
- update_delivery_status / cancel_delivery / update_delivery_location: the delivery
  state machine plus its courier-side effects.
- complete_order / cancel_order: courier-side release of a slot.
- retry_pending_assignments: the retry entry point for a periodic ticker.

Concurrency:
- every mutation of one delivery runs under that delivery's lock
- courier capacity is only ever changed through a compare-and-set loop, so
  racing assignments for the last slot of a courier cannot both win
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from common.exceptions import (
    CapacityExceeded,
    ConcurrentUpdateError,
    DuplicateAssignment,
    InvalidStateTransition,
    NotFoundError,
)
from common.locks import KeyedLocks
from couriers.directory import CourierDirectory
from couriers.models import DeliveryPartner
from couriers.policy import AssignmentPolicy, default_assignment_policy
from couriers.selection import find_partners_near, rank_partners
from messaging import (
    DELIVERY_ASSIGNED,
    DELIVERY_CANCELLED,
    DELIVERY_COMPLETED,
    DELIVERY_STATUS_UPDATED,
    MessageBus,
    delivery_event,
    publish_safely,
)
from routing.eta import estimate_travel_minutes
from routing.geo import LatLon, haversine_km, is_valid_coordinate

from .models import Delivery, DeliveryStatus
from .state_machines.delivery_state import assign_partner, record_location, transition_delivery
from .state_machines.partner_state import release_order, reserve_order, undo_reservation
from .store import DeliveryStore

logger = logging.getLogger(__name__)

# Terminal statuses that count against the courier as a cancellation.
_CANCEL_LIKE = (DeliveryStatus.CANCELLED, DeliveryStatus.FAILED, DeliveryStatus.RETURNED)


class AssignmentCoordinator:

    def __init__(
        self,
        deliveries: DeliveryStore,
        couriers: CourierDirectory,
        bus: Optional[MessageBus] = None,
        policy: Optional[AssignmentPolicy] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        self.deliveries = deliveries
        self.couriers = couriers
        self.bus = bus
        self.policy = policy or default_assignment_policy()
        self.locks = locks or KeyedLocks()

    # --- Delivery lifecycle ---

    def create_delivery(
        self,
        order_id: str,
        pickup: Optional[LatLon],
        dropoff: Optional[LatLon],
        *,
        delivery_id: Optional[str] = None,
        auto_assign: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> Delivery:
        """
        Raises DuplicateAssignment if the order already has a live delivery.
        Not finding a courier never fails creation; the delivery stays PENDING.
        """
        with self.locks.hold(f"order:{order_id}"):
            existing = self.deliveries.active_for_order(order_id)
            if existing is not None:
                raise DuplicateAssignment(order_id, f"delivery {existing.id} is {existing.status.value}")

            distance = haversine_km(pickup, dropoff)
            delivery = Delivery.new(
                order_id,
                pickup,
                dropoff,
                delivery_id=delivery_id,
                distance_km=None if math.isinf(distance) else round(distance, 3),
                estimated_time_minutes=estimate_travel_minutes(
                    distance,
                    average_speed_kmh=self.policy.average_speed_kmh,
                    handling_minutes=self.policy.handling_minutes,
                    default_minutes=self.policy.default_estimate_minutes,
                ),
                now=now,
            )
            stored = self.deliveries.add_delivery(delivery)

        logger.info("Delivery %s created for order %s (%s min)", stored.id, order_id, stored.estimated_time_minutes)

        if auto_assign is None:
            auto_assign = self.policy.auto_assign_on_create
        if auto_assign:
            assigned, result = self.auto_assign_delivery(stored.id)
            if assigned:
                return result
        return self.deliveries.get(stored.id)

    def cancel_delivery(self, delivery_id: str, reason: Optional[str] = None) -> Delivery:
        return self.update_delivery_status(delivery_id, DeliveryStatus.CANCELLED, reason=reason)

    def update_delivery_location(
        self, delivery_id: str, lat: float, lon: float, *, now: Optional[datetime] = None
    ) -> Delivery:
        if not is_valid_coordinate((lat, lon)):
            raise ValueError(f"Invalid location for delivery {delivery_id}: ({lat}, {lon})")
        with self.locks.hold(delivery_id):
            delivery = self.deliveries.get(delivery_id)
            updated = record_location(delivery, (float(lat), float(lon)), now=now)
            return self._store(delivery, updated)

    # --- Assignment ---

    def assign_delivery(self, delivery_id: str, partner_id: str, *, now: Optional[datetime] = None) -> Delivery:
        """
        Either the delivery becomes ASSIGNED and the courier holds the order,
        or an error is raised and neither record changed.
        """
        now = now or datetime.now(timezone.utc)
        with self.locks.hold(delivery_id):
            delivery = self.deliveries.get(delivery_id)
            partner = self.couriers.get(partner_id)

            assigned = assign_partner(delivery, partner_id, now=now)

            # the only step that can lose a race; it writes nothing when it fails
            self.couriers.update(partner_id, lambda p: reserve_order(p, delivery.order_id))

            stored = self.deliveries.compare_and_set(delivery, assigned)
            if stored is None:
                self.couriers.update(
                    partner_id, lambda p: undo_reservation(p, delivery.order_id, partner.availability)
                )
                raise ConcurrentUpdateError("Delivery", delivery_id, 1)

        logger.info("Delivery %s (order %s) assigned to partner %s", delivery_id, stored.order_id, partner_id)
        publish_safely(
            self.bus,
            DELIVERY_ASSIGNED,
            delivery_event(
                "DELIVERY_ASSIGNED",
                delivery_id=stored.id,
                order_id=stored.order_id,
                partner_id=partner_id,
                status=stored.status,
                now=now,
            ),
        )
        return stored

    def auto_assign_delivery(self, delivery_id: str) -> Tuple[bool, Optional[Delivery]]:
        """
        Returns (True, delivery) on success, (False, None) when nobody suitable
        is free right now. Callers decide when to retry.
        """
        delivery = self.deliveries.get(delivery_id)
        if delivery.status != DeliveryStatus.PENDING:
            logger.debug("Delivery %s is %s; nothing to auto-assign", delivery_id, delivery.status.value)
            return False, None

        if not is_valid_coordinate(delivery.pickup_coordinates):
            logger.warning("Delivery %s has no usable pickup location; cannot auto-assign", delivery_id)
            return False, None

        lat, lon = delivery.pickup_coordinates
        candidates = find_partners_near(
            self.couriers,
            lat,
            lon,
            self.policy.search_radius_km,
            self.policy.min_rating,
            exact=self.policy.exact_radius_check,
        )

        for partner in rank_partners(candidates, self.policy.min_rating):
            try:
                return True, self.assign_delivery(delivery_id, partner.id)
            except (CapacityExceeded, ConcurrentUpdateError, DuplicateAssignment) as exc:
                logger.debug("Partner %s skipped for delivery %s: %s", partner.id, delivery_id, exc)
            except InvalidStateTransition:
                # assigned by someone else in the meantime
                return False, None

        logger.warning("No eligible partners within %.1f km for delivery %s", self.policy.search_radius_km, delivery_id)
        return False, None

    def retry_pending_assignments(self) -> int:
        """
        One auto-assign attempt for every PENDING delivery, oldest first.
        Returns how many got a courier.
        """
        assigned = 0
        for delivery in self.deliveries.pending():
            ok, _ = self.auto_assign_delivery(delivery.id)
            if ok:
                assigned += 1
        if assigned:
            logger.info("Assigned %d pending deliveries on retry", assigned)
        return assigned

    # --- Status updates ---

    def update_delivery_status(
        self,
        delivery_id: str,
        new_status: DeliveryStatus | str,
        *,
        location: Optional[LatLon] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Delivery:
        if isinstance(new_status, str):
            new_status = DeliveryStatus(new_status.upper())
        now = now or datetime.now(timezone.utc)

        with self.locks.hold(delivery_id):
            delivery = self.deliveries.get(delivery_id)
            if new_status == DeliveryStatus.ASSIGNED:
                raise InvalidStateTransition(
                    delivery_id, delivery.status, new_status, "use assign_delivery to attach a partner"
                )

            updated = transition_delivery(delivery, new_status, now=now, location=location, reason=reason)

            if new_status.is_terminal and delivery.partner_id is not None:
                self._release_if_held(delivery.partner_id, delivery.order_id, completed=new_status == DeliveryStatus.DELIVERED)

            stored = self._store(delivery, updated)

        logger.info("Delivery %s: %s -> %s", delivery_id, delivery.status.value, new_status.value)

        if new_status == DeliveryStatus.DELIVERED:
            topic, event_type = DELIVERY_COMPLETED, "DELIVERY_COMPLETED"
        elif new_status in _CANCEL_LIKE:
            topic, event_type = DELIVERY_CANCELLED, f"DELIVERY_{new_status.value}"
        else:
            topic, event_type = DELIVERY_STATUS_UPDATED, "DELIVERY_STATUS_UPDATED"

        publish_safely(
            self.bus,
            topic,
            delivery_event(
                event_type,
                delivery_id=stored.id,
                order_id=stored.order_id,
                partner_id=stored.partner_id,
                status=stored.status,
                reason=reason if new_status in _CANCEL_LIKE else None,
                now=now,
            ),
        )
        return stored

    # --- Courier side ---

    def complete_order(self, partner_id: str, order_id: str) -> DeliveryPartner:
        partner = self.couriers.update(partner_id, lambda p: release_order(p, order_id, completed=True))
        logger.info("Partner %s completed order %s (%d active)", partner_id, order_id, partner.active_order_count)
        self._publish_partner_event(DELIVERY_COMPLETED, "ORDER_COMPLETED", partner, order_id)
        return partner

    def cancel_order(self, partner_id: str, order_id: str, reason: Optional[str] = None) -> DeliveryPartner:
        partner = self.couriers.update(partner_id, lambda p: release_order(p, order_id, completed=False))
        logger.info("Partner %s cancelled order %s: %s", partner_id, order_id, reason or "no reason given")
        self._publish_partner_event(DELIVERY_CANCELLED, "ORDER_CANCELLED", partner, order_id, reason)
        return partner

    # -------------------------
    # Internal helpers
    # -------------------------

    def _store(self, expected: Delivery, updated: Delivery) -> Delivery:
        stored = self.deliveries.compare_and_set(expected, updated)
        if stored is None:
            raise ConcurrentUpdateError("Delivery", expected.id, 1)
        return stored

    def _release_if_held(self, partner_id: str, order_id: str, *, completed: bool) -> None:
        """
        The courier may already have released the order through
        complete_order / cancel_order; that is not an error here.
        """
        def mutate(partner: DeliveryPartner) -> DeliveryPartner:
            if order_id not in partner.active_order_ids:
                return partner
            return release_order(partner, order_id, completed=completed)

        try:
            self.couriers.update(partner_id, mutate)
        except NotFoundError:
            logger.warning("Partner %s no longer exists; slot for order %s not released", partner_id, order_id)

    def _publish_partner_event(
        self,
        topic: str,
        event_type: str,
        partner: DeliveryPartner,
        order_id: str,
        reason: Optional[str] = None,
    ) -> None:
        delivery = self.deliveries.active_for_order(order_id)
        publish_safely(
            self.bus,
            topic,
            delivery_event(
                event_type,
                delivery_id=delivery.id if delivery else None,
                order_id=order_id,
                partner_id=partner.id,
                status=partner.availability,
                reason=reason,
            ),
        )

    def pending_deliveries(self) -> List[Delivery]:
        return self.deliveries.pending()
