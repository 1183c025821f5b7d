"""
Purpose: The courier directory (in-memory stand-in for the courier store).
What it does:
- Owns DeliveryPartner records (versioned, compare-and-set writes).
- Answers the bounding-box query the locator needs.
- Provides the profile write paths: location, availability, rating.

Capacity bookkeeping (active orders + counters) is NOT done here; it goes
through dispatch.state_machines.partner_state via VersionedStore.update so
it is always a conditional write.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List

from common.exceptions import InvalidStateTransition
from common.store import VersionedStore
from routing.geo import is_valid_coordinate
from routing.geofence import BoundingBox

from .models import MAX_RATING, MIN_RATING, DeliveryPartner, PartnerAvailability

logger = logging.getLogger(__name__)


class CourierDirectory(VersionedStore[DeliveryPartner]):

    def __init__(self, *, max_retries: int = 5):
        super().__init__("DeliveryPartner", max_retries=max_retries)

    def register_partner(self, partner: DeliveryPartner) -> DeliveryPartner:
        stored = self.insert(partner)
        logger.info("Partner %s registered (%s)", partner.id, partner.availability.value)
        return stored

    def get_partner(self, partner_id: str) -> DeliveryPartner:
        return self.get(partner_id)

    def find_in_area(self, box: BoundingBox) -> List[DeliveryPartner]:
        """
        Dispatchable couriers (AVAILABLE, active, verified) whose stored
        location falls inside `box`, ordered by id.
        """
        found = self.select(lambda p: p.is_dispatchable and box.contains(p.location))
        return sorted(found, key=lambda p: p.id)

    def update_location(self, partner_id: str, lat: float, lon: float) -> DeliveryPartner:
        if not is_valid_coordinate((lat, lon)):
            raise ValueError(f"Invalid location for partner {partner_id}: ({lat}, {lon})")
        return self.update(partner_id, lambda p: replace(p, location=(float(lat), float(lon))))

    def update_availability(self, partner_id: str, availability: str | PartnerAvailability) -> DeliveryPartner:
        """
        BUSY is owned by assignment bookkeeping: it cannot be set by hand, and
        a courier with active orders cannot be made AVAILABLE by hand.
        """
        if isinstance(availability, str):
            availability = PartnerAvailability(availability.upper())

        def mutate(partner: DeliveryPartner) -> DeliveryPartner:
            if availability == PartnerAvailability.BUSY and partner.availability != PartnerAvailability.BUSY:
                raise InvalidStateTransition(
                    partner.id, partner.availability, availability, "BUSY is set by assignment only"
                )
            if availability == PartnerAvailability.AVAILABLE and partner.active_order_ids:
                raise InvalidStateTransition(
                    partner.id, partner.availability, availability,
                    f"{partner.active_order_count} active orders",
                )
            return replace(partner, availability=availability)

        updated = self.update(partner_id, mutate)
        logger.info("Partner %s availability -> %s", partner_id, availability.value)
        return updated

    def update_rating(self, partner_id: str, new_rating: float) -> DeliveryPartner:
        """
        Fold one customer rating into the running average, weighted by the
        number of completed deliveries. Rounded to 2 dp.
        """
        if not MIN_RATING <= new_rating <= MAX_RATING:
            raise ValueError(f"rating must be within [{MIN_RATING}, {MAX_RATING}], got {new_rating}")

        def mutate(partner: DeliveryPartner) -> DeliveryPartner:
            completed = partner.completed_deliveries
            if completed == 0:
                rating = new_rating
            else:
                rating = (partner.rating * completed + new_rating) / (completed + 1)
            rating = round(max(MIN_RATING, min(MAX_RATING, rating)), 2)
            return replace(partner, rating=rating)

        return self.update(partner_id, mutate)

    def partner_statistics(self, partner_id: str) -> Dict[str, Any]:
        partner = self.get(partner_id)
        return {
            "partnerId": partner.id,
            "totalDeliveries": partner.total_deliveries,
            "completedDeliveries": partner.completed_deliveries,
            "cancelledDeliveries": partner.cancelled_deliveries,
            "completionRate": round(partner.completion_rate, 4),
            "rating": partner.rating,
            "currentOrders": partner.active_order_count,
            "maxConcurrentOrders": partner.max_concurrent_orders,
            "availability": partner.availability.value,
        }
