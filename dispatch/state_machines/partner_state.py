from dataclasses import replace

from common.exceptions import CapacityExceeded, DuplicateAssignment, NotFoundError
from couriers.models import DeliveryPartner, PartnerAvailability


def reserve_order(partner: DeliveryPartner, order_id: str) -> DeliveryPartner:
    """
    Take one capacity slot for `order_id`.
    Run inside a compare-and-set loop so two reservations can never both see
    the same free slot.
    """
    if order_id in partner.active_order_ids:
        raise DuplicateAssignment(order_id, f"already on partner {partner.id}")

    if not partner.has_capacity:
        raise CapacityExceeded(partner.id, partner.max_concurrent_orders)

    availability = partner.availability
    if not partner.active_order_ids:
        # first active order
        availability = PartnerAvailability.BUSY

    return replace(
        partner,
        active_order_ids=partner.active_order_ids + (order_id,),
        total_deliveries=partner.total_deliveries + 1,
        availability=availability,
    )


def release_order(partner: DeliveryPartner, order_id: str, *, completed: bool) -> DeliveryPartner:
    """
    Give back the slot held for `order_id` and count the outcome.
    A BUSY courier whose list becomes empty goes back to AVAILABLE.
    """
    if order_id not in partner.active_order_ids:
        raise NotFoundError("Active order", f"{order_id} (partner {partner.id})")

    remaining = tuple(oid for oid in partner.active_order_ids if oid != order_id)

    availability = partner.availability
    if not remaining and availability == PartnerAvailability.BUSY:
        availability = PartnerAvailability.AVAILABLE

    if completed:
        counters = {"completed_deliveries": partner.completed_deliveries + 1}
    else:
        counters = {"cancelled_deliveries": partner.cancelled_deliveries + 1}

    return replace(partner, active_order_ids=remaining, availability=availability, **counters)


def undo_reservation(partner: DeliveryPartner, order_id: str, previous: PartnerAvailability) -> DeliveryPartner:
    """
    Exact inverse of reserve_order, for an assignment that could not be
    committed on the delivery side.
    """
    if order_id not in partner.active_order_ids:
        return partner
    remaining = tuple(oid for oid in partner.active_order_ids if oid != order_id)
    availability = previous if not remaining else partner.availability
    return replace(
        partner,
        active_order_ids=remaining,
        total_deliveries=max(0, partner.total_deliveries - 1),
        availability=availability,
    )
