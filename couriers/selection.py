"""
Purpose: Business rules for choosing the best courier for a pickup.
What it does:
- find_partners_near: bounding-box pre-filter over the courier directory
  (AVAILABLE + active + verified), optionally re-checked with haversine.
- rank_partners: drop couriers without spare capacity or below the minimum
  rating, then sort best-first:
      1. rating (desc)
      2. active order count (asc)
      3. completion rate (desc)
  The sort is stable, and input is ordered by courier id, so equal keys never
  come out in a random order.
"""

import logging
from typing import Iterable, List, Optional

from routing.geo import haversine_km, is_valid_coordinate
from routing.geofence import bounding_box

from .directory import CourierDirectory
from .models import DeliveryPartner

logger = logging.getLogger(__name__)


def find_partners_near(
    directory: CourierDirectory,
    lat: Optional[float],
    lon: Optional[float],
    radius_km: float,
    min_rating: Optional[float] = None,
    *,
    exact: bool = False,
) -> List[DeliveryPartner]:
    """
    Couriers inside the search box around (lat, lon), ordered by id.

    The box is a superset of the true circle. With `exact=True` every
    candidate must also be within `radius_km` AND within its own
    delivery radius by haversine distance.
    """
    center = (lat, lon)
    if not is_valid_coordinate(center):
        logger.warning("Cannot search for partners around invalid point %s", center)
        return []

    candidates = directory.find_in_area(bounding_box(center, radius_km))

    if min_rating is not None:
        candidates = [p for p in candidates if p.rating >= min_rating]

    if exact:
        candidates = [
            p for p in candidates
            if haversine_km(center, p.location) <= min(radius_km, p.delivery_radius_km)
        ]

    return candidates


def filter_assignable(candidates: Iterable[DeliveryPartner], min_rating: Optional[float] = None) -> List[DeliveryPartner]:
    """
    Returns only couriers with a spare slot and a high enough rating.
    """
    eligible = []

    for partner in candidates:
        if not partner.has_capacity:
            continue

        if min_rating is not None and partner.rating < min_rating:
            continue

        eligible.append(partner)

    return eligible


def rank_partners(candidates: Iterable[DeliveryPartner], min_rating: Optional[float] = None) -> List[DeliveryPartner]:
    ranked = sorted(
        filter_assignable(candidates, min_rating),
        key=lambda p: (-p.rating, p.active_order_count, -p.completion_rate),
    )
    if ranked:
        logger.debug("Ranked partners: %s", [p.id for p in ranked])
    return ranked
