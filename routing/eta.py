#Purpose: ETA estimation heuristics.
#Converts straight-line distances into minute estimates used by:
#delivery creation (estimated_time_minutes)
#merged orders (estimated_delivery_time shared by a merge group)
#Not traffic aware; constant speed + fixed handling time only.

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Optional


def estimate_travel_minutes(
    distance_km: Optional[float],
    *,
    average_speed_kmh: float = 25.0,
    handling_minutes: int = 10,
    default_minutes: int = 30,
) -> int:
    """
    ceil(distance / speed * 60) + handling time.
    Unknown, zero or unreachable distances fall back to `default_minutes`.
    """
    if distance_km is None or distance_km <= 0 or math.isinf(distance_km):
        return default_minutes
    return int(math.ceil((distance_km / average_speed_kmh) * 60)) + handling_minutes


def estimate_merged_delivery_time(
    now: datetime,
    member_count: int,
    *,
    base_minutes: int = 30,
    minutes_per_extra_stop: int = 8,
) -> datetime:
    """
    Base preparation time plus a fixed allowance for every additional drop-off.
    """
    extra_stops = max(0, member_count - 1)
    return now + timedelta(minutes=base_minutes + extra_stops * minutes_per_extra_stop)
