"""
Purpose: Great-circle distance between two coordinates (haversine).

Coordinates are (lat, lon) tuples in degrees. Missing or non-numeric input is
not an error: the pair is simply unreachable (math.inf), so one bad record can
never abort a whole clustering pass.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

LatLon = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0

# Sentinel for pairs that can never match.
UNREACHABLE_KM = math.inf


def is_valid_coordinate(point: Optional[Sequence[Optional[float]]]) -> bool:
    if point is None or len(point) != 2:
        return False
    lat, lon = point
    if lat is None or lon is None:
        return False
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat) or math.isnan(lon):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def haversine_km(a: Optional[LatLon], b: Optional[LatLon]) -> float:
    """
    Distance in kilometres between two (lat, lon) points.
    Symmetric: haversine_km(a, b) == haversine_km(b, a).
    """
    if not is_valid_coordinate(a) or not is_valid_coordinate(b):
        return UNREACHABLE_KM

    lat1, lon1 = math.radians(float(a[0])), math.radians(float(a[1]))
    lat2, lon2 = math.radians(float(b[0])), math.radians(float(b[1]))

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # clamp guards against tiny float overshoot for antipodal points
    h = min(1.0, max(0.0, h))

    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def path_length_km(points: Sequence[Optional[LatLon]]) -> float:
    """
    Sum of consecutive leg distances along `points` (in the given order).
    """
    total = 0.0
    for start, end in zip(points[:-1], points[1:]):
        total += haversine_km(start, end)
    return total
