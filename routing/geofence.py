#Purpose: Cheap rectangular geofence around a point.
#Converts a centre + radius (km) into a lat/lon bounding box that a store can
#answer with plain range comparisons.
#The box is an approximation (111 km per degree) and always a superset of the
#true circle, so it is a PRE-FILTER: apply haversine_km afterwards when the
#exact radius matters.

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .geo import LatLon, is_valid_coordinate

KM_PER_DEGREE = 111.0

# Keeps cos(lat) away from zero at the poles.
_MIN_COS_LAT = 1e-6


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned (lat, lon) rectangle.
    """
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, point: Optional[LatLon]) -> bool:
        if not is_valid_coordinate(point):
            return False
        lat, lon = point
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


def bounding_box(center: LatLon, radius_km: float) -> BoundingBox:
    """
    latDelta = radius / 111
    lonDelta = radius / (111 * cos(radians(centerLat)))
    """
    if not is_valid_coordinate(center):
        raise ValueError(f"Cannot build a bounding box around {center!r}")
    if radius_km < 0:
        raise ValueError("radius_km must be >= 0")

    center_lat, center_lon = float(center[0]), float(center[1])

    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = max(abs(math.cos(math.radians(center_lat))), _MIN_COS_LAT)
    lon_delta = radius_km / (KM_PER_DEGREE * cos_lat)

    return BoundingBox(
        min_lat=center_lat - lat_delta,
        max_lat=center_lat + lat_delta,
        min_lon=center_lon - lon_delta,
        max_lon=center_lon + lon_delta,
    )
