#Marks routing as a package.
#Re-exports the geometry helpers so other modules import from routing without
#knowing internal file names.
#No business logic.

from .geo import EARTH_RADIUS_KM, UNREACHABLE_KM, LatLon, haversine_km, is_valid_coordinate, path_length_km
from .geofence import BoundingBox, bounding_box
from .eta import estimate_merged_delivery_time, estimate_travel_minutes

__all__ = [
    "EARTH_RADIUS_KM",
    "UNREACHABLE_KM",
    "LatLon",
    "haversine_km",
    "is_valid_coordinate",
    "path_length_km",
    "BoundingBox",
    "bounding_box",
    "estimate_merged_delivery_time",
    "estimate_travel_minutes",
]
