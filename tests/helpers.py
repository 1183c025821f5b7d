import math

KM_PER_DEGREE_LAT = 6371.0 * math.pi / 180.0

# Harare city centre
CITY_CENTRE = (-17.824858, 31.053028)


def offset(point, north_km=0.0, east_km=0.0):
    """Move a point by the given km (small distances only)."""
    lat, lon = point
    new_lat = lat + north_km / KM_PER_DEGREE_LAT
    new_lon = lon + east_km / (KM_PER_DEGREE_LAT * math.cos(math.radians(lat)))
    return (new_lat, new_lon)
