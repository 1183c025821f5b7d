import math
import random

import pytest

from routing.eta import estimate_merged_delivery_time, estimate_travel_minutes
from routing.geo import haversine_km, path_length_km
from routing.geofence import bounding_box

from .helpers import CITY_CENTRE, offset


def test_haversine_known_distance():
    london = (51.5074, -0.1278)
    paris = (48.8566, 2.3522)
    assert haversine_km(london, paris) == pytest.approx(343.5, rel=1e-2)


def test_haversine_same_point_is_zero():
    assert haversine_km(CITY_CENTRE, CITY_CENTRE) == 0.0


def test_haversine_is_symmetric():
    rng = random.Random(42)
    for _ in range(200):
        a = (rng.uniform(-89, 89), rng.uniform(-179, 179))
        b = (rng.uniform(-89, 89), rng.uniform(-179, 179))
        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a), abs=1e-9)


@pytest.mark.parametrize("a,b", [
    (None, CITY_CENTRE),
    (CITY_CENTRE, None),
    ((None, 31.0), CITY_CENTRE),
    ((float("nan"), 31.0), CITY_CENTRE),
    ((95.0, 31.0), CITY_CENTRE),
])
def test_missing_or_invalid_coordinates_are_unreachable(a, b):
    assert math.isinf(haversine_km(a, b))


def test_path_length_adds_consecutive_legs():
    a = CITY_CENTRE
    b = offset(a, north_km=1.0)
    c = offset(b, north_km=1.0)
    assert path_length_km([a, b, c]) == pytest.approx(2.0, abs=1e-3)
    assert path_length_km([a]) == 0.0
    assert math.isinf(path_length_km([a, None, c]))


def test_bounding_box_deltas():
    box = bounding_box((0.0, 10.0), 111.0)
    assert box.min_lat == pytest.approx(-1.0)
    assert box.max_lat == pytest.approx(1.0)
    assert box.min_lon == pytest.approx(9.0)
    assert box.max_lon == pytest.approx(11.0)


def test_bounding_box_contains_every_point_within_radius():
    rng = random.Random(7)
    for _ in range(50):
        center = (rng.uniform(-70, 70), rng.uniform(-170, 170))
        radius = rng.uniform(0.5, 50.0)
        box = bounding_box(center, radius)
        for _ in range(40):
            bearing = rng.uniform(0, 2 * math.pi)
            distance = rng.uniform(0, radius) * 0.999
            point = offset(center, distance * math.cos(bearing), distance * math.sin(bearing))
            if haversine_km(center, point) <= radius:
                assert box.contains(point)


def test_bounding_box_rejects_missing_centre():
    with pytest.raises(ValueError):
        bounding_box(None, 5.0)
    with pytest.raises(ValueError):
        bounding_box(CITY_CENTRE, -1.0)


def test_box_never_contains_missing_points():
    assert not bounding_box(CITY_CENTRE, 5.0).contains(None)


def test_travel_minutes():
    assert estimate_travel_minutes(6.0) == 25
    assert estimate_travel_minutes(0.1) == 11
    assert estimate_travel_minutes(None) == 30
    assert estimate_travel_minutes(0.0) == 30
    assert estimate_travel_minutes(math.inf) == 30


def test_merged_delivery_time(t0):
    assert (estimate_merged_delivery_time(t0, 1) - t0).total_seconds() == 30 * 60
    assert (estimate_merged_delivery_time(t0, 3) - t0).total_seconds() == 46 * 60
