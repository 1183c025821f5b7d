import pytest

from common.exceptions import InvalidStateTransition
from couriers.models import DeliveryPartner, PartnerAvailability
from couriers.selection import find_partners_near, rank_partners

from .helpers import CITY_CENTRE, offset


def _register(directory, *partners):
    for partner in partners:
        directory.register_partner(partner)


def test_locator_returns_only_dispatchable_partners_in_the_box(couriers, make_partner):
    _register(
        couriers,
        make_partner("p1", offset(CITY_CENTRE, north_km=2)),
        make_partner("p2", offset(CITY_CENTRE, east_km=-3)),
        make_partner("offline", CITY_CENTRE, "OFFLINE"),
        make_partner("break", CITY_CENTRE, "ON_BREAK"),
        make_partner("inactive", CITY_CENTRE, is_active=False),
        make_partner("unverified", CITY_CENTRE, is_verified=False),
        make_partner("far", offset(CITY_CENTRE, north_km=25)),
        make_partner("nowhere", None),
    )

    found = find_partners_near(couriers, *CITY_CENTRE, 10.0)

    assert [p.id for p in found] == ["p1", "p2"]


def test_locator_applies_minimum_rating(couriers, make_partner):
    _register(
        couriers,
        make_partner("low", CITY_CENTRE, rating=3.9),
        make_partner("high", CITY_CENTRE, rating=4.5),
    )

    assert [p.id for p in find_partners_near(couriers, *CITY_CENTRE, 5.0, min_rating=4.0)] == ["high"]


def test_box_corner_is_only_excluded_in_exact_mode(couriers, make_partner):
    # ~9.9 km north and east: inside the 10 km box, outside the 10 km circle
    _register(couriers, make_partner("corner", offset(CITY_CENTRE, north_km=9.9, east_km=9.9)))

    assert [p.id for p in find_partners_near(couriers, *CITY_CENTRE, 10.0)] == ["corner"]
    assert find_partners_near(couriers, *CITY_CENTRE, 10.0, exact=True) == []


def test_exact_mode_respects_the_partner_delivery_radius(couriers, make_partner):
    _register(
        couriers,
        make_partner("short", offset(CITY_CENTRE, north_km=6), delivery_radius_km=5.0),
        make_partner("long", offset(CITY_CENTRE, north_km=6), delivery_radius_km=8.0),
    )

    assert [p.id for p in find_partners_near(couriers, *CITY_CENTRE, 10.0, exact=True)] == ["long"]


def test_locator_with_missing_pickup_returns_nothing(couriers, make_partner):
    _register(couriers, make_partner("p1", CITY_CENTRE))
    assert find_partners_near(couriers, None, None, 10.0) == []


def test_fewer_active_orders_wins_a_rating_tie(make_partner):
    a = make_partner("A", rating=4.8, active_order_ids=("o1",))
    b = make_partner("B", rating=4.8)

    assert [p.id for p in rank_partners([a, b])] == ["B", "A"]


def test_ranking_order_of_keys(make_partner):
    best_rating = make_partner("r5", rating=5.0, active_order_ids=("x", "y"))
    good_rate = make_partner("rate", rating=4.5, total_deliveries=10, completed_deliveries=9)
    poor_rate = make_partner("poor", rating=4.5, total_deliveries=10, completed_deliveries=5)
    newcomer = make_partner("new", rating=4.5)

    ranked = rank_partners([newcomer, poor_rate, good_rate, best_rating])

    assert [p.id for p in ranked] == ["r5", "rate", "poor", "new"]


def test_ranking_drops_full_and_low_rated_partners(make_partner):
    full = make_partner("full", rating=5.0, max_concurrent_orders=1, active_order_ids=("o1",))
    low = make_partner("low", rating=2.0)
    ok = make_partner("ok", rating=4.0)

    assert [p.id for p in rank_partners([full, low, ok], min_rating=3.0)] == ["ok"]


def test_ranking_is_stable_and_deterministic(make_partner):
    partners = [make_partner(pid, rating=4.0) for pid in ("p7", "p2", "p9", "p0", "p5")]

    first = [p.id for p in rank_partners(partners)]
    second = [p.id for p in rank_partners(list(partners))]

    # ties keep the caller's order
    assert first == second == ["p7", "p2", "p9", "p0", "p5"]


def test_tied_partners_keep_input_order(make_partner):
    b = make_partner("b", rating=4.0)
    a = make_partner("a", rating=4.0)

    assert [p.id for p in rank_partners([b, a])] == ["b", "a"]
    assert [p.id for p in rank_partners([a, b])] == ["a", "b"]


def test_partner_invariants():
    with pytest.raises(ValueError):
        DeliveryPartner.new("p", 0.0, 0.0, rating=5.5)
    with pytest.raises(ValueError):
        DeliveryPartner.new("p", 0.0, 0.0, max_concurrent_orders=1, active_order_ids=("a", "b"))


def test_completion_rate():
    assert DeliveryPartner.new("p", 0.0, 0.0).completion_rate == 0.0
    assert DeliveryPartner.new("p", 0.0, 0.0, total_deliveries=4, completed_deliveries=3).completion_rate == 0.75


def test_register_duplicate_partner_fails(couriers, make_partner):
    couriers.register_partner(make_partner("p1"))
    with pytest.raises(ValueError):
        couriers.register_partner(make_partner("p1"))


def test_update_location(couriers, make_partner):
    couriers.register_partner(make_partner("p1"))
    moved = couriers.update_location("p1", -17.9, 31.1)
    assert moved.location == (-17.9, 31.1)
    assert moved.version == 1
    with pytest.raises(ValueError):
        couriers.update_location("p1", 123.0, 31.1)


def test_busy_is_owned_by_assignment(couriers, make_partner):
    couriers.register_partner(make_partner("idle"))
    couriers.register_partner(make_partner("working", availability="BUSY", active_order_ids=("o1",)))

    with pytest.raises(InvalidStateTransition):
        couriers.update_availability("idle", "BUSY")
    with pytest.raises(InvalidStateTransition):
        couriers.update_availability("working", PartnerAvailability.AVAILABLE)

    assert couriers.update_availability("idle", "on_break").availability == PartnerAvailability.ON_BREAK
    assert couriers.update_availability("working", "OFFLINE").availability == PartnerAvailability.OFFLINE


def test_rating_is_a_weighted_running_average(couriers, make_partner):
    couriers.register_partner(make_partner("new"))
    couriers.register_partner(make_partner("vet", rating=4.0, total_deliveries=3, completed_deliveries=3))

    assert couriers.update_rating("new", 4.6).rating == 4.6
    assert couriers.update_rating("vet", 5.0).rating == 4.25
    with pytest.raises(ValueError):
        couriers.update_rating("vet", 7.0)


def test_partner_statistics(couriers, make_partner):
    couriers.register_partner(make_partner("p1", rating=4.2, total_deliveries=10, completed_deliveries=8, cancelled_deliveries=1))

    stats = couriers.partner_statistics("p1")

    assert stats["totalDeliveries"] == 10
    assert stats["completedDeliveries"] == 8
    assert stats["cancelledDeliveries"] == 1
    assert stats["completionRate"] == 0.8
    assert stats["currentOrders"] == 0
    assert stats["availability"] == "AVAILABLE"
