from datetime import timedelta

import pandas as pd
import pytest

from common.settings import Settings
from dispatch.models import DeliveryStatus
from dispatch.service import DispatchService
from messaging import DELIVERY_ASSIGNED, DELIVERY_COMPLETED, MERGE_COMPLETED, InMemoryMessageBus, RestProxyMessageBus
from scripts.generate_mock_data import generate_mock_orders
from scripts.generate_mock_partners import generate_mock_partners
from scripts.run_dispatch_simulation import load_partners, run_simulation

from .helpers import CITY_CENTRE, offset


@pytest.fixture
def service(bus):
    return DispatchService(bus=bus)


def test_end_to_end_merge_and_delivery(service, make_order, make_partner, bus, t0):
    service.place_order(make_order("a", offset(CITY_CENTRE, north_km=1.0), minutes=0))
    service.place_order(make_order("b", offset(CITY_CENTRE, north_km=1.5), minutes=2))
    service.register_partner(make_partner("A", offset(CITY_CENTRE, east_km=1), rating=4.8, active_order_ids=("z",), availability="AVAILABLE"))
    service.register_partner(make_partner("B", offset(CITY_CENTRE, east_km=2), rating=4.8))

    [record] = service.cluster_and_merge("R1", now=t0 + timedelta(minutes=3))
    assert set(record.order_ids) == {"a", "b"}

    candidates = service.find_partners_near(*CITY_CENTRE)
    assert [p.id for p in service.rank_partners(candidates)] == ["B", "A"]

    delivery = service.create_delivery("a", CITY_CENTRE, offset(CITY_CENTRE, north_km=1.0), auto_assign=False)
    assigned, delivery = service.auto_assign_delivery(delivery.id)
    assert assigned
    assert delivery.partner_id == "B"

    for status in ("ACCEPTED", "PICKED_UP", "IN_TRANSIT", "DELIVERED"):
        delivery = service.update_delivery_status(delivery.id, status)
    assert delivery.status == DeliveryStatus.DELIVERED

    partner = service.couriers.get_partner("B")
    assert partner.completed_deliveries == 1
    assert partner.active_order_ids == ()

    topics = [topic for topic, _ in bus.published]
    assert topics.count(MERGE_COMPLETED) == 1
    assert topics.count(DELIVERY_ASSIGNED) == 1
    assert topics.count(DELIVERY_COMPLETED) == 1


def test_partner_level_complete_and_cancel(service, make_partner):
    service.register_partner(make_partner("p", availability="BUSY", active_order_ids=("o1", "o2")))

    assert service.complete_order("p", "o1").active_order_ids == ("o2",)
    assert service.cancel_order("p", "o2", "no show").cancelled_deliveries == 1


def test_find_partners_defaults_to_policy_radius(service, make_partner):
    service.register_partner(make_partner("near", offset(CITY_CENTRE, north_km=8)))
    service.register_partner(make_partner("far", offset(CITY_CENTRE, north_km=12)))

    assert [p.id for p in service.find_partners_near(*CITY_CENTRE)] == ["near"]
    assert [p.id for p in service.find_partners_near(*CITY_CENTRE, radius_km=15)] == ["far", "near"]


def test_from_settings_picks_the_bus():
    assert isinstance(DispatchService.from_settings(Settings()).bus, InMemoryMessageBus)

    service = DispatchService.from_settings(Settings(event_bus_url="http://proxy:8082", merge_policy_profile="offpeak"))
    assert isinstance(service.bus, RestProxyMessageBus)
    assert service.merge_policy.max_orders_per_merge == 3
    service.stop()


def test_mock_orders_are_reproducible(tmp_path, t0):
    path = tmp_path / "orders.csv"

    df = generate_mock_orders(num_orders=40, num_restaurants=4, output_file=str(path), seed=1, now=t0)
    again = generate_mock_orders(num_orders=40, num_restaurants=4, output_file=None, seed=1, now=t0)

    assert len(df) == 40
    assert df["restaurant_id"].nunique() <= 4
    assert set(df["status"]) <= {"PENDING", "CONFIRMED"}
    pd.testing.assert_frame_equal(df, again)
    assert len(pd.read_csv(path)) == 40


def test_mock_partners_load_as_domain_objects(tmp_path):
    path = generate_mock_partners(str(tmp_path / "partners.csv"), count=25, seed=3)

    partners = load_partners(path)

    assert len(partners) == 25
    assert all(0.0 <= p.rating <= 5.0 for p in partners)
    assert all(2 <= p.max_concurrent_orders <= 5 for p in partners)


def test_simulation_accounts_for_every_order(tmp_path, t0):
    orders_path = tmp_path / "orders.csv"
    partners_path = tmp_path / "partners.csv"
    generate_mock_orders(num_orders=30, num_restaurants=3, output_file=str(orders_path), seed=5, now=t0)
    generate_mock_partners(str(partners_path), count=15, seed=5)

    results = run_simulation(
        str(orders_path),
        str(partners_path),
        service=DispatchService(bus=InMemoryMessageBus()),
        complete_when=lambda delivery: delivery.order_id != "o_000001",
    )

    assert len(results) == 30
    assert set(results["final_status"]) <= {"DELIVERED", "FAILED", "PENDING"}
    assigned = results[results["partner_id"] != "UNASSIGNED"]
    assert (assigned["final_status"] != "PENDING").all()
