from datetime import datetime, timedelta, timezone

import pytest

from couriers.directory import CourierDirectory
from couriers.models import DeliveryPartner
from dispatch.coordinator import AssignmentCoordinator
from dispatch.store import DeliveryStore
from messaging import InMemoryMessageBus
from orders.directory import OrderDirectory
from orders.models import Order

from .helpers import CITY_CENTRE


@pytest.fixture
def t0():
    return datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def bus():
    return InMemoryMessageBus()


@pytest.fixture
def order_directory():
    return OrderDirectory()


@pytest.fixture
def make_order(t0):
    def _make(order_id, point=CITY_CENTRE, minutes=0, restaurant_id="R1", status="PENDING", seconds=0):
        lat, lon = point if point is not None else (None, None)
        return Order.new(
            restaurant_id,
            f"cust_{order_id}",
            lat,
            lon,
            order_id=order_id,
            placed_at=t0 + timedelta(minutes=minutes, seconds=seconds),
            status=status,
        )
    return _make


@pytest.fixture
def couriers():
    return CourierDirectory()


@pytest.fixture
def make_partner():
    def _make(partner_id, point=CITY_CENTRE, availability="AVAILABLE", **kwargs):
        lat, lon = point if point is not None else (None, None)
        return DeliveryPartner.new(partner_id, lat, lon, availability, **kwargs)
    return _make


@pytest.fixture
def deliveries():
    return DeliveryStore()


@pytest.fixture
def coordinator(deliveries, couriers, bus):
    return AssignmentCoordinator(deliveries, couriers, bus)
