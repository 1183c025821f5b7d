from dataclasses import replace
from datetime import timedelta

import pytest

from common.exceptions import InvalidStateTransition
from dispatch.models import Delivery, DeliveryStatus
from dispatch.state_machines.delivery_state import (
    ALLOWED_TRANSITIONS,
    assign_partner,
    can_transition,
    record_location,
    transition_delivery,
)

from .helpers import CITY_CENTRE, offset

S = DeliveryStatus

EXPECTED = {
    (S.PENDING, S.ASSIGNED), (S.PENDING, S.CANCELLED),
    (S.ASSIGNED, S.ACCEPTED), (S.ASSIGNED, S.CANCELLED),
    (S.ACCEPTED, S.PICKED_UP), (S.ACCEPTED, S.CANCELLED),
    (S.PICKED_UP, S.IN_TRANSIT), (S.PICKED_UP, S.CANCELLED), (S.PICKED_UP, S.FAILED),
    (S.IN_TRANSIT, S.DELIVERED), (S.IN_TRANSIT, S.FAILED), (S.IN_TRANSIT, S.RETURNED),
}


@pytest.fixture
def delivery(t0):
    return Delivery.new("o1", CITY_CENTRE, offset(CITY_CENTRE, north_km=3), delivery_id="d1", now=t0)


def test_transition_table_is_exactly_the_allowed_set():
    allowed = {(a, b) for a in S for b in S if can_transition(a, b)}
    assert allowed == EXPECTED
    assert set(ALLOWED_TRANSITIONS) == set(S)


@pytest.mark.parametrize("terminal", [S.DELIVERED, S.CANCELLED, S.FAILED, S.RETURNED])
def test_terminal_statuses_have_no_way_out(delivery, terminal):
    finished = replace(delivery, status=terminal)
    assert terminal.is_terminal
    for target in S:
        with pytest.raises(InvalidStateTransition):
            transition_delivery(finished, target)


def test_pending_cannot_jump_to_delivered(delivery):
    with pytest.raises(InvalidStateTransition):
        transition_delivery(delivery, S.DELIVERED)
    assert delivery.status == S.PENDING


def test_transition_appends_tracking_and_stamps_time(delivery, t0):
    assigned = assign_partner(delivery, "p1", now=t0 + timedelta(minutes=1))
    accepted = transition_delivery(assigned, S.ACCEPTED, now=t0 + timedelta(minutes=2), location=CITY_CENTRE)

    assert assigned.partner_id == "p1"
    assert assigned.assigned_at == t0 + timedelta(minutes=1)
    assert accepted.accepted_at == t0 + timedelta(minutes=2)
    assert [e.status for e in accepted.tracking] == [S.PENDING, S.ASSIGNED, S.ACCEPTED]
    assert accepted.last_known_location == CITY_CENTRE
    # the original record is untouched
    assert delivery.status == S.PENDING
    assert len(delivery.tracking) == 1


def test_cancellation_keeps_the_reason(delivery, t0):
    cancelled = transition_delivery(delivery, S.CANCELLED, now=t0, reason="customer changed mind")
    assert cancelled.cancelled_at == t0
    assert cancelled.cancellation_reason == "customer changed mind"


def test_failure_stamps_cancellation_time(delivery, t0):
    picked_up = replace(delivery, status=S.PICKED_UP, partner_id="p1")
    failed = transition_delivery(picked_up, S.FAILED, now=t0, reason="address not found")
    assert failed.cancelled_at == t0
    assert failed.cancellation_reason == "address not found"


def test_only_pending_deliveries_can_be_assigned(delivery):
    assigned = assign_partner(delivery, "p1")
    with pytest.raises(InvalidStateTransition):
        assign_partner(assigned, "p2")


def test_location_updates_are_refused_once_finished(delivery):
    tracked = record_location(delivery, (1.0, 2.0))
    assert tracked.status == S.PENDING
    assert tracked.last_known_location == (1.0, 2.0)

    cancelled = transition_delivery(delivery, S.CANCELLED)
    with pytest.raises(InvalidStateTransition):
        record_location(cancelled, (1.0, 2.0))
