import json
import logging

import pytest
import requests

from messaging import (
    DELIVERY_ASSIGNED,
    MERGE_COMPLETED,
    EventBusError,
    InMemoryMessageBus,
    RestProxyMessageBus,
    delivery_event,
    merge_completed_event,
    publish_safely,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {"offsets": [{"partition": 0, "offset": 1}]})
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def test_event_payloads(t0):
    merged = merge_completed_event(
        merge_group_id="g1",
        order_ids=("a", "b"),
        restaurant_id="R1",
        efficiency_score=0.84321,
        estimated_time_savings=12,
        now=t0,
    )
    assert merged["eventType"] == "ORDERS_MERGED"
    assert merged["orderCount"] == 2
    assert merged["efficiencyScore"] == 0.8432
    assert merged["timestamp"] == t0.isoformat()

    cancelled = delivery_event(
        "DELIVERY_CANCELLED", delivery_id="d1", order_id="o1", partner_id=None, status="CANCELLED", reason="late", now=t0
    )
    assert cancelled["reason"] == "late"
    assert cancelled["partnerId"] is None
    assert "reason" not in delivery_event("X", delivery_id="d1", order_id="o1", partner_id="p", status="ASSIGNED")


def test_in_memory_bus_records_events():
    bus = InMemoryMessageBus()
    assert bus.publish(MERGE_COMPLETED, {"eventType": "ORDERS_MERGED"}) is None
    bus.publish(DELIVERY_ASSIGNED, {"eventType": "DELIVERY_ASSIGNED"})

    assert len(bus.published) == 2
    assert bus.events_for(DELIVERY_ASSIGNED) == [{"eventType": "DELIVERY_ASSIGNED"}]

    bus.clear()
    assert bus.published == []


def test_publish_safely_swallows_and_logs_failures(caplog):
    bus = InMemoryMessageBus(fail_when=lambda topic, event: topic == MERGE_COMPLETED)

    with caplog.at_level(logging.ERROR):
        assert publish_safely(bus, MERGE_COMPLETED, {"eventType": "ORDERS_MERGED"}) is False
    assert "ORDERS_MERGED" in caplog.text

    assert publish_safely(bus, DELIVERY_ASSIGNED, {"eventType": "DELIVERY_ASSIGNED"}) is True
    assert publish_safely(None, DELIVERY_ASSIGNED, {}) is False


def test_rest_proxy_posts_record_envelope():
    session = FakeSession()
    bus = RestProxyMessageBus("http://proxy:8082/", timeout=2, session=session)

    reply = bus.send(DELIVERY_ASSIGNED, {"eventType": "DELIVERY_ASSIGNED", "deliveryId": "d1"})

    assert reply == {"offsets": [{"partition": 0, "offset": 1}]}
    [call] = session.calls
    assert call["url"] == "http://proxy:8082/topics/delivery-assigned"
    assert call["timeout"] == 2
    assert call["headers"]["Content-Type"] == "application/vnd.kafka.json.v2+json"
    body = json.loads(call["data"])
    assert body == {"records": [{"key": "d1", "value": {"eventType": "DELIVERY_ASSIGNED", "deliveryId": "d1"}}]}


def test_rest_proxy_raises_on_http_errors():
    bus = RestProxyMessageBus("http://proxy", session=FakeSession(FakeResponse(500, text="boom")))
    with pytest.raises(EventBusError):
        bus.send(MERGE_COMPLETED, {"mergeGroupId": "g1"})

    down = RestProxyMessageBus("http://proxy", session=FakeSession(error=requests.ConnectionError("refused")))
    with pytest.raises(EventBusError):
        down.send(MERGE_COMPLETED, {"mergeGroupId": "g1"})


def test_rest_proxy_publish_never_raises(caplog):
    session = FakeSession(error=requests.Timeout("slow"))
    bus = RestProxyMessageBus("http://proxy", session=session)

    with caplog.at_level(logging.ERROR):
        future = bus.publish(MERGE_COMPLETED, {"eventType": "ORDERS_MERGED"})
        bus.close()

    assert isinstance(future.exception(), EventBusError)
    assert session.closed
    assert "Failed to publish ORDERS_MERGED" in caplog.text


def test_empty_reply_body_is_fine():
    bus = RestProxyMessageBus("http://proxy", session=FakeSession(FakeResponse(204)))
    assert bus.send(MERGE_COMPLETED, {}) == {}


def test_rest_proxy_requires_a_url(monkeypatch):
    monkeypatch.setattr("messaging.rest_proxy.EVENT_BUS_URL", None)
    with pytest.raises(ValueError):
        RestProxyMessageBus(session=FakeSession())
