"""
Purpose: Topic names and event payload builders.

Every event is a plain JSON-serialisable dict carrying at least:
- eventType
- the ids involved
- the resulting status
- timestamp (ISO-8601, UTC)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

MERGE_COMPLETED = "merge-completed"
DELIVERY_ASSIGNED = "delivery-assigned"
DELIVERY_COMPLETED = "delivery-completed"
DELIVERY_CANCELLED = "delivery-cancelled"
DELIVERY_STATUS_UPDATED = "delivery-status-updated"

Event = Dict[str, Any]


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def _status(value: Any) -> Any:
    return getattr(value, "value", value)


def merge_completed_event(
    *,
    merge_group_id: str,
    order_ids: Sequence[str],
    restaurant_id: str,
    efficiency_score: float,
    estimated_time_savings: int,
    now: Optional[datetime] = None,
) -> Event:
    return {
        "eventType": "ORDERS_MERGED",
        "mergeGroupId": merge_group_id,
        "orderIds": list(order_ids),
        "orderCount": len(order_ids),
        "restaurantId": restaurant_id,
        "efficiencyScore": round(efficiency_score, 4),
        "estimatedTimeSavings": estimated_time_savings,
        "status": "MERGED",
        "timestamp": _timestamp(now),
    }


def delivery_event(
    event_type: str,
    *,
    delivery_id: Optional[str],
    order_id: str,
    partner_id: Optional[str],
    status: Any,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Event:
    event: Event = {
        "eventType": event_type,
        "deliveryId": delivery_id,
        "orderId": order_id,
        "partnerId": partner_id,
        "status": _status(status),
        "timestamp": _timestamp(now),
    }
    if reason is not None:
        event["reason"] = reason
    return event
