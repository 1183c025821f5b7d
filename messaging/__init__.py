"""
Messaging package: fire-and-forget event publishing.

Public API:
- MessageBus, InMemoryMessageBus, publish_safely
- RestProxyMessageBus (HTTP transport)
- topic names + event builders
"""
from .bus import InMemoryMessageBus, MessageBus, publish_safely
from .events import (
    DELIVERY_ASSIGNED,
    DELIVERY_CANCELLED,
    DELIVERY_COMPLETED,
    DELIVERY_STATUS_UPDATED,
    MERGE_COMPLETED,
    delivery_event,
    merge_completed_event,
)
from .rest_proxy import EventBusError, RestProxyMessageBus

__all__ = [
    "MessageBus",
    "InMemoryMessageBus",
    "publish_safely",
    "RestProxyMessageBus",
    "EventBusError",
    "MERGE_COMPLETED",
    "DELIVERY_ASSIGNED",
    "DELIVERY_COMPLETED",
    "DELIVERY_CANCELLED",
    "DELIVERY_STATUS_UPDATED",
    "merge_completed_event",
    "delivery_event",
]
