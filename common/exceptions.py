"""
Purpose: Error taxonomy shared by the orders, couriers and dispatch packages.

Every mutation validates before it writes, so raising one of these means the
referenced entity was left untouched.

"No eligible couriers" and "malformed geography" are deliberately NOT here:
they surface as empty results / infinite distances instead of exceptions.
"""

from __future__ import annotations

from typing import Any


class DispatchError(Exception):
    """Base class for all domain errors raised by the engine."""
    pass


class NotFoundError(DispatchError):
    """Raised when a referenced order, delivery or courier id does not exist."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class InvalidStateTransition(DispatchError):
    """Raised when a status change is not in the allowed transition table."""

    def __init__(self, entity_id: str, current: Any, requested: Any, detail: str = ""):
        self.entity_id = entity_id
        self.current = current
        self.requested = requested
        message = f"Invalid status transition for {entity_id}: {_name(current)} -> {_name(requested)}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CapacityExceeded(DispatchError):
    """Raised when a courier has no spare assignment slots."""

    def __init__(self, partner_id: str, max_concurrent_orders: int):
        self.partner_id = partner_id
        self.max_concurrent_orders = max_concurrent_orders
        super().__init__(
            f"Partner {partner_id} has reached maximum order capacity ({max_concurrent_orders})"
        )


class DuplicateAssignment(DispatchError):
    """Raised when an order already has a live delivery or is already on a courier's list."""

    def __init__(self, order_id: str, detail: str = ""):
        self.order_id = order_id
        message = f"Order {order_id} already has an active assignment"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ConcurrentUpdateError(DispatchError):
    """Raised when a compare-and-set loop keeps losing to concurrent writers."""

    def __init__(self, kind: str, entity_id: str, attempts: int):
        self.kind = kind
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(f"Gave up updating {kind} {entity_id} after {attempts} conflicting attempts")


def _name(value: Any) -> str:
    return getattr(value, "value", value)
