#Expose the high-level dispatch pieces:
#Delivery models + state machine
#AssignmentCoordinator (assignment protocol)
#DispatchService (the "one call" entry point for every public operation)

from .coordinator import AssignmentCoordinator
from .models import Delivery, DeliveryStatus, TrackingEntry
from .service import DispatchService
from .state_machines.delivery_state import ALLOWED_TRANSITIONS, can_transition
from .store import DeliveryStore

__all__ = [
    "Delivery",
    "DeliveryStatus",
    "TrackingEntry",
    "DeliveryStore",
    "AssignmentCoordinator",
    "DispatchService",
    "ALLOWED_TRANSITIONS",
    "can_transition",
]
