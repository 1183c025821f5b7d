"""
Couriers domain package.

Public API:
- DeliveryPartner, PartnerAvailability
- CourierDirectory
- find_partners_near, rank_partners
- AssignmentPolicy
"""

from .directory import CourierDirectory
from .models import DeliveryPartner, PartnerAvailability
from .policy import AssignmentPolicy, default_assignment_policy
from .selection import filter_assignable, find_partners_near, rank_partners

__all__ = [
    "DeliveryPartner",
    "PartnerAvailability",
    "CourierDirectory",
    "AssignmentPolicy",
    "default_assignment_policy",
    "find_partners_near",
    "rank_partners",
    "filter_assignable",
]
