"""
Orders domain package.

Public API:
- Domain models: Order, OrderStatus, MergeRecord
- OrderDirectory (pending pool + merge persistence)
- MergeSweeper (periodic / fire-and-forget merging)

Merging itself lives in orders.merging.
"""
from .directory import OrderDirectory
from .models import MergeRecord, Order, OrderStatus
from .sweep import MergeSweeper

__all__ = ["Order",
           "OrderStatus",
           "MergeRecord",
           "OrderDirectory",
           "MergeSweeper",
           ]
