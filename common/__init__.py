"""
Shared building blocks: error taxonomy, versioned store, keyed locks, ticker.

Settings live in `common.settings` and are imported explicitly, since they
depend on the domain policies.
"""
from .exceptions import (
    CapacityExceeded,
    ConcurrentUpdateError,
    DispatchError,
    DuplicateAssignment,
    InvalidStateTransition,
    NotFoundError,
)
from .locks import KeyedLocks
from .store import VersionedStore
from .ticker import Ticker

__all__ = [
    "CapacityExceeded",
    "ConcurrentUpdateError",
    "DispatchError",
    "DuplicateAssignment",
    "InvalidStateTransition",
    "NotFoundError",
    "KeyedLocks",
    "VersionedStore",
    "Ticker",
]
