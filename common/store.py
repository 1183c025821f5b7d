"""
Purpose: Arena-style in-memory record store with per-record compare-and-set.

What it does:
- Holds frozen dataclass records keyed by their `id`.
- Every record carries a `version`; writes only succeed against the version
  the writer read (optimistic concurrency), which is how a document store's
  conditional update behaves.
- `update()` wraps the read-modify-CAS loop. Mutators are pure functions that
  return a new record or raise to abort; an abort never writes anything.

Rule: No business rules here. Directories subclass this and add queries.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .exceptions import ConcurrentUpdateError, NotFoundError

T = TypeVar("T")


class VersionedStore(Generic[T]):
    """
    Thread-safe store of immutable records.

    The internal lock only guards the dictionary itself; callers never hold it
    while running business logic.
    """

    def __init__(self, kind: str, *, max_retries: int = 5):
        self.kind = kind
        self.max_retries = max_retries
        self._records: Dict[str, T] = {}
        self._lock = threading.RLock()

    def insert(self, record: T) -> T:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"{self.kind} {record.id} already exists")
            stored = replace(record, version=0)
            self._records[record.id] = stored
            return stored

    def get(self, entity_id: str) -> T:
        record = self.find(entity_id)
        if record is None:
            raise NotFoundError(self.kind, entity_id)
        return record

    def find(self, entity_id: str) -> Optional[T]:
        with self._lock:
            return self._records.get(entity_id)

    def values(self) -> List[T]:
        with self._lock:
            return list(self._records.values())

    def select(self, predicate: Callable[[T], bool]) -> List[T]:
        return [record for record in self.values() if predicate(record)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, entity_id: str) -> bool:
        with self._lock:
            return entity_id in self._records

    def compare_and_set(self, expected: T, updated: T) -> Optional[T]:
        """
        Store `updated` only if the current record still has `expected.version`.
        Returns the stored record (with bumped version) or None on conflict.
        """
        with self._lock:
            current = self._records.get(expected.id)
            if current is None:
                raise NotFoundError(self.kind, expected.id)
            if current.version != expected.version:
                return None
            stored = replace(updated, version=expected.version + 1)
            self._records[expected.id] = stored
            return stored

    def compare_and_set_many(self, pairs: Sequence[Tuple[T, T]]) -> Optional[List[T]]:
        """
        All-or-nothing variant of compare_and_set across several records.
        """
        with self._lock:
            for expected, _ in pairs:
                current = self._records.get(expected.id)
                if current is None:
                    raise NotFoundError(self.kind, expected.id)
                if current.version != expected.version:
                    return None

            stored: List[T] = []
            for expected, updated in pairs:
                record = replace(updated, version=expected.version + 1)
                self._records[expected.id] = record
                stored.append(record)
            return stored

    def update(self, entity_id: str, mutate: Callable[[T], T]) -> T:
        """
        Read-modify-CAS loop. `mutate` is re-run against fresh state after every
        conflict so its validation always sees the latest record.
        """
        for _ in range(self.max_retries):
            current = self.get(entity_id)
            updated = mutate(current)
            stored = self.compare_and_set(current, updated)
            if stored is not None:
                return stored
        raise ConcurrentUpdateError(self.kind, entity_id, self.max_retries)

    def get_many(self, entity_ids: Iterable[str]) -> List[T]:
        return [self.get(entity_id) for entity_id in entity_ids]
