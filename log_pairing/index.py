"""Pending-match index: correlation id -> first record seen for that id.

Atomicity is per key. The id's hash selects one lock from a fixed set of
stripes, and the whole check-and-act for that id runs under it, so two
occurrences of the same id can never both observe "absent". Operations that
need a consistent view of every key acquire all stripes in index order.
"""

import logging
import threading
import time
from contextlib import contextmanager

from log_pairing.models import PendingEntry, Record

logger = logging.getLogger(__name__)

DEFAULT_STRIPES = 16


class PendingMatchIndex:
    """Concurrent map with an atomic insert-if-absent-else-remove primitive."""

    def __init__(self, stripes: int = DEFAULT_STRIPES, clock=time.monotonic):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._entries: dict[str, PendingEntry] = {}
        self._clock = clock

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    @contextmanager
    def _all_locks(self):
        for lock in self._locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(self._locks):
                lock.release()

    def check_and_insert_or_remove(self, key: str, record: Record) -> Record | None:
        """Insert *record* if *key* is absent and return None; otherwise
        remove the stored record and return it. The caller then owns both
        halves of the pair.
        """
        with self._lock_for(key):
            entry = self._entries.pop(key, None)
            if entry is not None:
                return entry.record
            self._entries[key] = PendingEntry(record=record, inserted_at=self._clock())
            return None

    def get(self, key: str) -> Record | None:
        with self._lock_for(key):
            entry = self._entries.get(key)
        return entry.record if entry else None

    def size(self) -> int:
        with self._all_locks():
            return len(self._entries)

    def is_empty(self) -> bool:
        return self.size() == 0

    def snapshot(self) -> list[PendingEntry]:
        """Consistent copy of every pending entry, oldest first."""
        with self._all_locks():
            return list(self._entries.values())

    def evict(self, max_pending: int | None = None, max_age: float | None = None,
              now: float | None = None) -> list[PendingEntry]:
        """Drop orphans beyond an optional age and/or count bound.

        Entries older than *max_age* seconds go first, then the oldest
        remaining entries until at most *max_pending* are left. With both
        bounds unset nothing is evicted. Returns the evicted entries.
        """
        if max_pending is None and max_age is None:
            return []

        evicted: list[PendingEntry] = []
        with self._all_locks():
            if max_age is not None:
                cutoff = (self._clock() if now is None else now) - max_age
                stale = [k for k, e in self._entries.items() if e.inserted_at <= cutoff]
                for key in stale:
                    evicted.append(self._entries.pop(key))
            if max_pending is not None:
                overflow = len(self._entries) - max_pending
                if overflow > 0:
                    # dicts keep insertion order, so the first keys are the oldest
                    for key in list(self._entries)[:overflow]:
                        evicted.append(self._entries.pop(key))

        for entry in evicted:
            logger.warning("Evicted unmatched record id=%s host=%s timestamp=%d",
                           entry.record.id, entry.record.host, entry.record.timestamp)
        return evicted
