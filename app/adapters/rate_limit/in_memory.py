"""In-memory usage store.

Notes:
- Per-process only: running multiple workers multiplies the effective quota.
- Records are never evicted; expired windows are replaced by the tracker.
"""

from __future__ import annotations

import threading

from app.adapters.rate_limit.base import AbstractUsageStore, UsageRecord


class InMemoryUsageStore(AbstractUsageStore):
    """Usage store backed by a plain dict guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: dict[str, UsageRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    async def get(self, key: str) -> UsageRecord | None:
        with self._lock:
            return self._records.get(key)

    async def set(self, key: str, record: UsageRecord) -> None:
        if not key:
            raise ValueError("key must be a non-empty string")
        with self._lock:
            self._records[key] = record
