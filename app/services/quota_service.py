"""Per-caller quota tracking over an external usage store.

Each hashed caller identity owns one usage record. A record whose window has
passed is replaced by a fresh one (count 1) instead of being incremented.
Store failures never reject a request: the tracker reports
``QuotaUnavailable`` and the caller proceeds without enforcement.

Concurrent requests for the same identity race on the read-modify-write of
the record, so the count can drift by a few requests under load.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractUsageStore, UsageRecord
from app.core.config import ONE_WEEK_SECONDS

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class QuotaPolicy:
    """Quota parameters applied to every caller."""

    limit: int = 20
    window_seconds: int = ONE_WEEK_SECONDS

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


@dataclass(frozen=True)
class Allowed:
    """The request counts against the quota and may proceed."""

    record: UsageRecord
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.record.count)


@dataclass(frozen=True)
class Denied:
    """The caller has used up its quota for the current window."""

    limit: int
    reset_at: float
    retry_after_seconds: int

    @property
    def retry_after_days(self) -> int:
        return math.ceil(self.retry_after_seconds / SECONDS_PER_DAY)

    @property
    def message(self) -> str:
        return f"Rate limit exceeded. You can try again in {self.retry_after_days} day(s)."


@dataclass(frozen=True)
class QuotaUnavailable:
    """The usage store could not be used; enforcement was skipped."""

    reason: str


QuotaDecision = Allowed | Denied | QuotaUnavailable


def usage_key(subject: str) -> str:
    """Store key for a hashed caller identity."""
    return f"user-{subject}"


class QuotaTracker:
    """Decides whether a caller may make another request and records usage.

    Attributes:
        store: Usage store, or None when it could not be constructed.
        policy: Limit and window length.
    """

    def __init__(
        self,
        store: AbstractUsageStore | None,
        policy: QuotaPolicy | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.policy = policy or QuotaPolicy()
        self._clock = clock

    def _fresh_record(self, now: float) -> UsageRecord:
        return UsageRecord(count=1, reset_at=now + self.policy.window_seconds)

    def _unavailable(self, subject: str, operation: str, exc: Exception | None = None) -> QuotaUnavailable:
        logger.warning(
            "quota.store_unavailable",
            extra={
                "key_hash": subject[:16],
                "operation": operation,
                "error_type": type(exc).__name__ if exc else None,
                "error_msg": str(exc) if exc else None,
            },
        )
        return QuotaUnavailable(reason=f"{operation}_failed")

    async def consume(self, subject: str) -> QuotaDecision:
        """Check and record one request for a hashed caller identity.

        Args:
            subject: One-way hash of the caller identity.

        Returns:
            Allowed with the stored record, Denied with the wait estimate, or
            QuotaUnavailable when the store could not be read or written.
        """
        if self.store is None:
            return self._unavailable(subject, "init")

        key = usage_key(subject)
        try:
            record = await self.store.get(key)
        except Exception as exc:
            return self._unavailable(subject, "get", exc)

        now = self._clock()

        if record is not None and record.is_active(now):
            if record.count >= self.policy.limit:
                retry_after = max(1, math.ceil(record.reset_at - now))
                denied = Denied(
                    limit=self.policy.limit,
                    reset_at=record.reset_at,
                    retry_after_seconds=retry_after,
                )
                logger.warning(
                    "quota.denied",
                    extra={
                        "key_hash": subject[:16],
                        "limit": self.policy.limit,
                        "count": record.count,
                        "retry_after_s": retry_after,
                    },
                )
                return denied
            updated = UsageRecord(count=record.count + 1, reset_at=record.reset_at)
        else:
            updated = self._fresh_record(now)

        try:
            await self.store.set(key, updated)
        except Exception as exc:
            return self._unavailable(subject, "set", exc)

        logger.info(
            "quota.allowed",
            extra={
                "key_hash": subject[:16],
                "limit": self.policy.limit,
                "count": updated.count,
                "window_s": self.policy.window_seconds,
            },
        )
        return Allowed(record=updated, limit=self.policy.limit)

    async def close(self) -> None:
        """Release the usage store's backend resources."""
        if self.store is not None:
            await self.store.close()
