"""Usage store interfaces.

The quota tracker depends on this abstraction (not the concrete backend) so
the per-process store used in development can be swapped for a shared one
(e.g., Redis) without touching the service layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class UsageRecord(BaseModel):
    """Quota usage of one hashed caller identity.

    Attributes:
        count: Requests made in the current window.
        reset_at: UNIX epoch seconds when the current window expires.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    count: int = Field(..., ge=0)
    reset_at: float = Field(..., alias="resetAt")

    def is_active(self, now: float) -> bool:
        """Whether the window is still running at ``now``."""
        return now < self.reset_at

    def to_json(self) -> str:
        """Serialize as ``{"count": n, "resetAt": <epoch ms>}``."""
        return UsageRecordWire(count=self.count, resetAt=int(self.reset_at * 1000)).model_dump_json()

    @classmethod
    def from_json(cls, raw: str | bytes) -> "UsageRecord":
        wire = UsageRecordWire.model_validate_json(raw)
        return cls(count=wire.count, reset_at=wire.resetAt / 1000)


class UsageRecordWire(BaseModel):
    """Stored JSON shape of a usage record (reset time in milliseconds)."""

    count: int
    resetAt: int


class AbstractUsageStore(ABC):
    """Interface for key-value stores holding usage records.

    Implementations raise ``QuotaStoreError`` when the backend cannot be read
    or written. No transactional guarantees are required.
    """

    @abstractmethod
    async def get(self, key: str) -> UsageRecord | None:
        """Fetch the record stored under ``key``, or None if there is none."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, record: UsageRecord) -> None:
        """Store ``record`` under ``key``, replacing any previous value."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
        return None
