"""Redis-backed usage store shared by every worker and instance."""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from app.adapters.rate_limit.base import AbstractUsageStore, UsageRecord
from app.core.errors import QuotaStoreError

logger = logging.getLogger(__name__)


class RedisUsageStore(AbstractUsageStore):
    """Stores usage records as JSON strings under ``<namespace>:<key>``.

    Records are written without a TTL; an expired window is replaced by the
    next request rather than deleted.
    """

    def __init__(self, client: aioredis.Redis, *, namespace: str) -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, *, namespace: str) -> "RedisUsageStore":
        """Build a store from a ``redis://`` URL (connects lazily)."""
        return cls(aioredis.from_url(url), namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> UsageRecord | None:
        try:
            raw = await self._client.get(self._key(key))
        except RedisError as exc:
            raise QuotaStoreError(f"redis get failed: {exc}") from exc

        if raw is None:
            return None

        try:
            return UsageRecord.from_json(raw)
        except ValidationError as exc:
            # Unreadable records are treated as missing so the next write replaces them
            logger.warning(
                "quota.record_unreadable",
                extra={"key_hash": key.removeprefix("user-")[:16], "error_count": exc.error_count()},
            )
            return None

    async def set(self, key: str, record: UsageRecord) -> None:
        try:
            await self._client.set(self._key(key), record.to_json())
        except RedisError as exc:
            raise QuotaStoreError(f"redis set failed: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()
