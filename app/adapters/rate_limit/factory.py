"""Factory for creating usage store instances."""

from app.adapters.rate_limit.base import AbstractUsageStore
from app.adapters.rate_limit.in_memory import InMemoryUsageStore
from app.adapters.rate_limit.redis_store import RedisUsageStore
from app.core.config import QuotaSettings
from app.core.errors import QuotaStoreError


def create_usage_store(quota_settings: QuotaSettings) -> AbstractUsageStore:
    """Instantiate the usage store named by ``QUOTA_BACKEND``.

    Args:
        quota_settings: Resolved quota configuration.

    Returns:
        AbstractUsageStore: Configured store instance.

    Raises:
        QuotaStoreError: If the backend is unknown or misconfigured.
    """
    backend = quota_settings.backend.lower()

    if backend == "memory":
        return InMemoryUsageStore()

    if backend == "redis":
        if not quota_settings.redis_url:
            raise QuotaStoreError("redis backend requires QUOTA_REDIS_URL")
        try:
            return RedisUsageStore.from_url(
                quota_settings.redis_url,
                namespace=quota_settings.namespace,
            )
        except ValueError as exc:
            raise QuotaStoreError(f"invalid QUOTA_REDIS_URL: {exc}") from exc

    raise QuotaStoreError(
        f"Unknown quota backend: '{backend}'. Supported backends: memory, redis"
    )
