"""Usage store adapters.

This package provides a small abstraction layer so the service can start with
an in-memory store and move to Redis or another shared store without
changing the quota logic.
"""

from app.adapters.rate_limit.base import AbstractUsageStore, UsageRecord
from app.adapters.rate_limit.factory import create_usage_store
from app.adapters.rate_limit.in_memory import InMemoryUsageStore
from app.adapters.rate_limit.redis_store import RedisUsageStore

__all__ = [
    "AbstractUsageStore",
    "InMemoryUsageStore",
    "RedisUsageStore",
    "UsageRecord",
    "create_usage_store",
]
