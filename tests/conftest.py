"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any app import so the global settings
object never reads a developer's local .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("QUOTA_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import AsyncMock, Mock

import pytest

from app.adapters.rate_limit.in_memory import InMemoryUsageStore
from app.schemas.chat import CompletionResult
from app.services.quota_service import QuotaPolicy, QuotaTracker

NOW = 1_700_000_000.0


@pytest.fixture
def now() -> float:
    return NOW


@pytest.fixture
def clock() -> Mock:
    """Controllable time source (UNIX seconds)."""
    return Mock(return_value=NOW)


@pytest.fixture
def store() -> InMemoryUsageStore:
    return InMemoryUsageStore()


@pytest.fixture
def tracker(store: InMemoryUsageStore, clock: Mock) -> QuotaTracker:
    return QuotaTracker(store, QuotaPolicy(), clock=clock)


@pytest.fixture
def llm() -> AsyncMock:
    """LLM client double returning a fixed completion."""
    client = AsyncMock()
    client.complete.return_value = CompletionResult(
        reply="Hello there!",
        usage={"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
        model="gpt-4o-mini-2024-07-18",
    )
    return client
