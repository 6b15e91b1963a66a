"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details returned to the client.
    """

    code: str
    message: str
    details: Any = None

    # HTTP status used by the exception handler for this error type
    status_code = 500

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails validation."""

    status_code = 400


class ConfigurationAppError(AppError):
    """Raised when the server is missing required configuration."""

    status_code = 500


@dataclass
class QuotaExceededAppError(AppError):
    """Raised when a caller has used up its quota for the current window."""

    headers: dict[str, str] = field(default_factory=dict)

    status_code = 429


@dataclass
class UpstreamAPIError(AppError):
    """Raised when the LLM provider answers with a non-2xx status."""

    upstream_status: int = 502

    def __post_init__(self) -> None:
        super().__post_init__()
        self.status_code = self.upstream_status


class UpstreamUnavailableError(AppError):
    """Raised when the LLM provider cannot be reached at all."""

    status_code = 502


class QuotaStoreError(Exception):
    """Raised by usage stores when the backing store cannot be used."""
