"""OpenAI chat-completions client adapter."""

import logging
from typing import Any, Mapping

import openai
from openai import AsyncOpenAI

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import UpstreamAPIError, UpstreamUnavailableError
from app.schemas.chat import CompletionRequest, CompletionResult

logger = logging.getLogger(__name__)

GENERIC_UPSTREAM_ERROR = "Upstream LLM API error"
UNREACHABLE_MESSAGE = "Failed to reach the LLM provider. Please try again later."


def upstream_error_message(body: Any) -> str:
    """Pick the provider's own error message out of an error payload.

    The SDK hands over either the parsed ``error`` object, the whole JSON
    body, the raw response text, or None.
    """
    if isinstance(body, Mapping):
        nested = body.get("error")
        if isinstance(nested, Mapping):
            body = nested
        elif isinstance(nested, str) and nested.strip():
            return nested.strip()
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return GENERIC_UPSTREAM_ERROR


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI-compatible chat completions.

    Uses the official OpenAI Python SDK with async support. SDK retries are
    disabled; a failed call is reported to the caller as-is.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: OpenAI API key for authentication.
            model: Default model name (e.g., "gpt-4o-mini").
            base_url: Optional custom base URL for an OpenAI-compatible API.
            timeout_seconds: Timeout for requests in seconds.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        try:
            response = await self.client.chat.completions.create(
                model=request.model,
                messages=request.messages,
                temperature=request.temperature,
            )
        except openai.APIStatusError as exc:
            logger.error(
                "llm.upstream_error",
                extra={
                    "model": request.model,
                    "upstream_status": exc.status_code,
                    "upstream_body": exc.body,
                },
            )
            raise UpstreamAPIError(
                code="upstream_api_error",
                message=upstream_error_message(exc.body),
                details=exc.body,
                upstream_status=exc.status_code,
            ) from exc
        except openai.APIConnectionError as exc:
            logger.error(
                "llm.unreachable",
                extra={"model": request.model, "error_type": type(exc).__name__},
            )
            raise UpstreamUnavailableError(
                code="upstream_unreachable",
                message=UNREACHABLE_MESSAGE,
            ) from exc

        content = None
        if response.choices:
            content = response.choices[0].message.content

        usage = response.usage.model_dump() if response.usage is not None else None
        return CompletionResult(
            reply=(content or "").strip(),
            usage=usage,
            model=response.model,
        )
