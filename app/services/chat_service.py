"""Chat service: quota enforcement around one upstream completion call.

Flow for each request:
- Validate the message
- Resolve and hash the caller identity
- Ask the quota tracker for a decision (fail-open when the store is down)
- Build the upstream request and normalize the reply
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from app.adapters.llm.base import AbstractLLMClient
from app.core.config import DEFAULT_SYSTEM_PROMPT
from app.core.errors import QuotaExceededAppError, ValidationAppError
from app.core.identity import hash_identity, resolve_caller_identity
from app.schemas.chat import ChatRequest, ChatResponse, CompletionRequest
from app.services.quota_service import Denied, QuotaTracker, QuotaUnavailable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatOptions:
    """Defaults applied to upstream requests.

    Attributes:
        default_model: Model used when the request names none.
        default_system_prompt: System turn used when messages is not given.
        default_temperature: Temperature used when the request has no number.
        enforce_quota: Skip the quota tracker entirely when False.
        include_rate_limit_headers: Send Retry-After/X-RateLimit-* on 429.
    """

    default_model: str = "gpt-4o-mini"
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    default_temperature: float = 0.7
    enforce_quota: bool = True
    include_rate_limit_headers: bool = True


def build_completion_request(payload: ChatRequest, options: ChatOptions) -> CompletionRequest:
    """Build the upstream request for a validated chat payload.

    A non-empty ``messages`` list is forwarded verbatim. Otherwise a
    two-turn conversation (system prompt + user message) is synthesized.
    """
    model = payload.model or options.default_model
    temperature = (
        payload.temperature if payload.temperature is not None else options.default_temperature
    )

    if payload.messages:
        messages = payload.messages
    else:
        messages = [
            {
                "role": "system",
                "content": payload.system_prompt or options.default_system_prompt,
            },
            {"role": "user", "content": payload.message},
        ]

    return CompletionRequest(model=model, messages=messages, temperature=temperature)


def rate_limit_headers(decision: Denied) -> dict[str, str]:
    return {
        "Retry-After": str(decision.retry_after_seconds),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": str(int(decision.reset_at)),
    }


class ChatService:
    """Handles one chat request end to end.

    Attributes:
        llm: Upstream chat-completion client.
        quota: Per-caller quota tracker.
        options: Request defaults and quota switches.
    """

    def __init__(
        self,
        llm: AbstractLLMClient,
        quota: QuotaTracker,
        options: ChatOptions | None = None,
    ) -> None:
        self.llm = llm
        self.quota = quota
        self.options = options or ChatOptions()

    @staticmethod
    def _validate(payload: ChatRequest) -> None:
        if not payload.message.strip():
            raise ValidationAppError(
                code="message_required",
                message="message (non-empty string) is required",
            )

    async def _enforce_quota(self, subject: str) -> None:
        decision = await self.quota.consume(subject)

        if isinstance(decision, Denied):
            headers = rate_limit_headers(decision) if self.options.include_rate_limit_headers else {}
            raise QuotaExceededAppError(
                code="rate_limit_exceeded",
                message=decision.message,
                headers=headers,
            )

        if isinstance(decision, QuotaUnavailable):
            logger.debug(
                "chat.quota_skipped",
                extra={"key_hash": subject[:16], "reason": decision.reason},
            )

    async def chat(self, payload: ChatRequest, headers: Mapping[str, str]) -> ChatResponse:
        """Answer a chat request.

        Args:
            payload: Parsed request body.
            headers: Request headers, used for the client address fallback.

        Returns:
            ChatResponse with the trimmed reply, usage and model.

        Raises:
            ValidationAppError: If the message is missing or blank.
            QuotaExceededAppError: If the caller is over its quota.
            UpstreamAPIError: If the provider rejects the request.
            UpstreamUnavailableError: If the provider cannot be reached.
        """
        self._validate(payload)

        subject = hash_identity(resolve_caller_identity(payload.user_id, headers))

        if self.options.enforce_quota:
            await self._enforce_quota(subject)

        request = build_completion_request(payload, self.options)
        result = await self.llm.complete(request)

        usage: dict[str, Any] = result.usage or {}
        logger.info(
            "chat.completed",
            extra={
                "key_hash": subject[:16],
                "model": result.model,
                "turns": len(request.messages),
                "reply_chars": len(result.reply),
                "total_tokens": usage.get("total_tokens"),
            },
        )
        return ChatResponse(reply=result.reply, usage=result.usage, model=result.model)
