"""Pydantic schemas for the chat endpoint and upstream completion calls."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRequest(BaseModel):
    """Inbound chat request body.

    Loosely typed optional fields fall back to their defaults instead of
    failing validation, so clients sending e.g. ``"temperature": "hot"`` still
    get a reply.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(
        "",
        description="User message (required, non-empty after trimming).",
    )
    messages: list[Any] | None = Field(
        None,
        description="Full conversation to forward verbatim instead of message.",
    )
    model: str | None = Field(
        None,
        description="Model name; defaults to the server's configured model.",
    )
    system_prompt: str | None = Field(
        None,
        alias="systemPrompt",
        description="System prompt used when messages is not provided.",
    )
    temperature: float | None = Field(
        None,
        description="Sampling temperature; defaults to 0.7.",
    )
    user_id: str | None = Field(
        None,
        alias="userId",
        description="Caller identifier used for the per-caller quota.",
    )

    @field_validator("message", mode="before")
    @classmethod
    def _message_must_be_string(cls, value: Any) -> Any:
        return value if isinstance(value, str) else ""

    @field_validator("messages", mode="before")
    @classmethod
    def _messages_must_be_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None

    @field_validator("temperature", mode="before")
    @classmethod
    def _temperature_must_be_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    @field_validator("model", "system_prompt", mode="before")
    @classmethod
    def _drop_empty_strings(cls, value: Any) -> Any:
        # Any non-empty string is used as given, whitespace included
        return value if isinstance(value, str) and value else None

    @field_validator("user_id", mode="before")
    @classmethod
    def _drop_blank_user_id(cls, value: Any) -> Any:
        if not isinstance(value, str) or not value.strip():
            return None
        return value


class ChatResponse(BaseModel):
    """Successful chat reply."""

    reply: str = Field(..., description="Trimmed assistant reply ('' when the model returned none).")
    usage: dict[str, Any] | None = Field(None, description="Token usage reported by the provider.")
    model: str | None = Field(None, description="Model that produced the reply.")


class CompletionRequest(BaseModel):
    """Request sent to the upstream chat-completions API."""

    model: str
    messages: list[Any]
    temperature: float


class CompletionResult(BaseModel):
    """Normalized upstream completion."""

    reply: str
    usage: dict[str, Any] | None = None
    model: str | None = None
