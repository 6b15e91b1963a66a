"""Application factory for the FastAPI app.

Builds the service graph from explicit settings (LLM client, usage store,
quota tracker, chat service), then wires middleware, handlers and routers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.llm.factory import create_llm_client
from app.adapters.rate_limit.base import AbstractUsageStore
from app.adapters.rate_limit.factory import create_usage_store
from app.api.routes import chat_router, health_router
from app.core.config import Settings, settings as default_settings
from app.core.errors import ConfigurationAppError
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import cors_headers_middleware, request_id_middleware
from app.services.chat_service import ChatOptions, ChatService
from app.services.quota_service import QuotaPolicy, QuotaTracker

logger = logging.getLogger(__name__)


def build_quota_tracker(cfg: Settings) -> QuotaTracker:
    """Build the quota tracker; a broken store disables enforcement only."""
    store: AbstractUsageStore | None
    try:
        store = create_usage_store(cfg.quota)
    except Exception as exc:
        logger.warning(
            "quota.store_init_failed",
            extra={
                "backend": cfg.quota.backend,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        store = None

    policy = QuotaPolicy(limit=cfg.quota.limit, window_seconds=cfg.quota.window_seconds)
    return QuotaTracker(store, policy)


def build_chat_service(cfg: Settings) -> ChatService:
    """Build the chat service from settings.

    Raises:
        ConfigurationAppError: If the LLM provider is misconfigured.
    """
    llm = create_llm_client(cfg.llm)
    options = ChatOptions(
        default_model=cfg.llm.model,
        default_system_prompt=cfg.chat.default_system_prompt,
        default_temperature=cfg.chat.default_temperature,
        enforce_quota=cfg.quota.enabled,
        include_rate_limit_headers=cfg.quota.include_headers,
    )
    return ChatService(llm=llm, quota=build_quota_tracker(cfg), options=options)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Close the usage store on shutdown."""
    yield
    service = app.state.chat_service
    if service is not None:
        await service.quota.close()


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    A missing provider credential does not stop the app from starting:
    health checks keep working and every chat request answers 500.

    Args:
        cfg: Settings to build from; defaults to the global settings.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    cfg = cfg or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Chat Proxy API",
        description=(
            "Forwards chat messages to an OpenAI-compatible completion API "
            "with a weekly per-caller quota."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.chat_service = None
    app.state.chat_config_error = None
    try:
        app.state.chat_service = build_chat_service(cfg)
    except ConfigurationAppError as exc:
        logger.error(
            "chat.disabled",
            extra={"error_code": exc.code, "error_message": exc.message},
        )
        app.state.chat_config_error = exc

    # Middleware (last added runs first)
    app.middleware("http")(cors_headers_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(chat_router)
    app.include_router(health_router)

    return app
