from fastapi import APIRouter, Depends, Request, Response

from app.core.errors import ConfigurationAppError
from app.core.middleware import cors_headers
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.chat_service import ChatService

router = APIRouter(tags=["Chat"])


def get_chat_service(request: Request) -> ChatService:
    """Return the chat service built at startup.

    Raises:
        ConfigurationAppError: If the service could not be built (e.g. the
            provider API key is missing).
    """
    service: ChatService | None = getattr(request.app.state, "chat_service", None)
    if service is None:
        cause: ConfigurationAppError | None = getattr(request.app.state, "chat_config_error", None)
        raise ConfigurationAppError(
            code=cause.code if cause else "chat_not_configured",
            message=cause.message if cause else "Chat service is not configured",
        )
    return service


@router.options("/chat", include_in_schema=False)
async def chat_preflight() -> Response:
    """Answer CORS preflight requests with an empty 200."""
    return Response(status_code=200, headers=cors_headers())


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    request: Request,
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """Forward a user message to the LLM provider and return its reply.

    Requests count against a weekly per-caller quota keyed by ``userId`` or
    the client address reported by the proxy.

    Returns:
        ChatResponse: Reply text with usage and model metadata.
    """
    return await service.chat(payload, request.headers)
