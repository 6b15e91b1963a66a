from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check.

    The process is healthy even when the chat path is unconfigured, so load
    balancers keep routing to it; ``chat`` tells operators which case applies.
    """
    ready = getattr(request.app.state, "chat_service", None) is not None
    return {"status": "ok", "chat": "ready" if ready else "unconfigured"}
