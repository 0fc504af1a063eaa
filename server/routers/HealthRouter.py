import os

from fastapi import APIRouter, Request

from server.models.responses import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> HealthResponse:
    """Liveness check. Reports which remote clients are configured, no auth required."""
    state = request.app.state
    return HealthResponse(
        status="ok",
        version=os.getenv("APP_VERSION", "unknown"),
        embed=getattr(state, "embed_client", None) is not None,
        index=getattr(state, "index_client", None) is not None,
        llm=getattr(state, "llm_client", None) is not None,
    )
