"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request) -> dict:
    """Return API health and the number of live real-time subscribers."""
    registry = request.app.state.registry
    return {"status": "ok", "subscribers": registry.total_subscribers}
