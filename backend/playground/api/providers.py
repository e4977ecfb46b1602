"""Provider listing endpoint."""

from typing import Any

from fastapi import APIRouter, Request

from playground.auth import RequireCaller

router = APIRouter(tags=["providers"])


@router.get("/providers")
async def list_providers_route(request: Request, _caller_id: RequireCaller) -> dict[str, Any]:
    """Configured providers with pricing and context window size."""
    registry = request.app.state.provider_registry
    return {"providers": registry.list_providers()}
