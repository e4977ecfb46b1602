"""
Health check endpoints.

Provides liveness and readiness probes plus a metrics snapshot.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from playground import __version__
from playground.config import get_settings
from playground.core.metrics import metrics
from playground.db import verify_database_connection

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/healthz")
async def healthcheck() -> dict[str, Any]:
    """Liveness probe."""
    settings = get_settings()

    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
        "debug": settings.debug,
    }


@router.get("/readyz")
async def readiness(request: Request) -> JSONResponse:
    """
    Readiness check endpoint.

    Checks that the database answers and that providers are configured.
    """
    engine = getattr(request.app.state, "engine", None)
    registry = getattr(request.app.state, "provider_registry", None)
    checks: dict[str, bool] = {
        "database": verify_database_connection(engine),
        "providers": bool(registry is not None and registry.providers),
    }

    all_ready = all(checks.values())
    payload: dict[str, Any] = {
        "status": "ready" if all_ready else "not_ready",
        "timestamp": datetime.now(UTC).isoformat(),
        "checks": checks,
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if all_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=payload,
    )


@router.get("/ops/metrics")
async def metrics_snapshot() -> dict[str, Any]:
    """Counters and gauges collected in this process."""
    return metrics.snapshot()
