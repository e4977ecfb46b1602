"""HTTP routers."""

from playground.api.health import router as health_router
from playground.api.playground import router as playground_router
from playground.api.providers import router as providers_router

__all__ = ["health_router", "playground_router", "providers_router"]
