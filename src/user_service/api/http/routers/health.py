"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.user_service.api.http.app_data import ApplicationDependencies
from src.user_service.runtime.context import get_config

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health() -> dict[str, str]:
    """Liveness probe: 200 as long as the process is running."""
    return {"status": "healthy", "service": get_config().app.name}


@router.get("/ready", response_model=None)
def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe: 503 when the identity store is unreachable.

    The member directory is not probed; it is consulted per request and its
    outages surface as 503s on the affected calls only.
    """
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    config = get_config()

    db_healthy = app_deps.database_service.health_check()
    checks = {
        "database": {
            "status": "healthy" if db_healthy else "unhealthy",
            "type": "postgresql" if "postgresql" in config.database.url else "sqlite",
            "pool": app_deps.database_service.get_pool_status(),
        }
    }

    body = {"status": "ready" if db_healthy else "not_ready", "checks": checks}
    if not db_healthy:
        return JSONResponse(status_code=503, content=body)
    return body
