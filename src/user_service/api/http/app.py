"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger
from starlette.responses import JSONResponse

from src.user_service.api.http.app_data import ApplicationDependencies
from src.user_service.api.http.routers.health import router as health_router
from src.user_service.api.http.routers.users import router as users_router
from src.user_service.api.utils.app_startup import configure_logging
from src.user_service.core.services import DbSessionService, MemberDirectoryClient
from src.user_service.core.services.database.db_manage import DbManageService
from src.user_service.runtime.context import get_config


@asynccontextmanager
async def lifespan(app: FastAPI):
    startup()
    try:
        yield
    finally:
        shutdown()


app = FastAPI(
    title="User Service",
    lifespan=lifespan,
    docs_url=None if get_config().app.environment == "production" else "/docs",
    redoc_url=None if get_config().app.environment == "production" else "/redoc",
)

__all__ = ["app", "startup", "shutdown"]


# --- Request logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    actor = request.headers.get(get_config().app.actor_header, "-")

    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "actor": actor,
        "client_ip": request.client.host if request.client else "unknown",
    }

    start = time.perf_counter()

    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")

            response.headers.setdefault("X-Request-ID", request_id)
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )


# --- Router registration ---
app.include_router(health_router)
app.include_router(users_router, prefix="/api")


# --- Lifecycle hooks ---
def startup() -> None:
    configure_logging()
    config = get_config()
    logger.info("Starting up {} in {} environment", config.app.name, config.app.environment)

    database_service = DbSessionService()
    if config.app.environment != "production":
        DbManageService(database_service.engine).create_all()

    app.state.app_dependencies = ApplicationDependencies(
        database_service=database_service,
        member_directory=MemberDirectoryClient(),
    )


def shutdown() -> None:
    logger.info("Shutting down application")
    app_dependencies: ApplicationDependencies = app.state.app_dependencies
    app_dependencies.member_directory.close()
    app_dependencies.database_service.dispose()


def main() -> None:
    import uvicorn

    config = get_config()
    uvicorn.run(
        app,
        host=config.app.host,
        port=config.app.port,
        access_log=False,  # request logging happens in middleware
    )


if __name__ == "__main__":
    main()
