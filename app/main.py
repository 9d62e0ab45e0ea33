"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.background import background_queue
from app.core.cache import cache_manager
from app.core.database import db_manager
from app.core.exceptions import TenantGuardException
from app.core.logging_config import get_logger, setup_logging
from app.core.middleware import RequestContextMiddleware
from app.core.performance import track_http_metrics
from app.core.services import get_token_service
from app.features.roles.service import role_registry

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup and shutdown.

    Token secrets are checked before anything else so a misconfigured
    deployment never starts serving.
    """
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )
    get_token_service()

    db_manager.init()
    if settings.is_sqlite:
        await db_manager.create_tables()
    await cache_manager.init()
    await background_queue.start()

    async with db_manager.session_factory() as db:
        await role_registry.seed_default_roles(db)

    from app.core.metrics import app_info
    app_info.info({"version": settings.app_version, "environment": settings.environment})

    logger.info("application_ready")
    yield

    logger.info("application_shutting_down")
    await background_queue.stop()
    await cache_manager.close()
    await db_manager.close()
    logger.info("application_shutdown_complete")


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input (may hold passwords)."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map errors to JSON bodies of the form {detail, error, details?}.

    Domain errors carry their own status code; anything unexpected is a
    500 whose message is hidden in production.
    """

    @app.exception_handler(TenantGuardException)
    async def domain_exception_handler(request: Request, exc: TenantGuardException) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log("request_rejected", path=request.url.path, error=exc.error_code, message=exc.message)

        content = {"detail": exc.message, "error": exc.error_code}
        if exc.details:
            content["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = jsonable_errors(exc)
        logger.warning("validation_error", path=request.url.path, errors=errors)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors, "error": "Validation"},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        detail = "An internal error occurred" if settings.is_production else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": detail,
                "error": "Internal",
                "request_id": getattr(request.state, "request_id", None),
            },
        )


def register_routers(app: FastAPI) -> None:
    from app.api.health_router import router as health_router
    from app.api.metrics_router import router as metrics_router
    from app.api.v1.router import v1_router

    app.include_router(health_router)
    if settings.metrics_enabled:
        app.include_router(metrics_router)
    app.include_router(v1_router, prefix="/api")


def create_application() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant identity and access management",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # First added = innermost
    @app.middleware("http")
    async def performance_middleware(request: Request, call_next):
        return await track_http_metrics(request, call_next)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_routers(app)

    logger.info("application_configured")
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
