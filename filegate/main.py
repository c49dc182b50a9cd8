"""
FastAPI application factory.

    uvicorn filegate.main:app
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from filegate.config import settings
from filegate.core.database import db_manager
from filegate.core.exceptions import FileGateException
from filegate.core.logging_config import get_logger, setup_logging
from filegate.core.middleware import CORRELATION_HEADER, CorrelationIdMiddleware, track_http_metrics

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    if settings.dev_auth_enabled and settings.is_production:
        logger.warning("dev_auth_ignored_in_production")

    db_manager.init()
    if settings.is_development:
        # Local runs have no migration step
        await db_manager.create_all()

    from filegate.core.metrics import app_info
    app_info.info({"version": settings.app_version, "environment": settings.environment})

    logger.info("application_ready")
    yield

    await db_manager.close()
    logger.info("application_shutdown_complete")


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input (it may carry file bytes)."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure in the ``{"error": {"code", "message"}}`` envelope."""

    @app.exception_handler(FileGateException)
    async def filegate_exception_handler(request: Request, exc: FileGateException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = jsonable_errors(exc)
        logger.info("request_validation_failed", path=request.url.path, errors=errors)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": {"code": "INVALID_INPUT", "message": "Request validation failed."},
                "detail": errors,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", None)
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )

        message = "An internal error occurred." if settings.is_production else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {"code": "INTERNAL_ERROR", "message": message},
                "correlation_id": correlation_id,
            },
            headers={CORRELATION_HEADER: correlation_id} if correlation_id else None,
        )


def register_routers(app: FastAPI) -> None:
    from filegate.api.health_router import router as health_router
    from filegate.api.metrics_router import router as metrics_router
    from filegate.api.v1.router import v1_router

    app.include_router(health_router)
    if settings.metrics_enabled:
        app.include_router(metrics_router)
    app.include_router(v1_router, prefix="/api")


def create_application() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Gated file exchange between the organisation and its third parties",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Last added runs outermost: CORS, then correlation, then metrics
    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        return await track_http_metrics(request, call_next)

    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", CORRELATION_HEADER],
        expose_headers=[CORRELATION_HEADER, "Content-Disposition"],
    )

    register_exception_handlers(app)
    register_routers(app)

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "api": "/api/v1",
            "health": "/health",
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "filegate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,  # CorrelationIdMiddleware logs every request
    )
