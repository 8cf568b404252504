"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from helpdesk_automation.api.routes import automation, rules, test
from helpdesk_automation.core.config import get_settings
from helpdesk_automation.core.errors import (
    AutomationError,
    RuleConfigurationError,
    RuleLoadError,
    RuleNotFoundError,
)
from helpdesk_automation.core.logging import get_logger, setup_logging
from helpdesk_automation.engine.registry import EngineRegistry, create_registry
from helpdesk_automation.storage.redis_client import close_redis_pool, get_redis, init_redis_pool

logger = get_logger(__name__)


def _error(status_code: int, message: str, data=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": data},
    )


def create_app(registry: EngineRegistry | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        registry: Prebuilt engine registry; built from Redis on startup if None
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging()
        logger.info("Starting application", app_name=settings.app_name, version=settings.app_version)

        await init_redis_pool()
        logger.info("Redis connection pool initialized")

        owned = registry is None
        if owned:
            app.state.registry = create_registry(get_redis(), settings)

        yield

        logger.info("Shutting down application")
        if owned:
            await app.state.registry.close()
        await close_redis_pool()
        logger.info("Redis connection pool closed")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant helpdesk automation rule engine",
        lifespan=lifespan,
    )
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rules.router, prefix="/api/v1")
    app.include_router(test.router, prefix="/api/v1")
    app.include_router(automation.router, prefix="/api/v1")

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, str):
            return _error(exc.status_code, detail)
        return _error(exc.status_code, "HTTP error", detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return _error(422, "Validation error", exc.errors())

    @app.exception_handler(RuleConfigurationError)
    async def rule_configuration_handler(request: Request, exc: RuleConfigurationError) -> JSONResponse:
        return _error(422, str(exc), exc.errors)

    @app.exception_handler(RuleNotFoundError)
    async def rule_not_found_handler(request: Request, exc: RuleNotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(RuleLoadError)
    async def rule_load_handler(request: Request, exc: RuleLoadError) -> JSONResponse:
        logger.error("Rule load failed", tenant_id=exc.tenant_id, error=str(exc))
        return _error(503, str(exc))

    @app.exception_handler(AutomationError)
    async def automation_error_handler(request: Request, exc: AutomationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
        )
        return _error(500, "Internal server error", str(exc) if settings.debug else None)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "ok",
            "version": settings.app_version,
            "tenants": len(app.state.registry.tenants()),
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus scrape endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


# Application instance for uvicorn
app = create_app()
