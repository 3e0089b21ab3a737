"""
DLP Remediation Service - Main Application Entry Point.

FastAPI application with:
- Health check endpoints
- Finding intake, Slack callback and remediation endpoints
- Correlation IDs on every request
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dlp_remediator import __version__
from dlp_remediator.api.routes import findings_router, remediation_router, slack_router
from dlp_remediator.clients.invoker import BackgroundStageInvoker
from dlp_remediator.config import Settings, get_settings
from dlp_remediator.logging_config import clear_context, set_correlation_id, setup_logging
from dlp_remediator.service import Services, build_services

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration (loaded from the environment if omitted)
        services: Pre-built services, mainly for tests

    Returns:
        FastAPI app
    """
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "application_starting",
            version=__version__,
            environment=settings.app_env,
            transport=settings.remediation.remediation_transport,
        )

        http_client: httpx.AsyncClient | None = None
        if services is None:
            http_client = httpx.AsyncClient()
            app.state.services = build_services(settings, http_client=http_client)
        else:
            app.state.services = services

        yield

        invoker = app.state.services.invoker
        if isinstance(invoker, BackgroundStageInvoker):
            await invoker.drain()
        if http_client is not None:
            await http_client.aclose()
        logger.info("application_stopping")

    app = FastAPI(
        title="DLP Remediation Service",
        description="Quarantines objects flagged by sensitive-data findings, with Slack approvals",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.include_router(findings_router)
    app.include_router(slack_router)
    app.include_router(remediation_router)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Add correlation ID to each request."""
        clear_context()
        correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id
        return response

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "environment": settings.app_env,
        }

    @app.get("/health/live", tags=["Health"])
    async def liveness_check() -> dict:
        """Liveness check."""
        return {"status": "alive"}

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "text": "Error: internal server error",
                "detail": str(exc) if settings.is_development else "An error occurred",
            },
        )

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "dlp_remediator.main:create_app",
        factory=True,
        host=_settings.api.host,
        port=_settings.api.port,
        reload=_settings.is_development,
        workers=_settings.api.workers,
    )
