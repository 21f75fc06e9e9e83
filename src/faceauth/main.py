"""Main FastAPI application for the face authentication service."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from faceauth import __version__
from faceauth.api.auth import router as auth_router
from faceauth.api.files import router as files_router
from faceauth.api.profile import router as profile_router
from faceauth.clients import DatabaseManager, create_database_manager
from faceauth.config import Settings, settings as default_settings
from faceauth.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from faceauth.models.api_models import HealthResponse
from faceauth.observability import instrument_fastapi_app, setup_observability
from faceauth.services import build_services
from faceauth.services.session_service import SessionSweeper


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging on top of the stdlib logging tree."""
    logging.basicConfig(format="%(message)s", level=log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[DatabaseManager] = None,
    clock=None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; defaults to values from the environment
        db: Store bundle; defaults to the backend named by STORE_BACKEND
        clock: Optional time source for sessions, used by tests
    """
    settings = settings or default_settings
    db = db or create_database_manager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting face authentication service",
            port=settings.port,
            host=settings.host,
            store_backend=settings.store_backend
        )

        setup_observability(
            service_name="face-auth-service",
            service_version=__version__,
            otlp_endpoint=settings.otlp_endpoint,
            enable_console_export=settings.otel_console_export
        )

        await db.init()
        services = build_services(settings, db, clock=clock)
        app.state.services = services

        sweeper = None
        if settings.session_sweep_interval_seconds > 0:
            sweeper = SessionSweeper(services.sessions, settings.session_sweep_interval_seconds)
            sweeper.start()

        yield

        logger.info("Shutting down face authentication service")
        if sweeper is not None:
            await sweeper.stop()
        await db.close()

    app = FastAPI(
        title="Face Authentication Service",
        description="Face descriptor enrollment, matching and session management",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings

    # Add middleware (order matters - last added is executed first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(files_router)

    @app.get("/healthz", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Liveness check."""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc),
            version=__version__
        )

    @app.get("/api/health")
    async def service_health(request: Request) -> Dict[str, Any]:
        """Readiness check including store connectivity."""
        services = request.app.state.services
        try:
            db_healthy = await services.db.health_check()
        except Exception as e:
            logger.error("Health check failed", error=str(e))
            db_healthy = False

        return {
            "status": "healthy" if db_healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "database": {
                    "status": "healthy" if db_healthy else "unhealthy",
                    "backend": settings.store_backend
                },
                "matcher": {
                    "threshold": services.scorer.threshold,
                    "normalize": services.scorer.normalize,
                    "descriptor_dimension": services.validator.min_dimension
                }
            }
        }

    instrument_fastapi_app(app)
    return app


configure_logging(default_settings.log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "faceauth.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
        reload=False
    )
