"""
PushGate - Backend Entrypoint

FastAPI application factory and server configuration.
Run with: uvicorn main:app --reload
"""

from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pushgate import __version__
from pushgate.api import health, routes
from pushgate.config import Settings, get_settings
from pushgate.container import ServiceContainer, create_container
from pushgate.core.exceptions import PushGateError
from pushgate.core.logging import setup_structured_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to run with (defaults to environment settings)
        container: Pre-built service container, e.g. with test doubles
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup:
            - Configure logging
            - Build the service container and start the lifecycle coordinator

        Shutdown:
            - Stop the coordinator (unsubscribes from credential notifications)
            - Wait for in-flight middleware responses
        """
        # === Startup ===
        setup_structured_logging(settings.app_log_level, json_format=settings.log_json)
        logger.info("🚀 PushGate starting in %s mode", settings.app_env)

        services = container or create_container(settings)
        app.state.container = services
        app.state.settings = settings

        await services.startup()
        logger.info(
            "✅ Responder ready: middleware=%s, registrar_timeout=%s",
            settings.ack_channel_backend,
            settings.registrar_timeout_seconds,
        )

        yield

        # === Shutdown ===
        logger.info("👋 PushGate shutting down")
        await services.shutdown()
        logger.info("✅ Shutdown complete")

    app = FastAPI(
        title="PushGate",
        description="Answers middleware call pushes with this device's availability",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Errors ---
    @app.exception_handler(PushGateError)
    async def pushgate_error_handler(request: Request, exc: PushGateError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "message": exc.message, "details": exc.details},
        )

    # --- Routes ---
    app.include_router(routes.router, prefix="/api")
    app.include_router(health.router)

    @app.get("/")
    async def root():
        """Root health check."""
        return {
            "service": "PushGate",
            "status": "operational",
            "version": __version__,
        }

    return app


# Create app instance
app = create_app()
