"""
PushGate - Health Check Endpoints

System health monitoring endpoints for load balancers, monitoring,
and operational visibility.
"""

from datetime import datetime
from fastapi import APIRouter, Depends, Request

from pushgate import __version__
from pushgate.config import Settings, get_settings

router = APIRouter(prefix="/api/system", tags=["system"])


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return getattr(request.app.state, "settings", None) or get_settings()


@router.get("/health")
async def health_check(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """
    Overall system health check.

    Returns:
        - status: "healthy" or "degraded"
        - checks: Individual component statuses
        - timestamp: Current server time
    """
    container = getattr(request.app.state, "container", None)
    checks = {}

    # Lifecycle coordinator must be consuming credential notifications
    checks["lifecycle"] = {
        "status": "healthy" if container and container.coordinator.running else "unhealthy",
    }

    checks["middleware"] = {
        "status": "healthy" if container else "unhealthy",
        "backend": settings.ack_channel_backend,
    }

    if container:
        checks["reachability"] = {
            "status": "healthy",
            "current": container.reachability.current_status().value,
        }
        checks["reporter"] = {
            "status": "healthy",
            "in_flight": container.reporter.in_flight,
        }

    checks["observability"] = {
        "status": "healthy" if settings.enable_observability else "disabled",
    }

    all_healthy = all(
        c.get("status") in ("healthy", "disabled")
        for c in checks.values()
    )

    return {
        "status": "healthy" if all_healthy else "degraded",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "version": __version__,
        "environment": settings.app_env,
        "checks": checks,
    }


@router.get("/ready")
async def readiness_check(request: Request) -> dict:
    """
    Readiness probe for container orchestration.

    Ready once the service container has started.
    """
    container = getattr(request.app.state, "container", None)
    return {
        "ready": bool(container and container.coordinator.running),
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


@router.get("/live")
async def liveness_check() -> dict:
    """
    Liveness probe for container orchestration.

    Returns 200 if the service is alive.
    """
    return {
        "alive": True,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


@router.get("/config")
async def config_info(
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """
    Non-sensitive configuration information.

    Excludes credentials, tokens and the middleware password.
    """
    return {
        "environment": settings.app_env,
        "debug": settings.app_debug,
        "log_level": settings.app_log_level,
        "middleware": {
            "backend": settings.ack_channel_backend,
            "base_url": settings.middleware_base_url,
            "timeout_seconds": settings.middleware_timeout_seconds,
            "sandbox": settings.middleware_sandbox,
        },
        "registrar": {
            "timeout_seconds": settings.registrar_timeout_seconds,
            "max_workers": settings.registrar_max_workers,
        },
        "features": {
            "observability_enabled": settings.enable_observability,
        },
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
