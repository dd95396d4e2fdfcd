"""FastAPI health server for the watcher daemon.

Provides HTTP endpoints for:
- /health - Full health check with all dependencies
- /ready - Readiness probe
- /live - Liveness probe
- /metrics - Prometheus metrics in text format
- /notifications - Alerts currently held by the dedup store
- /notify (POST) - Send a manual announcement to Discord

Usage:
    from bosswatch.health.server import create_health_app
    app = create_health_app(tracker=watcher.tracker, notifier=discord_service)
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
import structlog

from bosswatch.health.checks import (
    HealthChecker,
    HealthStatus,
)
from bosswatch.observability.metrics import get_metrics_text, get_metrics_content_type
from bosswatch.services.discord_service import DiscordNotificationService
from bosswatch.services.notification_tracker import NotificationDedupStore

logger = structlog.get_logger()

# Global health checker instance
_health_checker: Optional[HealthChecker] = None


def get_health_checker() -> HealthChecker:
    """Get or create the global health checker instance."""
    global _health_checker
    if _health_checker is None:
        _health_checker = HealthChecker()
    return _health_checker


def set_health_checker(checker: HealthChecker) -> None:
    """Set the global health checker instance."""
    global _health_checker
    _health_checker = checker


class ManualNotificationRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover
    logger.info("health_server_starting")
    get_health_checker()
    yield
    logger.info("health_server_stopping")


def create_health_app(
    title: str = "BossWatch Health API",
    version: str = "1.0.0",
    tracker: Optional[NotificationDedupStore] = None,
    notifier: Optional[DiscordNotificationService] = None,
) -> FastAPI:
    """Create FastAPI application with health endpoints.

    Args:
        title: API title
        version: API version
        tracker: Dedup store exposed read-only at /notifications
        notifier: Discord service used by POST /notify

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        version=version,
        description="Health check and metrics endpoints for the respawn watcher",
        lifespan=lifespan,
    )

    @app.get(
        "/health",
        response_model=None,
        summary="Full health check",
        responses={
            200: {"description": "All checks passed"},
            503: {"description": "One or more checks failed"},
        },
    )
    async def health_check() -> Response:
        """Returns 200 if healthy/degraded, 503 if unhealthy."""
        checker = get_health_checker()
        report = await checker.check_all()

        status_code = (
            status.HTTP_200_OK
            if report.status != HealthStatus.UNHEALTHY
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )

        return JSONResponse(content=report.to_dict(), status_code=status_code)

    @app.get("/ready", response_model=None, summary="Readiness probe")
    async def readiness_probe() -> Response:
        checker = get_health_checker()
        is_ready = await checker.is_ready()

        if is_ready:
            return JSONResponse(
                content={"ready": True, "message": "Service is ready"},
                status_code=status.HTTP_200_OK,
            )
        return JSONResponse(
            content={"ready": False, "message": "Service is not ready"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.get("/live", response_model=None, summary="Liveness probe")
    async def liveness_probe() -> Response:
        checker = get_health_checker()
        is_alive = await checker.is_alive()

        return JSONResponse(
            content={"alive": is_alive, "message": "Service is alive"},
            status_code=status.HTTP_200_OK,
        )

    @app.get(
        "/metrics",
        response_class=PlainTextResponse,
        summary="Prometheus metrics",
    )
    async def prometheus_metrics() -> Response:
        return Response(
            content=get_metrics_text(),
            media_type=get_metrics_content_type(),
        )

    @app.get(
        "/notifications",
        response_model=None,
        summary="Sent alerts held for deduplication",
    )
    async def list_notifications() -> Response:
        if tracker is None:
            return JSONResponse(
                content={"detail": "Watcher not running in this process"},
                status_code=status.HTTP_404_NOT_FOUND,
            )

        records = [r.model_dump(mode="json") for r in tracker.records()]
        return JSONResponse(content={"count": len(records), "records": records})

    @app.post(
        "/notify",
        response_model=None,
        summary="Send a manual Discord notification",
        responses={
            200: {"description": "Notification sent"},
            502: {"description": "Discord rejected or could not be reached"},
            503: {"description": "Notifications not configured"},
        },
    )
    async def send_manual_notification(request: ManualNotificationRequest) -> Response:
        if notifier is None or not notifier.is_configured:
            return JSONResponse(
                content={"success": False, "message": "Notifications not configured"},
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        result = await notifier.send_manual(request.message)
        if not result.success:
            logger.warning("manual_notification_failed", error=result.error)
            return JSONResponse(
                content={"success": False, "message": result.error},
                status_code=status.HTTP_502_BAD_GATEWAY,
            )

        return JSONResponse(
            content={"success": True, "message": "Notification sent successfully"}
        )

    @app.get("/", response_model=None, summary="Root endpoint")
    async def root() -> Dict[str, Any]:
        return {
            "name": title,
            "version": version,
            "endpoints": {
                "health": "/health",
                "ready": "/ready",
                "live": "/live",
                "metrics": "/metrics",
                "notifications": "/notifications",
                "notify": "/notify",
            },
        }

    return app


def _build_server(app: FastAPI, host: str, port: int, log_level: str) -> Any:
    import uvicorn

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level,
        access_log=False,
    )
    return uvicorn.Server(config)


async def run_health_server_async(  # pragma: no cover
    app: Optional[FastAPI] = None,
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "warning",
) -> None:
    """Run health server inside an existing event loop.

    Args:
        app: Application to serve (default: a bare health app)
        host: Host to bind to
        port: Port to bind to
        log_level: Uvicorn logging level
    """
    server = _build_server(app or create_health_app(), host, port, log_level)
    # The scheduler owns SIGINT/SIGTERM handling
    server.install_signal_handlers = lambda: None

    logger.info("health_server_starting", host=host, port=port)
    await server.serve()


def run_health_server(  # pragma: no cover
    app: Optional[FastAPI] = None,
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run health server (blocking)."""
    import uvicorn

    logger.info("health_server_starting", host=host, port=port)
    uvicorn.run(app or create_health_app(), host=host, port=port, log_level=log_level)
