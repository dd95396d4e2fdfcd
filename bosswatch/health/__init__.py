"""Health checks and HTTP endpoints for the watcher daemon.

Provides:
- Health check implementations for the guild state, webhook and heartbeat
- FastAPI endpoints (/health, /ready, /live, /metrics, /notifications, /notify)

Usage:
    from bosswatch.health import HealthChecker, create_health_app

    checker = HealthChecker(state_path=Path("data/guild_state.json"))
    report = await checker.check_all()

    app = create_health_app(tracker=watcher.tracker)
    uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from bosswatch.health.checks import (
    HealthChecker,
    HealthStatus,
    CheckStatus,
    CheckResult,
    HealthReport,
)
from bosswatch.health.server import (
    create_health_app,
    get_health_checker,
    set_health_checker,
    run_health_server,
    run_health_server_async,
)

__all__ = [
    "HealthChecker",
    "HealthStatus",
    "CheckStatus",
    "CheckResult",
    "HealthReport",
    "create_health_app",
    "get_health_checker",
    "set_health_checker",
    "run_health_server",
    "run_health_server_async",
]
