"""Health check implementations for the watcher daemon.

Provides checks for:
- Guild state file readability
- Discord webhook configuration
- Watcher heartbeat (last successful tick)

Usage:
    checker = HealthChecker(
        state_path=Path("data/guild_state.json"),
        discord_config=config.discord,
        watcher=watcher,
    )

    report = await checker.check_all()
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import structlog

from bosswatch.models.notification import DiscordConfig
from bosswatch.services.guild_store import JsonGuildStore
from bosswatch.services.respawn_watcher import RespawnWatcher
from bosswatch.utils.exceptions import RepositoryError

logger = structlog.get_logger()


class HealthStatus(str, Enum):
    """Overall health status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CheckStatus(str, Enum):
    """Individual check status."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: CheckStatus
    message: str
    duration_ms: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 2),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class HealthReport:
    """Complete health report with all check results."""

    status: HealthStatus
    checks: List[CheckResult]
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "checks": [c.to_dict() for c in self.checks],
            "timestamp": self.timestamp.isoformat(),
        }


class HealthChecker:
    """Health checker for the watcher daemon.

    Every dependency is optional so the checker also works for the
    standalone health server, where only the configuration is known.
    """

    def __init__(
        self,
        state_path: Optional[Path] = None,
        discord_config: Optional[DiscordConfig] = None,
        watcher: Optional[RespawnWatcher] = None,
        tick_interval_seconds: float = 30.0,
        stale_after_ticks: int = 3,
    ):
        """Initialize health checker.

        Args:
            state_path: Guild state file to check
            discord_config: Discord settings to check
            watcher: Running watcher whose heartbeat is checked
            tick_interval_seconds: Expected delay between ticks
            stale_after_ticks: Missed ticks before the heartbeat fails
        """
        self.state_path = state_path
        self.discord_config = discord_config
        self.watcher = watcher
        self.tick_interval_seconds = tick_interval_seconds
        self.stale_after_ticks = stale_after_ticks

    async def check_all(self) -> HealthReport:
        """Run all health checks and return comprehensive report."""
        checks: List[CheckResult] = []

        results = await asyncio.gather(
            self.check_state_file(),
            self.check_discord_webhook(),
            self.check_watcher_heartbeat(),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, Exception):
                checks.append(
                    CheckResult(
                        name="unknown",
                        status=CheckStatus.FAIL,
                        message=f"Check failed: {str(result)}",
                    )
                )
            elif isinstance(result, CheckResult):
                checks.append(result)

        status = self._determine_overall_status(checks)
        return HealthReport(status=status, checks=checks)

    def _determine_overall_status(self, checks: List[CheckResult]) -> HealthStatus:
        has_fail = any(c.status == CheckStatus.FAIL for c in checks)
        has_warn = any(c.status == CheckStatus.WARN for c in checks)

        if has_fail:
            return HealthStatus.UNHEALTHY
        elif has_warn:
            return HealthStatus.DEGRADED
        else:
            return HealthStatus.HEALTHY

    async def check_state_file(self) -> CheckResult:
        """Check that the guild state file loads and validates."""
        start = time.time()
        name = "guild_state"

        if self.state_path is None:
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message="No state file configured",
            )

        try:
            state = JsonGuildStore(self.state_path).load()
        except RepositoryError as e:
            logger.warning("guild_state_check_failed", error=str(e))
            return CheckResult(
                name=name,
                status=CheckStatus.FAIL,
                message=str(e),
                duration_ms=(time.time() - start) * 1000,
                details={"path": str(self.state_path)},
            )

        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="Guild state readable",
            duration_ms=(time.time() - start) * 1000,
            details={
                "path": str(self.state_path),
                "bosses": len(state.bosses),
                "history": len(state.history),
                "members": len(state.members),
            },
        )

    async def check_discord_webhook(self) -> CheckResult:
        """Check that a Discord webhook is configured."""
        name = "discord_webhook"

        if self.discord_config is None or not self.discord_config.enabled:
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message="Discord notifications disabled",
            )

        if self.discord_config.webhook_url is None:
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message="Discord webhook URL not configured",
            )

        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="Discord webhook configured",
            details={"host": self.discord_config.webhook_url.host},
        )

    async def check_watcher_heartbeat(self) -> CheckResult:
        """Check that the watcher ticked successfully recently."""
        name = "watcher_heartbeat"

        if self.watcher is None:
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message="Watcher not running in this process",
            )

        status = self.watcher.get_status()
        last_success = self.watcher.last_success_at
        if last_success is None:
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message="No successful tick yet",
                details=status,
            )

        age_seconds = (_utcnow() - last_success).total_seconds()
        status["seconds_since_success"] = round(age_seconds, 1)
        limit = self.tick_interval_seconds * self.stale_after_ticks

        if age_seconds > limit:
            return CheckResult(
                name=name,
                status=CheckStatus.FAIL,
                message=f"Last successful tick {age_seconds:.0f}s ago",
                details=status,
            )

        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="Watcher ticking",
            details=status,
        )

    async def is_ready(self) -> bool:
        """Ready when the guild state can be read."""
        result = await self.check_state_file()
        return result.status != CheckStatus.FAIL

    async def is_alive(self) -> bool:
        """Basic liveness check."""
        return True
