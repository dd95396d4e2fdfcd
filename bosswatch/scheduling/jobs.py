"""Scheduled job definitions for the watcher daemon.

Provides:
- BaseJob: correlation ID, timing and error accounting for every run
- RespawnWatchJob: one respawn watcher tick per run

Usage:
    from bosswatch.scheduling.jobs import RespawnWatchJob

    job = RespawnWatchJob(watcher)
    await job()
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import structlog

from bosswatch.observability.context import correlation_id_context
from bosswatch.services.respawn_watcher import RespawnWatcher

logger = structlog.get_logger()


class BaseJob(ABC):
    """Base class for scheduled jobs.

    Provides common functionality:
    - Correlation ID management
    - Error handling and logging
    - Execution timing
    """

    def __init__(self, name: str):
        """Initialize job.

        Args:
            name: Job name for logging
        """
        self.name = name
        self.last_run: Optional[datetime] = None
        self.last_success: Optional[datetime] = None
        self.run_count: int = 0
        self.error_count: int = 0

    async def __call__(self) -> Any:
        """Execute the job with correlation ID and error handling."""
        start = time.time()
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")

        with correlation_id_context(f"{self.name}-{stamp}") as corr_id:
            logger.debug("job_starting", job_name=self.name, correlation_id=corr_id)

            try:
                result = await self.run()
            except Exception as e:
                self.last_run = datetime.now(timezone.utc)
                self.error_count += 1
                logger.error(
                    "job_failed",
                    job_name=self.name,
                    error=str(e),
                    correlation_id=corr_id,
                    exc_info=True,
                )
                raise

            self.last_run = datetime.now(timezone.utc)
            self.last_success = self.last_run
            self.run_count += 1

            logger.debug(
                "job_completed",
                job_name=self.name,
                duration_seconds=round(time.time() - start, 3),
                correlation_id=corr_id,
            )
            return result

    @abstractmethod
    async def run(self) -> Any:
        """Execute the job logic.

        Returns:
            Job result (implementation-specific)
        """
        pass  # pragma: no cover (abstract method)

    def get_status(self) -> Dict[str, Any]:
        """Get job status information."""
        return {
            "name": self.name,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_success": (
                self.last_success.isoformat() if self.last_success else None
            ),
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class RespawnWatchJob(BaseJob):
    """Runs one respawn watcher tick.

    The watcher swallows its own failures, so a run only counts as an
    error here if something outside the tick breaks.
    """

    def __init__(self, watcher: RespawnWatcher):
        super().__init__("respawn_watch")
        self.watcher = watcher

    async def run(self) -> Dict[str, Any]:
        result = await self.watcher.tick()
        return result.to_dict()

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status["watcher"] = self.watcher.get_status()
        return status
