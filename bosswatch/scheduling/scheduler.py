"""APScheduler wrapper for the watcher daemon.

Provides:
- Async-compatible scheduler
- Fixed-delay jobs (next run scheduled after the previous one finishes)
- Graceful shutdown on SIGINT/SIGTERM
- Integration with Prometheus metrics

Usage:
    scheduler = WatchScheduler()

    # Tick every 30 seconds, measured from the end of the previous tick
    scheduler.add_fixed_delay_job(watch_job, job_id="respawn_watch", seconds=30)

    # Start scheduler (blocks until shutdown)
    await scheduler.start()
"""

import asyncio
import signal
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict
import structlog

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.events import (
    EVENT_JOB_EXECUTED,
    EVENT_JOB_ERROR,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)

from bosswatch.observability.metrics import SCHEDULER_JOBS

logger = structlog.get_logger()


class WatchScheduler:
    """Async scheduler for watcher jobs.

    Wraps APScheduler's AsyncIOScheduler with:
    - Fixed-delay rescheduling via one-shot date triggers
    - Error handling and logging
    - Prometheus metrics integration
    - Graceful shutdown
    """

    def __init__(
        self,
        timezone: str = "UTC",
        max_instances: int = 1,
        coalesce: bool = True,
        misfire_grace_time: int = 60,
    ):
        """Initialize watch scheduler.

        Args:
            timezone: Scheduler timezone
            max_instances: Max concurrent instances per job
            coalesce: Coalesce missed executions
            misfire_grace_time: Grace time for missed jobs (seconds)
        """
        self.scheduler = AsyncIOScheduler(
            timezone=timezone,
            job_defaults={
                "max_instances": max_instances,
                "coalesce": coalesce,
                "misfire_grace_time": misfire_grace_time,
            },
        )

        self._running = False
        self._shutdown_event = asyncio.Event()
        self._jobs: Dict[str, Any] = {}

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

        logger.info("scheduler_initialized", timezone=timezone)

    def add_fixed_delay_job(
        self,
        func: Callable[[], Awaitable[Any]],
        job_id: str,
        seconds: float,
        run_immediately: bool = True,
    ) -> str:
        """Add a job that waits ``seconds`` after each run completes.

        Each run is a one-shot date trigger; when the body finishes (even
        on error) the next run is scheduled ``seconds`` later, so runs
        never overlap regardless of how long a run takes.

        Args:
            func: Async callable to execute
            job_id: Unique job identifier
            seconds: Delay between the end of a run and the next start
            run_immediately: Run the first time right away instead of
                after one delay

        Returns:
            Job ID
        """
        delay = timedelta(seconds=seconds)

        async def run_then_reschedule() -> Any:
            try:
                return await func()
            finally:
                if self._running:
                    self._schedule_once(
                        run_then_reschedule,
                        job_id=job_id,
                        run_date=datetime.now(timezone.utc) + delay,
                    )

        first_run = datetime.now(timezone.utc)
        if not run_immediately:
            first_run += delay

        return self._schedule_once(run_then_reschedule, job_id, first_run)

    def _schedule_once(
        self,
        func: Callable[[], Awaitable[Any]],
        job_id: str,
        run_date: datetime,
    ) -> str:
        """Schedule a single run, replacing any pending run with the same ID."""
        job = self.scheduler.add_job(
            func,
            trigger=DateTrigger(run_date=run_date),
            id=job_id,
            name=job_id,
            replace_existing=True,
        )
        self._jobs[job_id] = job

        logger.debug("job_scheduled", job_id=job_id, run_date=run_date.isoformat())

        self._update_metrics()
        return job_id

    async def start(self) -> None:
        """Start the scheduler.

        Begins executing scheduled jobs and blocks until shutdown.
        """
        if self._running:  # pragma: no cover
            logger.warning("scheduler_already_running")
            return

        self._running = True  # pragma: no cover (blocking scheduler runtime)
        self._shutdown_event.clear()  # pragma: no cover

        loop = asyncio.get_running_loop()  # pragma: no cover
        for sig in (signal.SIGTERM, signal.SIGINT):  # pragma: no cover
            loop.add_signal_handler(sig, self._signal_handler)  # pragma: no cover

        self.scheduler.start()  # pragma: no cover
        logger.info("scheduler_started", jobs=len(self._jobs))  # pragma: no cover

        self._update_metrics()  # pragma: no cover

        await self._shutdown_event.wait()  # pragma: no cover

    async def shutdown(self, wait: bool = False) -> None:
        """Shutdown the scheduler.

        In-flight notifications are not awaited by default.

        Args:
            wait: Wait for running jobs to complete
        """
        if not self._running:
            return

        logger.info("scheduler_shutting_down")

        self._running = False
        self.scheduler.shutdown(wait=wait)
        self._shutdown_event.set()

        logger.info("scheduler_stopped")

    def _signal_handler(self) -> None:
        """Handle termination signals."""
        logger.info("shutdown_signal_received")
        asyncio.create_task(self.shutdown())

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        logger.debug(
            "job_executed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )
        self._update_metrics()

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        logger.error(
            "job_failed",
            job_id=event.job_id,
            exception=str(event.exception),
            traceback=event.traceback,
        )
        self._update_metrics()

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        logger.warning(
            "job_missed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )
        self._update_metrics()

    def _update_metrics(self) -> None:
        """Update Prometheus metrics."""
        jobs = self.scheduler.get_jobs()
        pending = sum(1 for j in jobs if getattr(j, "pending", False))
        SCHEDULER_JOBS.labels(status="pending").set(pending)
        SCHEDULER_JOBS.labels(status="running").set(len(jobs) - pending)
