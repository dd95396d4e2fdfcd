"""Scheduling for the respawn watcher daemon.

Provides:
- APScheduler wrapper with fixed-delay jobs
- The respawn watch job

Usage:
    from bosswatch.scheduling import WatchScheduler, RespawnWatchJob

    scheduler = WatchScheduler()
    scheduler.add_fixed_delay_job(
        RespawnWatchJob(watcher),
        job_id="respawn_watch",
        seconds=30,
    )

    await scheduler.start()
"""

from bosswatch.scheduling.scheduler import WatchScheduler
from bosswatch.scheduling.jobs import BaseJob, RespawnWatchJob

__all__ = [
    "WatchScheduler",
    "RespawnWatchJob",
    "BaseJob",
]
