"""Respawn watcher: decides which threshold alerts are due and sends them.

On every tick the watcher reloads all tracked bosses, computes each boss's
respawn instant and, for every configured threshold, checks whether the
alert instant (respawn minus threshold) is within the proximity window of
now. Due alerts go through the dedup store so each one fires at most once
per respawn cycle.

The same tick also triggers the hourly dedup cleanup and the attendance
points digest at its configured times of day.

Usage:
    watcher = RespawnWatcher(
        repository=JsonGuildStore(Path("data/guild_state.json")),
        sender=DiscordNotificationService(config.discord),
        tracker=NotificationDedupStore(),
        settings=config.watcher,
        digest=config.digest,
    )
    result = await watcher.tick()
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional
import structlog

from bosswatch.models.boss import TrackedBoss
from bosswatch.models.config import DigestSettings, WatcherSettings
from bosswatch.observability.metrics import (
    BOSSES_SKIPPED,
    TICK_DURATION,
    TRACKED_BOSSES,
    WATCHER_TICKS,
)
from bosswatch.services.discord_service import NotificationSender
from bosswatch.services.guild_store import BossRepository
from bosswatch.services.notification_tracker import NotificationDedupStore
from bosswatch.services.points_service import compute_member_points
from bosswatch.utils.time_utils import ensure_utc, parse_slot, to_local, utc_now

logger = structlog.get_logger()


@dataclass
class SentAlert:
    """A threshold alert dispatched during a tick."""

    boss_id: int
    boss_name: str
    threshold_minutes: int
    respawn_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "boss_id": self.boss_id,
            "boss_name": self.boss_name,
            "threshold_minutes": self.threshold_minutes,
            "respawn_at": self.respawn_at.isoformat(),
        }


@dataclass
class TickResult:
    """Outcome of a single watcher tick."""

    started_at: datetime
    bosses_evaluated: int = 0
    bosses_skipped: int = 0
    alerts_sent: List[SentAlert] = field(default_factory=list)
    alerts_failed: int = 0
    records_cleaned: int = 0
    digest_sent: bool = False
    error: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "bosses_evaluated": self.bosses_evaluated,
            "bosses_skipped": self.bosses_skipped,
            "alerts_sent": [a.to_dict() for a in self.alerts_sent],
            "alerts_failed": self.alerts_failed,
            "records_cleaned": self.records_cleaned,
            "digest_sent": self.digest_sent,
            "error": self.error,
        }


class RespawnWatcher:
    """Periodic respawn threshold evaluator.

    Ticks are expected to run one at a time (the scheduler runs them with
    a fixed delay). A tick never raises: persistence failures abort the
    tick, while dispatch failures and unusable boss rows are logged and
    skipped without affecting the other bosses.

    Attributes:
        repository: Read-only guild state source.
        sender: Notification collaborator.
        tracker: Dedup store shared with read-only consumers.
        settings: Thresholds, cadence and dedup settings.
        digest: Digest schedule settings.
    """

    def __init__(
        self,
        repository: BossRepository,
        sender: NotificationSender,
        tracker: Optional[NotificationDedupStore] = None,
        settings: Optional[WatcherSettings] = None,
        digest: Optional[DigestSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.repository = repository
        self.sender = sender
        self.settings = settings or WatcherSettings()
        self.digest = digest or DigestSettings()
        self._clock = clock or utc_now
        self.tracker = tracker or NotificationDedupStore(
            retention=timedelta(hours=self.settings.retention_hours),
            match_tolerance=timedelta(seconds=self.settings.match_tolerance_seconds),
            clock=self._clock,
        )

        self._digest_slots: List[time] = [parse_slot(s) for s in self.digest.slots]
        self._last_digest_slot: Optional[datetime] = None
        self._last_cleanup_hour: Optional[datetime] = None

        self.last_tick_at: Optional[datetime] = None
        self.last_success_at: Optional[datetime] = None
        self.tick_count = 0

    @property
    def thresholds(self) -> List[int]:
        return self.settings.thresholds_minutes

    @property
    def proximity_window(self) -> timedelta:
        return timedelta(seconds=self.settings.effective_proximity_seconds)

    @property
    def last_digest_slot(self) -> Optional[datetime]:
        """Local timestamp of the last slot a digest was sent for."""
        return self._last_digest_slot

    async def tick(self, now: Optional[datetime] = None) -> TickResult:
        """Run one evaluation pass.

        Args:
            now: Evaluation instant (default: the watcher's clock).

        Returns:
            TickResult describing what happened.
        """
        now = ensure_utc(now) if now is not None else self._clock()
        result = TickResult(started_at=now)

        with TICK_DURATION.time():
            try:
                bosses = self.repository.list_bosses()
            except Exception as e:
                result.error = f"Failed to load bosses: {e}"
                logger.error(
                    "tick_aborted",
                    reason="repository_read_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._finish(result, now)
                return result

            TRACKED_BOSSES.set(len(bosses))

            for boss in bosses:
                try:
                    await self._evaluate_boss(boss, now, result)
                except Exception as e:
                    result.bosses_skipped += 1
                    BOSSES_SKIPPED.inc()
                    logger.error(
                        "boss_evaluation_failed",
                        boss_id=boss.id,
                        boss=boss.name,
                        error=str(e),
                        exc_info=True,
                    )

            self._maybe_cleanup(now, result)

            try:
                result.digest_sent = await self.check_digest(now)
            except Exception as e:
                logger.error("digest_check_failed", error=str(e), exc_info=True)

        self._finish(result, now)
        return result

    def _finish(self, result: TickResult, now: datetime) -> None:
        self.tick_count += 1
        self.last_tick_at = now
        if result.aborted:
            WATCHER_TICKS.labels(status="aborted").inc()
        else:
            self.last_success_at = now
            WATCHER_TICKS.labels(status="success").inc()

        logger.info(
            "tick_completed",
            bosses=result.bosses_evaluated,
            skipped=result.bosses_skipped,
            alerts_sent=len(result.alerts_sent),
            alerts_failed=result.alerts_failed,
            digest_sent=result.digest_sent,
            aborted=result.aborted,
        )

    async def _evaluate_boss(
        self,
        boss: TrackedBoss,
        now: datetime,
        result: TickResult,
    ) -> None:
        if not boss.has_valid_period:
            result.bosses_skipped += 1
            BOSSES_SKIPPED.inc()
            logger.warning(
                "boss_skipped_invalid_period",
                boss_id=boss.id,
                boss=boss.name,
                respawn_hours=boss.respawn_hours,
            )
            return

        result.bosses_evaluated += 1
        respawn_at = boss.respawn_at

        for threshold in self.thresholds:
            notify_at = respawn_at - timedelta(minutes=threshold)
            if abs(now - notify_at) > self.proximity_window:
                continue

            if not self.tracker.claim(boss.id, threshold, respawn_at):
                continue

            await self._dispatch(boss, threshold, respawn_at, result)

    async def _dispatch(
        self,
        boss: TrackedBoss,
        threshold: int,
        respawn_at: datetime,
        result: TickResult,
    ) -> None:
        logger.info(
            "sending_threshold_alert",
            boss_id=boss.id,
            boss=boss.name,
            threshold_minutes=threshold,
            respawn_at=respawn_at.isoformat(),
        )

        error: Optional[str] = None
        try:
            outcome = await self.sender.send_threshold_alert(
                boss.name, threshold, boss.owner
            )
            if not outcome.success:
                error = outcome.error or "delivery failed"
        except Exception as e:
            error = str(e) or type(e).__name__

        if error is None:
            result.alerts_sent.append(
                SentAlert(
                    boss_id=boss.id,
                    boss_name=boss.name,
                    threshold_minutes=threshold,
                    respawn_at=respawn_at,
                )
            )
            logger.info(
                "threshold_alert_sent",
                boss_id=boss.id,
                boss=boss.name,
                threshold_minutes=threshold,
            )
            return

        # Release the claim so the next tick can retry inside the window
        self.tracker.discard(boss.id, threshold, respawn_at)
        result.alerts_failed += 1
        logger.error(
            "threshold_alert_failed",
            boss_id=boss.id,
            boss=boss.name,
            threshold_minutes=threshold,
            error=error,
        )

    def _maybe_cleanup(self, now: datetime, result: TickResult) -> None:
        """Prune the dedup store once at the top of each hour."""
        if now.minute != 0:
            return

        hour = now.replace(minute=0, second=0, microsecond=0)
        if self._last_cleanup_hour == hour:
            return

        result.records_cleaned = self.tracker.cleanup()
        self._last_cleanup_hour = hour

    async def check_digest(self, now: Optional[datetime] = None) -> bool:
        """Send the points digest if ``now`` falls on an unsent slot.

        A slot matches when the local hour and minute equal the slot's. The
        slot is remembered only after a successful send, so a failed
        digest is retried on later ticks within the same minute.

        Args:
            now: Evaluation instant (default: the watcher's clock).

        Returns:
            True if a digest was sent.
        """
        if not self.digest.enabled or not self._digest_slots:
            return False

        now = ensure_utc(now) if now is not None else self._clock()
        local = to_local(now, self.digest.timezone)

        slot = next(
            (
                s
                for s in self._digest_slots
                if s.hour == local.hour and s.minute == local.minute
            ),
            None,
        )
        if slot is None:
            return False

        slot_instant = local.replace(second=0, microsecond=0)
        if self._last_digest_slot == slot_instant:
            return False

        points = compute_member_points(
            self.repository.list_history(),
            self.repository.list_members(),
        )
        outcome = await self.sender.send_digest(points)
        if not outcome.success:
            logger.warning(
                "digest_failed",
                slot=slot_instant.isoformat(),
                error=outcome.error,
            )
            return False

        self._last_digest_slot = slot_instant
        logger.info(
            "digest_sent",
            slot=slot_instant.isoformat(),
            members=len(points),
        )
        return True

    def get_status(self) -> Dict[str, Any]:
        """Watcher status for health checks and the CLI."""
        return {
            "tick_count": self.tick_count,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_success_at": (
                self.last_success_at.isoformat() if self.last_success_at else None
            ),
            "last_digest_slot": (
                self._last_digest_slot.isoformat() if self._last_digest_slot else None
            ),
            "dedup_records": len(self.tracker),
            "thresholds_minutes": list(self.thresholds),
        }
