"""Notification dedup store for boss respawn alerts.

Remembers which (boss, threshold, respawn instant) alerts have already
been sent so each threshold fires at most once per respawn cycle. Respawn
instants can shift slightly between polls when a defeat time is edited,
so matching uses a tolerance window instead of exact equality.

Usage:
    from bosswatch.services.notification_tracker import NotificationDedupStore

    store = NotificationDedupStore()
    if store.claim(boss.id, 5, boss.respawn_at):
        ...  # dispatch; call store.discard(...) if delivery failed

    # Roughly once per hour
    store.cleanup()
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional
import structlog

from bosswatch.models.notification import NotificationRecord
from bosswatch.observability.metrics import DEDUP_RECORDS
from bosswatch.utils.time_utils import ensure_utc, utc_now

logger = structlog.get_logger()

DEFAULT_RETENTION = timedelta(hours=2)
DEFAULT_MATCH_TOLERANCE = timedelta(minutes=1)


class NotificationDedupStore:
    """In-memory record of sent threshold alerts.

    All reads and writes go through a single re-entrant lock. ``claim``
    runs the check and the record inside one critical section so two
    concurrent callers cannot both observe "not yet sent".

    The store is an ordinary instance owned by whoever wires the watcher;
    there is no process-wide state. It assumes a single running instance:
    horizontally scaled deployments would need shared storage.

    Attributes:
        retention: How long a record is kept, measured from ``sent_at``.
        match_tolerance: Maximum distance between respawn instants that
            still counts as the same cycle (exclusive).
    """

    def __init__(
        self,
        retention: timedelta = DEFAULT_RETENTION,
        match_tolerance: timedelta = DEFAULT_MATCH_TOLERANCE,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize the dedup store.

        Args:
            retention: Record retention window (default: 2 hours).
            match_tolerance: Respawn instant tolerance (default: 1 minute).
            clock: Callable returning the current aware datetime. Defaults
                to UTC wall-clock time.
        """
        self.retention = retention
        self.match_tolerance = match_tolerance
        self._clock = clock or utc_now
        self._records: List[NotificationRecord] = []
        self._lock = threading.RLock()

    def _matches(
        self,
        record: NotificationRecord,
        boss_id: int,
        threshold_minutes: int,
        respawn_at: datetime,
    ) -> bool:
        return (
            record.boss_id == boss_id
            and record.threshold_minutes == threshold_minutes
            and abs(record.respawn_at - respawn_at) < self.match_tolerance
        )

    def should_send(
        self,
        boss_id: int,
        threshold_minutes: int,
        respawn_at: datetime,
    ) -> bool:
        """Check whether an alert has not been sent yet for this cycle.

        Read-only; safe to call repeatedly.

        Args:
            boss_id: Boss identifier.
            threshold_minutes: Minutes-before-respawn threshold.
            respawn_at: Target respawn instant.

        Returns:
            True if no record matches the triple within tolerance.
        """
        respawn_at = ensure_utc(respawn_at)
        with self._lock:
            return not any(
                self._matches(r, boss_id, threshold_minutes, respawn_at)
                for r in self._records
            )

    def record(
        self,
        boss_id: int,
        threshold_minutes: int,
        respawn_at: datetime,
    ) -> NotificationRecord:
        """Record a sent alert with ``sent_at`` set to now.

        Does not enforce uniqueness; callers check ``should_send`` first or
        use ``claim``.

        Returns:
            The stored NotificationRecord.
        """
        entry = NotificationRecord(
            boss_id=boss_id,
            threshold_minutes=threshold_minutes,
            respawn_at=ensure_utc(respawn_at),
            sent_at=self._clock(),
        )
        with self._lock:
            self._records.append(entry)
            DEDUP_RECORDS.set(len(self._records))
        return entry

    def claim(
        self,
        boss_id: int,
        threshold_minutes: int,
        respawn_at: datetime,
    ) -> bool:
        """Atomically check and record an alert.

        Returns:
            True if the caller now owns the alert and should dispatch it,
            False if it was already sent for this cycle.
        """
        with self._lock:
            if not self.should_send(boss_id, threshold_minutes, respawn_at):
                return False
            self.record(boss_id, threshold_minutes, respawn_at)
            return True

    def discard(
        self,
        boss_id: int,
        threshold_minutes: int,
        respawn_at: datetime,
    ) -> int:
        """Remove records matching the triple.

        Rolls back a ``claim`` whose dispatch failed so a later tick can
        retry it.

        Returns:
            Number of records removed.
        """
        respawn_at = ensure_utc(respawn_at)
        with self._lock:
            before = len(self._records)
            self._records = [
                r
                for r in self._records
                if not self._matches(r, boss_id, threshold_minutes, respawn_at)
            ]
            removed = before - len(self._records)
            DEDUP_RECORDS.set(len(self._records))

        if removed:
            logger.debug(
                "notification_record_discarded",
                boss_id=boss_id,
                threshold_minutes=threshold_minutes,
            )
        return removed

    def cleanup(self) -> int:
        """Remove records older than the retention window.

        Returns:
            Number of records removed.
        """
        cutoff = self._clock() - self.retention
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.sent_at >= cutoff]
            removed = before - len(self._records)
            remaining = len(self._records)
            DEDUP_RECORDS.set(remaining)

        logger.info(
            "notification_records_cleaned",
            removed=removed,
            remaining=remaining,
        )
        return removed

    def records(self) -> List[NotificationRecord]:
        """Snapshot of current records, oldest first."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
