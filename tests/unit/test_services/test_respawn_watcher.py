"""Unit tests for RespawnWatcher.

Tests cover:
- Threshold proximity matching and its inclusive boundary
- At-most-once dispatch per cycle across ticks
- Retry after a failed dispatch
- Persistence failures and malformed bosses
- Hourly cleanup and digest slots
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from bosswatch.models.boss import BossDefeat, GuildState, Member, TrackedBoss
from bosswatch.models.config import DigestSettings, WatcherSettings
from bosswatch.models.notification import MemberPoints, NotificationResult
from bosswatch.services.guild_store import InMemoryGuildStore
from bosswatch.services.respawn_watcher import RespawnWatcher
from bosswatch.utils.exceptions import RepositoryError


# 13:37 UTC is 21:37 PHT: no threshold lands on a digest slot or minute 0
RESPAWN = datetime(2026, 10, 18, 13, 37, 0, tzinfo=timezone.utc)


class RecordingSender:
    """Notification sender double that records every call."""

    def __init__(self, success: bool = True, raises: Optional[Exception] = None):
        self.success = success
        self.raises = raises
        self.alerts: List[tuple] = []
        self.digests: List[List[MemberPoints]] = []

    async def send_threshold_alert(
        self,
        boss_name: str,
        threshold_minutes: int,
        owner: Optional[str] = None,
    ) -> NotificationResult:
        self.alerts.append((boss_name, threshold_minutes, owner))
        if self.raises is not None:
            raise self.raises
        return NotificationResult(
            success=self.success,
            provider="test",
            error=None if self.success else "HTTP 500: boom",
        )

    async def send_digest(self, points: List[MemberPoints]) -> NotificationResult:
        self.digests.append(points)
        return NotificationResult(
            success=self.success,
            provider="test",
            error=None if self.success else "HTTP 500: boom",
        )


class FailingRepository:
    """Repository whose reads always fail."""

    def list_bosses(self):
        raise RepositoryError("Guild state file not found: missing.json")

    def list_history(self):
        raise RepositoryError("Guild state file not found: missing.json")

    def list_members(self):
        raise RepositoryError("Guild state file not found: missing.json")


def make_boss(
    boss_id: int = 1,
    name: str = "Gadwa",
    respawn_hours: float = 10,
    respawn_at: datetime = RESPAWN,
    owner: Optional[str] = None,
) -> TrackedBoss:
    period = timedelta(hours=respawn_hours if respawn_hours > 0 else 1)
    return TrackedBoss(
        id=boss_id,
        name=name,
        respawn_hours=respawn_hours,
        last_killed_at=respawn_at - period,
        owner=owner,
    )


def make_watcher(
    bosses: List[TrackedBoss],
    sender: RecordingSender,
    thresholds: Optional[List[int]] = None,
    digest_enabled: bool = False,
    history: Optional[List[BossDefeat]] = None,
    members: Optional[List[Member]] = None,
) -> RespawnWatcher:
    settings = WatcherSettings(thresholds_minutes=thresholds or [30, 20, 10, 5, 1])
    store = InMemoryGuildStore(
        GuildState(bosses=bosses, history=history or [], members=members or [])
    )
    return RespawnWatcher(
        repository=store,
        sender=sender,
        settings=settings,
        digest=DigestSettings(enabled=digest_enabled),
    )


def notify_at(minutes: int) -> datetime:
    return RESPAWN - timedelta(minutes=minutes)


class TestThresholdMatching:
    """Tests for proximity window matching."""

    @pytest.mark.asyncio
    async def test_fires_at_alert_instant(self) -> None:
        """An alert fires when now equals the alert instant."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender)

        result = await watcher.tick(notify_at(30))

        assert sender.alerts == [("Gadwa", 30, None)]
        assert len(result.alerts_sent) == 1
        assert result.alerts_sent[0].threshold_minutes == 30
        assert result.alerts_sent[0].respawn_at == RESPAWN

    @pytest.mark.asyncio
    async def test_fires_at_inclusive_boundary(self) -> None:
        """Exactly 30 seconds past the alert instant still fires."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender, thresholds=[5])

        await watcher.tick(notify_at(5) + timedelta(seconds=30))

        assert sender.alerts == [("Gadwa", 5, None)]

    @pytest.mark.asyncio
    async def test_does_not_fire_past_boundary(self) -> None:
        """31 seconds past the alert instant is outside the window."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender, thresholds=[5])

        result = await watcher.tick(notify_at(5) + timedelta(seconds=31))

        assert sender.alerts == []
        assert result.alerts_sent == []

    @pytest.mark.asyncio
    async def test_fires_before_alert_instant(self) -> None:
        """The window is symmetric around the alert instant."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender, thresholds=[10])

        await watcher.tick(notify_at(10) - timedelta(seconds=30))

        assert sender.alerts == [("Gadwa", 10, None)]

    @pytest.mark.asyncio
    async def test_no_alert_between_thresholds(self) -> None:
        """Nothing fires when no alert instant is near."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender)

        result = await watcher.tick(notify_at(15))

        assert sender.alerts == []
        assert result.bosses_evaluated == 1

    @pytest.mark.asyncio
    async def test_owner_is_passed_to_sender(self) -> None:
        """The owner label decorates the alert."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss(owner="Arkane")], sender, thresholds=[5])

        await watcher.tick(notify_at(5))

        assert sender.alerts == [("Gadwa", 5, "Arkane")]

    @pytest.mark.asyncio
    async def test_multiple_bosses_in_one_tick(self) -> None:
        """Every boss due at the same instant is alerted."""
        sender = RecordingSender()
        bosses = [
            make_boss(1, "Gadwa"),
            make_boss(2, "Venatus", respawn_hours=5),
        ]
        watcher = make_watcher(bosses, sender, thresholds=[20])

        result = await watcher.tick(notify_at(20))

        assert [a[0] for a in sender.alerts] == ["Gadwa", "Venatus"]
        assert len(result.alerts_sent) == 2


class TestDeduplication:
    """Tests for at-most-once dispatch across ticks."""

    @pytest.mark.asyncio
    async def test_consecutive_ticks_send_once(self) -> None:
        """A second tick inside the window does not re-send."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender, thresholds=[5])

        await watcher.tick(notify_at(5) - timedelta(seconds=20))
        second = await watcher.tick(notify_at(5) + timedelta(seconds=10))

        assert len(sender.alerts) == 1
        assert second.alerts_sent == []

    @pytest.mark.asyncio
    async def test_gadwa_scenario(self) -> None:
        """5 minute alert once, then a separate 1 minute alert."""
        t0 = datetime(2026, 10, 18, 3, 10, 0, tzinfo=timezone.utc)
        boss = TrackedBoss(id=1, name="Gadwa", respawn_hours=1, last_killed_at=t0)
        sender = RecordingSender()
        watcher = make_watcher([boss], sender, thresholds=[5, 1])

        five_before = t0 + timedelta(hours=1) - timedelta(minutes=5)
        await watcher.tick(five_before)
        await watcher.tick(five_before + timedelta(seconds=10))
        await watcher.tick(t0 + timedelta(hours=1) - timedelta(minutes=1))

        assert sender.alerts == [("Gadwa", 5, None), ("Gadwa", 1, None)]
        assert len(watcher.tracker) == 2

    @pytest.mark.asyncio
    async def test_small_respawn_edit_does_not_resend(self) -> None:
        """Editing the defeat time by seconds keeps the same cycle."""
        sender = RecordingSender()
        store = InMemoryGuildStore(GuildState(bosses=[make_boss()]))
        watcher = RespawnWatcher(
            repository=store,
            sender=sender,
            settings=WatcherSettings(thresholds_minutes=[5]),
            digest=DigestSettings(enabled=False),
        )

        await watcher.tick(notify_at(5))
        store.state.bosses[0] = make_boss(respawn_at=RESPAWN + timedelta(seconds=45))
        await watcher.tick(notify_at(5) + timedelta(seconds=20))

        assert len(sender.alerts) == 1


class TestFailureHandling:
    """Tests for dispatch and persistence failures."""

    @pytest.mark.asyncio
    async def test_failed_dispatch_is_retried_next_tick(self) -> None:
        """An unsuccessful send is not recorded, so the next tick retries."""
        sender = RecordingSender(success=False)
        watcher = make_watcher([make_boss()], sender, thresholds=[5])

        first = await watcher.tick(notify_at(5) - timedelta(seconds=25))

        assert first.alerts_failed == 1
        assert len(watcher.tracker) == 0

        sender.success = True
        second = await watcher.tick(notify_at(5) + timedelta(seconds=5))

        assert len(second.alerts_sent) == 1
        assert len(sender.alerts) == 2
        assert len(watcher.tracker) == 1

    @pytest.mark.asyncio
    async def test_raising_sender_does_not_stop_other_bosses(self) -> None:
        """An exception from the sender is contained to that alert."""

        class FlakySender(RecordingSender):
            async def send_threshold_alert(
                self, boss_name, threshold_minutes, owner=None
            ):
                if boss_name == "Gadwa":
                    self.alerts.append((boss_name, threshold_minutes, owner))
                    raise ConnectionError("webhook unreachable")
                return await super().send_threshold_alert(
                    boss_name, threshold_minutes, owner
                )

        sender = FlakySender()
        bosses = [make_boss(1, "Gadwa"), make_boss(2, "Venatus")]
        watcher = make_watcher(bosses, sender, thresholds=[10])

        result = await watcher.tick(notify_at(10))

        assert result.alerts_failed == 1
        assert [a.boss_name for a in result.alerts_sent] == ["Venatus"]
        assert result.aborted is False

    @pytest.mark.asyncio
    async def test_repository_failure_aborts_tick(self) -> None:
        """A persistence failure aborts the tick with no dispatch."""
        sender = RecordingSender()
        watcher = RespawnWatcher(
            repository=FailingRepository(),
            sender=sender,
            digest=DigestSettings(enabled=False),
        )

        result = await watcher.tick(notify_at(5))

        assert result.aborted is True
        assert "Failed to load bosses" in result.error
        assert sender.alerts == []
        assert watcher.last_success_at is None
        assert watcher.tick_count == 1

    @pytest.mark.asyncio
    async def test_invalid_period_is_skipped(self) -> None:
        """Bosses with a non-positive respawn period are never alerted."""
        sender = RecordingSender()
        bosses = [
            make_boss(1, "Broken", respawn_hours=0),
            make_boss(2, "Gadwa"),
        ]
        watcher = make_watcher(bosses, sender, thresholds=[5])

        result = await watcher.tick(notify_at(5))

        assert result.bosses_skipped == 1
        assert result.bosses_evaluated == 1
        assert sender.alerts == [("Gadwa", 5, None)]

    @pytest.mark.asyncio
    async def test_overflowing_period_does_not_block_other_bosses(self) -> None:
        """A boss whose respawn instant overflows is skipped, later bosses still fire."""
        sender = RecordingSender()
        bosses = [
            TrackedBoss(
                id=1, name="Ancient", respawn_hours=1e9, last_killed_at=RESPAWN
            ),
            make_boss(2, "Viorent"),
        ]
        watcher = make_watcher(bosses, sender, thresholds=[5])

        result = await watcher.tick(notify_at(5))

        assert result.aborted is False
        assert result.bosses_skipped == 1
        assert sender.alerts == [("Viorent", 5, None)]

    @pytest.mark.asyncio
    async def test_evaluation_error_is_isolated_per_boss(self) -> None:
        """An unexpected error on one boss is logged and the tick continues."""
        sender = RecordingSender()
        watcher = make_watcher(
            [make_boss(1, "Gadwa"), make_boss(2, "Viorent")], sender, thresholds=[5]
        )
        claim = watcher.tracker.claim

        def flaky_claim(boss_id, threshold, respawn_at):
            if boss_id == 1:
                raise RuntimeError("lock poisoned")
            return claim(boss_id, threshold, respawn_at)

        watcher.tracker.claim = flaky_claim

        result = await watcher.tick(notify_at(5))

        assert result.aborted is False
        assert result.bosses_skipped == 1
        assert sender.alerts == [("Viorent", 5, None)]


class TestCleanup:
    """Tests for the top-of-hour dedup cleanup."""

    @pytest.mark.asyncio
    async def test_cleanup_runs_at_top_of_hour(self) -> None:
        """Expired records are pruned when the tick lands on minute 0."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender, thresholds=[5])
        watcher.tracker._clock = lambda: RESPAWN - timedelta(hours=3)
        watcher.tracker.record(9, 30, RESPAWN - timedelta(hours=2))
        top_of_hour = datetime(2026, 10, 18, 14, 0, tzinfo=timezone.utc)
        watcher.tracker._clock = lambda: top_of_hour

        result = await watcher.tick(top_of_hour + timedelta(seconds=10))

        assert result.records_cleaned == 1
        assert len(watcher.tracker) == 0

    @pytest.mark.asyncio
    async def test_cleanup_runs_once_per_hour(self) -> None:
        """Two ticks in the same top-of-hour minute clean only once."""
        sender = RecordingSender()
        watcher = make_watcher([], sender)
        calls = []
        watcher.tracker.cleanup = lambda: calls.append(1) or 0

        await watcher.tick(datetime(2026, 10, 18, 14, 0, 5, tzinfo=timezone.utc))
        await watcher.tick(datetime(2026, 10, 18, 14, 0, 35, tzinfo=timezone.utc))
        await watcher.tick(datetime(2026, 10, 18, 14, 1, 5, tzinfo=timezone.utc))

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_no_cleanup_mid_hour(self) -> None:
        """Cleanup only triggers at minute 0."""
        sender = RecordingSender()
        watcher = make_watcher([], sender)
        calls = []
        watcher.tracker.cleanup = lambda: calls.append(1) or 0

        await watcher.tick(datetime(2026, 10, 18, 14, 30, tzinfo=timezone.utc))

        assert calls == []


class TestDigest:
    """Tests for the attendance points digest."""

    # 22:00 UTC on the 17th is 06:00 PHT on the 18th
    SIX_AM_PHT = datetime(2026, 10, 17, 22, 0, 0, tzinfo=timezone.utc)

    def _watcher(self, sender: RecordingSender) -> RespawnWatcher:
        history = [
            BossDefeat(
                id=1,
                boss_id=1,
                boss_name="Gadwa",
                defeated_at=RESPAWN - timedelta(hours=10),
                attendees=["Aria", "Bram"],
            ),
            BossDefeat(id=2, boss_id=1, boss_name="Gadwa", attendees=["Aria"]),
        ]
        members = [Member(id=1, name="Aria"), Member(id=2, name="Cyd")]
        return make_watcher(
            [], sender, digest_enabled=True, history=history, members=members
        )

    @pytest.mark.asyncio
    async def test_digest_sent_at_slot(self) -> None:
        """A tick at a slot minute sends the points digest."""
        sender = RecordingSender()
        watcher = self._watcher(sender)

        result = await watcher.tick(self.SIX_AM_PHT)

        assert result.digest_sent is True
        points = {p.name: p.points for p in sender.digests[0]}
        assert points == {"Aria": 2, "Bram": 1, "Cyd": 0}

    @pytest.mark.asyncio
    async def test_digest_once_per_slot(self) -> None:
        """A later tick in the same slot minute does not resend."""
        sender = RecordingSender()
        watcher = self._watcher(sender)

        await watcher.tick(self.SIX_AM_PHT)
        second = await watcher.tick(self.SIX_AM_PHT + timedelta(seconds=30))

        assert second.digest_sent is False
        assert len(sender.digests) == 1

    @pytest.mark.asyncio
    async def test_digest_sent_again_at_next_slot(self) -> None:
        """The next slot (12:00 PHT) sends a new digest."""
        sender = RecordingSender()
        watcher = self._watcher(sender)

        await watcher.tick(self.SIX_AM_PHT)
        await watcher.tick(self.SIX_AM_PHT + timedelta(hours=6))

        assert len(sender.digests) == 2
        assert watcher.last_digest_slot.hour == 12

    @pytest.mark.asyncio
    async def test_no_digest_outside_slot(self) -> None:
        """Ticks outside slot minutes send nothing."""
        sender = RecordingSender()
        watcher = self._watcher(sender)

        sent = await watcher.check_digest(self.SIX_AM_PHT + timedelta(minutes=1))

        assert sent is False
        assert sender.digests == []

    @pytest.mark.asyncio
    async def test_failed_digest_is_retried_in_same_minute(self) -> None:
        """The slot is only remembered after a successful send."""
        sender = RecordingSender(success=False)
        watcher = self._watcher(sender)

        assert await watcher.check_digest(self.SIX_AM_PHT) is False
        assert watcher.last_digest_slot is None

        sender.success = True
        retry_at = self.SIX_AM_PHT + timedelta(seconds=30)
        assert await watcher.check_digest(retry_at) is True

    @pytest.mark.asyncio
    async def test_disabled_digest(self) -> None:
        """No digest when disabled in settings."""
        sender = RecordingSender()
        watcher = make_watcher([], sender, digest_enabled=False)

        assert await watcher.check_digest(self.SIX_AM_PHT) is False


class TestStatus:
    """Tests for watcher status reporting."""

    @pytest.mark.asyncio
    async def test_status_after_tick(self) -> None:
        """Status reflects the last tick and dedup size."""
        sender = RecordingSender()
        watcher = make_watcher([make_boss()], sender, thresholds=[5])

        await watcher.tick(notify_at(5))
        status = watcher.get_status()

        assert status["tick_count"] == 1
        assert status["last_success_at"] == notify_at(5).isoformat()
        assert status["dedup_records"] == 1
        assert status["thresholds_minutes"] == [5]

    def test_default_window_and_thresholds(self) -> None:
        """Defaults: 30 second window and the five standard thresholds."""
        watcher = make_watcher([], RecordingSender())

        assert watcher.proximity_window == timedelta(seconds=30)
        assert watcher.thresholds == [30, 20, 10, 5, 1]
