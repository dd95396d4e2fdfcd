"""Unit tests for attendance points aggregation."""

from datetime import datetime, timezone

from bosswatch.models.boss import BossDefeat, Member
from bosswatch.services.points_service import compute_member_points


def defeat(record_id, attendees, defeated_at=None):
    return BossDefeat(
        id=record_id,
        boss_id=1,
        boss_name="Gadwa",
        defeated_at=defeated_at,
        attendees=attendees,
    )


def test_one_point_per_attendance():
    """Each attended record is worth one point"""
    history = [
        defeat(1, ["Aria", "Bram"]),
        defeat(2, ["Aria"]),
    ]

    points = compute_member_points(history)

    assert [(p.name, p.points) for p in points] == [("Aria", 2), ("Bram", 1)]
    assert points[0].attendances == 2


def test_names_match_case_insensitively():
    """Spelling variants of the same name are merged"""
    history = [defeat(1, ["aria"]), defeat(2, ["ARIA"])]
    members = [Member(id=1, name="Aria")]

    points = compute_member_points(history, members)

    assert len(points) == 1
    assert points[0].name == "Aria"
    assert points[0].points == 2


def test_duplicate_on_same_record_counted_once():
    """A name listed twice on one record earns one point"""
    points = compute_member_points([defeat(1, ["Aria", "aria", "Aria"])])

    assert points[0].points == 1


def test_roster_members_without_attendance_get_zero():
    """Idle roster members are listed last with zero points"""
    members = [Member(id=1, name="Aria"), Member(id=2, name="Dara")]

    points = compute_member_points([defeat(1, ["Aria"])], members)

    assert [(p.name, p.points) for p in points] == [("Aria", 1), ("Dara", 0)]


def test_ties_sorted_by_name():
    points = compute_member_points([defeat(1, ["cyd", "Bram", "Aria"])])

    assert [p.name for p in points] == ["Aria", "Bram", "cyd"]


def test_since_filters_old_defeats():
    """Records before `since` are ignored, undated records always count"""
    cutoff = datetime(2026, 10, 1, tzinfo=timezone.utc)
    history = [
        defeat(1, ["Aria"], datetime(2026, 9, 30, tzinfo=timezone.utc)),
        defeat(2, ["Bram"], datetime(2026, 10, 2, tzinfo=timezone.utc)),
        defeat(3, ["Cyd"]),
    ]

    points = compute_member_points(history, since=cutoff)

    assert {p.name for p in points} == {"Bram", "Cyd"}


def test_empty_history():
    assert compute_member_points([]) == []
