"""Attendance points aggregation.

Each history record a member attended is worth one point. Manual history
entries (no defeat timestamp) count the same as recorded defeats. Roster
members with no attendance are listed with zero points.
"""

from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from bosswatch.models.boss import BossDefeat, Member
from bosswatch.models.notification import MemberPoints

POINTS_PER_ATTENDANCE = 1


def compute_member_points(
    history: Iterable[BossDefeat],
    members: Optional[Iterable[Member]] = None,
    since: Optional[datetime] = None,
) -> List[MemberPoints]:
    """Aggregate attendance points per member.

    Names are matched case-insensitively; the roster spelling wins, then
    the first spelling seen in history. A member listed twice on the same
    record is counted once.

    Args:
        history: Defeat and history records.
        members: Optional roster; members without attendance get 0 points.
        since: Only count records defeated at or after this instant.
            Records without a defeat timestamp are always counted.

    Returns:
        Points sorted by points descending, then name.
    """
    display_names: Dict[str, str] = {}
    for member in members or []:
        display_names.setdefault(member.name.casefold(), member.name)

    attendance: Counter = Counter()
    for record in history:
        if since is not None and record.defeated_at is not None:
            if record.defeated_at < since:
                continue

        seen_on_record = set()
        for name in record.attendees:
            key = name.casefold()
            if key in seen_on_record:
                continue
            seen_on_record.add(key)
            display_names.setdefault(key, name)
            attendance[key] += 1

    points = [
        MemberPoints(
            name=display_names[key],
            points=attendance[key] * POINTS_PER_ATTENDANCE,
            attendances=attendance[key],
        )
        for key in display_names
    ]
    points.sort(key=lambda p: (-p.points, p.name.casefold()))
    return points
