"""Guild state models.

Provides Pydantic models for the read-only guild state consumed by the
watcher:
- TrackedBoss: A boss with a cyclical respawn period
- BossDefeat: A defeat or manual history entry with loot and attendees
- Member: A guild roster entry
- GuildState: Container persisted as the JSON state file
"""

from datetime import datetime, timedelta
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from bosswatch.utils.time_utils import ensure_utc

# One year; anything longer is treated as bad data
MAX_RESPAWN_HOURS = 24 * 365


class TrackedBoss(BaseModel):
    """A boss whose respawn timer is being tracked.

    Attributes:
        id: Boss identifier.
        name: Display name used in notifications.
        respawn_hours: Respawn period in hours. Unusable values (see
            has_valid_period) are accepted here and skipped by the watcher.
        last_killed_at: Timestamp of last known defeat (UTC).
        owner: Optional owner label shown alongside alerts.
    """

    id: int
    name: str = Field(..., min_length=1, max_length=100)
    respawn_hours: float
    last_killed_at: datetime
    owner: Optional[str] = Field(default=None, max_length=100)

    @field_validator("last_killed_at")
    @classmethod
    def normalize_last_killed_at(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        return ensure_utc(v)

    @field_validator("owner")
    @classmethod
    def blank_owner_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def respawn_period(self) -> timedelta:
        """Respawn period as a timedelta."""
        return timedelta(hours=self.respawn_hours)

    @property
    def has_valid_period(self) -> bool:
        """Whether the respawn period is usable for scheduling.

        Periods outside (0, MAX_RESPAWN_HOURS] (NaN included) are rejected,
        as are periods whose respawn instant overflows datetime.
        """
        if not 0 < self.respawn_hours <= MAX_RESPAWN_HOURS:
            return False
        try:
            self.respawn_at
        except OverflowError:
            return False
        return True

    @property
    def respawn_at(self) -> datetime:
        """Computed respawn instant (last defeat + period)."""
        return self.last_killed_at + self.respawn_period


class BossDefeat(BaseModel):
    """A defeat or history record.

    ``defeated_at`` is None for manual history entries, which record
    attendance without resetting the respawn timer.
    """

    id: int
    boss_id: int
    boss_name: str = Field(..., min_length=1, max_length=100)
    defeated_at: Optional[datetime] = None
    loots: List[str] = Field(default_factory=list)
    attendees: List[str] = Field(default_factory=list)

    @field_validator("defeated_at")
    @classmethod
    def normalize_defeated_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @field_validator("loots", "attendees", mode="before")
    @classmethod
    def drop_blank_entries(cls, v: Optional[List[str]]) -> List[str]:
        """Strip whitespace and drop empty strings (legacy "" columns)."""
        if v is None or v == "":
            return []
        return [item.strip() for item in v if item and item.strip()]


class Member(BaseModel):
    """Guild roster entry."""

    id: int
    name: str = Field(..., min_length=1, max_length=100)
    combat_power: int = Field(default=0, ge=0)


class GuildState(BaseModel):
    """Persisted guild state (bosses, history, members)."""

    bosses: List[TrackedBoss] = Field(default_factory=list)
    history: List[BossDefeat] = Field(default_factory=list)
    members: List[Member] = Field(default_factory=list)
