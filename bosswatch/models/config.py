from typing import List
from pydantic import BaseModel, Field, field_validator, model_validator

from bosswatch.models.notification import DiscordConfig
from bosswatch.utils.time_utils import DEFAULT_TIMEZONE, parse_slot


class WatcherSettings(BaseModel):
    """Respawn watcher cadence and dedup settings"""

    thresholds_minutes: List[int] = Field(
        default_factory=lambda: [30, 20, 10, 5, 1],
        min_length=1,
        description="Minutes before respawn at which alerts fire",
    )
    tick_interval_seconds: int = Field(30, ge=5, le=3600)
    proximity_window_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Match window around each alert instant (0 = the tick interval)",
    )
    retention_hours: float = Field(2.0, gt=0, le=48)
    match_tolerance_seconds: float = Field(60.0, gt=0, le=3600)

    @field_validator("thresholds_minutes")
    @classmethod
    def validate_thresholds(cls, v: List[int]) -> List[int]:
        if any(m <= 0 for m in v):
            raise ValueError("Thresholds must be positive minutes")
        # Duplicates would only ever fire once; drop them
        return sorted(set(v), reverse=True)

    @property
    def effective_proximity_seconds(self) -> float:
        """Proximity window, defaulting to the tick interval."""
        if self.proximity_window_seconds > 0:
            return self.proximity_window_seconds
        return float(self.tick_interval_seconds)


class DigestSettings(BaseModel):
    """Attendance points digest schedule"""

    enabled: bool = True
    timezone: str = Field(DEFAULT_TIMEZONE, min_length=1)
    slots: List[str] = Field(
        default_factory=lambda: ["00:00", "06:00", "12:00", "18:00"],
        description="Local times of day (HH:MM) at which the digest is sent",
    )
    top_n: int = Field(20, ge=1, le=100)

    @field_validator("slots")
    @classmethod
    def validate_slots(cls, v: List[str]) -> List[str]:
        for slot in v:
            parse_slot(slot)
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v


class StorageSettings(BaseModel):
    state_path: str = Field("data/guild_state.json", min_length=1)


class HealthSettings(BaseModel):
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)


class LoggingSettings(BaseModel):
    level: str = Field("INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    json_output: bool = True


class AppConfig(BaseModel):
    """Root configuration model"""

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    digest: DigestSettings = Field(default_factory=DigestSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def validate_proximity_window(self) -> "AppConfig":
        watcher = self.watcher
        if watcher.effective_proximity_seconds > watcher.tick_interval_seconds:
            raise ValueError(
                "proximity_window_seconds cannot exceed tick_interval_seconds"
            )
        return self
