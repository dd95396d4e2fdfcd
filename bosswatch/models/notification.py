"""Notification models.

Provides Pydantic models for:
- DiscordConfig: Discord webhook and alert settings
- NotificationRecord: A sent threshold alert kept for deduplication
- NotificationResult: Outcome of a webhook delivery attempt
- MemberPoints: Aggregated attendance points for the digest

Usage:
    from bosswatch.models.notification import DiscordConfig

    config = DiscordConfig(
        enabled=True,
        webhook_url="https://discord.com/api/webhooks/...",
    )
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator


class DiscordConfig(BaseModel):
    """Configuration for Discord webhook notifications.

    Attributes:
        enabled: Whether Discord notifications are enabled.
        webhook_url: Discord webhook URL (from environment variable).
        username: Optional webhook username override.
        mention: Mention prefix added to urgent alerts (e.g., "@everyone").
        mention_at_or_below_minutes: Alerts at or below this many minutes
            before respawn carry the mention.
        timeout_seconds: HTTP request timeout for webhook calls.
        footer_text: Footer shown on every embed.
    """

    enabled: bool = Field(default=True, description="Enable Discord notifications")
    webhook_url: Optional[HttpUrl] = Field(
        default=None, description="Discord webhook URL from ${DISCORD_WEBHOOK_URL}"
    )
    username: Optional[str] = Field(default=None, max_length=80)
    mention: Optional[str] = Field(default="@everyone", max_length=50)
    mention_at_or_below_minutes: int = Field(default=5, ge=0, le=1440)
    timeout_seconds: float = Field(
        default=10.0,
        ge=1.0,
        le=60.0,
        description="HTTP timeout for webhook requests",
    )
    footer_text: str = Field(default="Boss Hunting System", max_length=100)

    @field_validator("webhook_url", mode="before")
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        """Allow None, empty string or an unsubstituted placeholder (disabled)."""
        if v is None or v == "" or v == "${DISCORD_WEBHOOK_URL}":
            return None
        return v

    @field_validator("mention")
    @classmethod
    def validate_mention(cls, v: Optional[str]) -> Optional[str]:
        """Validate Discord mention format."""
        if v is None or v == "":
            return None
        valid_prefixes = ("@everyone", "@here", "<@")
        if not any(v.startswith(prefix) for prefix in valid_prefixes):
            raise ValueError(
                "Mention must be a valid Discord mention "
                "(e.g., @everyone, @here, <@&ROLE_ID>)"
            )
        return v


class NotificationRecord(BaseModel):
    """A threshold alert that has already been sent.

    Immutable once created. Two records describe the same respawn cycle
    when their boss, threshold and respawn instants match within the
    store's tolerance.

    Attributes:
        boss_id: Boss identifier.
        threshold_minutes: Minutes-before-respawn threshold that fired.
        respawn_at: Target respawn instant the alert was sent for.
        sent_at: When the alert was recorded.
    """

    model_config = ConfigDict(frozen=True)

    boss_id: int
    threshold_minutes: int = Field(..., ge=0)
    respawn_at: datetime
    sent_at: datetime


class NotificationResult(BaseModel):
    """Result of a notification attempt.

    Attributes:
        success: Whether the notification was sent successfully.
        provider: Provider name (e.g., "discord").
        error: Error message if failed.
        response_status: HTTP response status code.
    """

    success: bool = Field(..., description="Whether notification succeeded")
    provider: str = Field(..., description="Notification provider name")
    error: Optional[str] = Field(default=None, description="Error message if failed")
    response_status: Optional[int] = Field(
        default=None, description="HTTP response status"
    )


class MemberPoints(BaseModel):
    """Attendance points for one guild member.

    Attributes:
        name: Member name as written in attendance lists.
        points: Points earned (one per attended boss).
        attendances: Number of history records the member attended.
    """

    name: str = Field(..., min_length=1)
    points: int = Field(default=0, ge=0)
    attendances: int = Field(default=0, ge=0)
