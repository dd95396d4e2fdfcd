"""Discord notification service for boss respawn alerts.

Provides async notification delivery via Discord webhooks with:
- Threshold alerts ("Gadwa respawning in 5 minutes")
- Attendance points digest
- Manual guild announcements
- Fail-safe error handling (never breaks the watcher)

Usage:
    from bosswatch.services.discord_service import DiscordNotificationService
    from bosswatch.models.notification import DiscordConfig

    service = DiscordNotificationService(DiscordConfig(webhook_url=url))
    result = await service.send_threshold_alert("Gadwa", 5, owner="Arkane")
"""

from typing import Any, Dict, List, Optional, Protocol
import aiohttp
import structlog

from bosswatch.models.notification import (
    DiscordConfig,
    MemberPoints,
    NotificationResult,
)
from bosswatch.observability.metrics import (
    MetricsContext,
    NOTIFICATIONS_SENT,
    WEBHOOK_DURATION,
)
from bosswatch.utils.exceptions import NotificationError
from bosswatch.utils.time_utils import format_duration, utc_now

logger = structlog.get_logger()

PROVIDER = "discord"

# Embed colors by minutes-before-respawn
THRESHOLD_COLORS = {
    1: 0xFF0000,
    5: 0xFF6600,
    10: 0xFFCC00,
    20: 0x0099FF,
    30: 0x00FF00,
}
DEFAULT_COLOR = 0x808080
DIGEST_COLOR = 0x9B59B6
MANUAL_COLOR = 0x00FF00

URGENCY_LABELS = {
    1: "**URGENT**",
    5: "**INCOMING**",
    10: "**SOON**",
    20: "**HEADS UP**",
    30: "**NOTICE**",
}


class NotificationSender(Protocol):
    """Notification collaborator used by the respawn watcher."""

    async def send_threshold_alert(
        self,
        boss_name: str,
        threshold_minutes: int,
        owner: Optional[str] = None,
    ) -> NotificationResult: ...

    async def send_digest(self, points: List[MemberPoints]) -> NotificationResult: ...


class DiscordMessageBuilder:
    """Builds Discord webhook payloads.

    Each payload is a content line plus a single embed.
    """

    def __init__(self, config: DiscordConfig) -> None:
        self.config = config

    def _base_payload(self, content: str, embed: Dict[str, Any]) -> Dict[str, Any]:
        embed["footer"] = {"text": self.config.footer_text}
        embed["timestamp"] = utc_now().strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

        payload: Dict[str, Any] = {"content": content, "embeds": [embed]}
        if self.config.username:
            payload["username"] = self.config.username
        return payload

    def build_threshold_alert(
        self,
        boss_name: str,
        threshold_minutes: int,
        owner: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build the payload for a minutes-before-respawn alert."""
        time_text = format_duration(threshold_minutes)
        urgency = URGENCY_LABELS.get(threshold_minutes, "**UPDATE**")

        mention = ""
        if (
            self.config.mention
            and threshold_minutes <= self.config.mention_at_or_below_minutes
        ):
            mention = f"{self.config.mention} "

        fields = [
            {"name": "Time Remaining", "value": time_text, "inline": True},
            {"name": "Boss", "value": boss_name, "inline": True},
        ]
        if owner:
            fields.append({"name": "Owner", "value": owner, "inline": True})

        embed = {
            "title": boss_name,
            "description": f"**Respawns in:** {time_text}",
            "color": THRESHOLD_COLORS.get(threshold_minutes, DEFAULT_COLOR),
            "fields": fields,
        }
        content = f"{mention}{urgency} **{boss_name}** respawning in **{time_text}**!"
        return self._base_payload(content, embed)

    def build_digest(
        self,
        points: List[MemberPoints],
        top_n: int = 20,
    ) -> Dict[str, Any]:
        """Build the attendance points digest payload."""
        shown = points[:top_n]
        if shown:
            lines = [
                f"{rank}. **{p.name}**: {p.points} pts"
                for rank, p in enumerate(shown, 1)
            ]
            remaining = len(points) - len(shown)
            if remaining > 0:
                lines.append(f"_...and {remaining} more members_")
            description = "\n".join(lines)
        else:
            description = "_No attendance recorded yet._"

        embed = {
            "title": "Attendance Points",
            "description": description,
            "color": DIGEST_COLOR,
        }
        return self._base_payload("Guild points update", embed)

    def build_manual(self, message: str) -> Dict[str, Any]:
        """Build a manual announcement payload."""
        mention = f"{self.config.mention} " if self.config.mention else ""
        embed = {
            "title": "Manual Notification",
            "description": message,
            "color": MANUAL_COLOR,
        }
        return self._base_payload(f"{mention}{message}", embed)


class DiscordNotificationService:
    """Service for sending Discord webhook notifications.

    All errors are caught and logged; every send returns a
    NotificationResult instead of raising.

    Attributes:
        config: Discord configuration.
        digest_top_n: Maximum members listed in the digest.
    """

    def __init__(self, config: DiscordConfig, digest_top_n: int = 20) -> None:
        self.config = config
        self.digest_top_n = digest_top_n
        self._message_builder = DiscordMessageBuilder(config)

    @property
    def is_configured(self) -> bool:
        """Whether the webhook is enabled and has a URL."""
        return self.config.enabled and self.config.webhook_url is not None

    def ensure_configured(self) -> None:
        """Raise NotificationError if nothing could be delivered.

        Used by one-off commands that should fail loudly instead of
        returning a failed result.
        """
        if not self.config.enabled:
            raise NotificationError("Notifications disabled")
        if not self.config.webhook_url:
            raise NotificationError("Webhook URL not configured")

    async def send_threshold_alert(
        self,
        boss_name: str,
        threshold_minutes: int,
        owner: Optional[str] = None,
    ) -> NotificationResult:
        """Send a minutes-before-respawn alert."""
        payload = self._message_builder.build_threshold_alert(
            boss_name, threshold_minutes, owner
        )
        return await self._post(
            payload,
            kind="threshold",
            boss=boss_name,
            threshold_minutes=threshold_minutes,
        )

    async def send_digest(self, points: List[MemberPoints]) -> NotificationResult:
        """Send the attendance points digest."""
        payload = self._message_builder.build_digest(points, self.digest_top_n)
        return await self._post(payload, kind="digest", members=len(points))

    async def send_manual(self, message: str) -> NotificationResult:
        """Send a manual announcement to the guild channel."""
        if not message or not message.strip():
            return NotificationResult(
                success=False,
                provider=PROVIDER,
                error="Message is required",
            )
        payload = self._message_builder.build_manual(message.strip())
        return await self._post(payload, kind="manual")

    async def _post(
        self,
        payload: Dict[str, Any],
        kind: str,
        **log_context: Any,
    ) -> NotificationResult:
        """Post a payload to the webhook.

        Args:
            payload: Discord webhook JSON body.
            kind: Notification kind for logs and metrics.
            **log_context: Extra fields for log entries.

        Returns:
            NotificationResult with response details.
        """
        if not self.config.enabled:
            logger.debug("discord_notifications_disabled", kind=kind)
            return NotificationResult(
                success=False,
                provider=PROVIDER,
                error="Notifications disabled",
            )

        if not self.config.webhook_url:
            logger.warning("discord_webhook_url_not_configured", kind=kind)
            return NotificationResult(
                success=False,
                provider=PROVIDER,
                error="Webhook URL not configured",
            )

        webhook_url = str(self.config.webhook_url)
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        with MetricsContext(
            histogram=WEBHOOK_DURATION.labels(kind=kind),
            success_counter=NOTIFICATIONS_SENT.labels(kind=kind, status="success"),
            failure_counter=NOTIFICATIONS_SENT.labels(kind=kind, status="failed"),
        ) as metrics:
            try:
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    async with session.post(
                        webhook_url,
                        json=payload,
                        headers={"Content-Type": "application/json"},
                    ) as response:
                        response_status = response.status

                        # Discord answers 204 unless ?wait=true is used
                        if response_status in (200, 204):
                            metrics.mark_success()
                            logger.info(
                                "discord_notification_sent",
                                kind=kind,
                                **log_context,
                            )
                            return NotificationResult(
                                success=True,
                                provider=PROVIDER,
                                response_status=response_status,
                            )

                        response_text = await response.text()
                        logger.warning(
                            "discord_notification_failed",
                            kind=kind,
                            status_code=response_status,
                            response=response_text[:200],
                            **log_context,
                        )
                        return NotificationResult(
                            success=False,
                            provider=PROVIDER,
                            error=f"HTTP {response_status}: {response_text[:100]}",
                            response_status=response_status,
                        )

            except aiohttp.ClientError as e:
                logger.error(
                    "discord_notification_error",
                    kind=kind,
                    error=str(e),
                    error_type=type(e).__name__,
                    **log_context,
                )
                return NotificationResult(
                    success=False,
                    provider=PROVIDER,
                    error=f"HTTP error: {str(e)}",
                )
            except Exception as e:
                # Catch-all: a webhook failure must never stop the watcher
                logger.exception(
                    "discord_notification_unexpected_error",
                    kind=kind,
                    error=str(e),
                    **log_context,
                )
                return NotificationResult(
                    success=False,
                    provider=PROVIDER,
                    error=f"Unexpected error: {str(e)}",
                )
