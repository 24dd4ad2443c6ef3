"""Deployment status notifications to the team's Slack and Discord webhooks."""

from __future__ import annotations

import asyncio
import logging

import httpx

from scribe.config import settings
from scribe.models.deployment import DeploymentData
from scribe.models.enums import ChannelStatus, DeploymentStatus
from scribe.models.notification import ChannelResult

logger = logging.getLogger(__name__)

FOOTER = "Slack Summary Scribe"

_STATUS_EMOJI: dict[DeploymentStatus, str] = {
    DeploymentStatus.STARTED: "\U0001f680",  # 🚀
    DeploymentStatus.SUCCESS: "\u2705",      # ✅
    DeploymentStatus.FAILED: "\u274c",       # ❌
    DeploymentStatus.CANCELLED: "\u23f9\ufe0f",  # ⏹️
}

_STATUS_COLOR: dict[DeploymentStatus, int] = {
    DeploymentStatus.STARTED: 0x36A3EB,
    DeploymentStatus.SUCCESS: 0x28A745,
    DeploymentStatus.FAILED: 0xDC3545,
    DeploymentStatus.CANCELLED: 0x6C757D,
}


def _fields(deployment: DeploymentData) -> list[tuple[str, str, bool]]:
    """(name, value, short) triples shared by both platforms."""
    commit = deployment.commit
    fields = [
        ("Environment", deployment.environment, True),
        ("Branch", deployment.branch, True),
        ("Commit", f"`{commit.sha[:7]}` {commit.message}", False),
        ("Author", commit.author, True),
    ]
    if deployment.duration_ms:
        fields.append(("Duration", f"{round(deployment.duration_ms / 1000)}s", True))
    if deployment.url:
        fields.append(("URL", deployment.url, False))
    if deployment.error:
        fields.append(("Error", deployment.error, False))
    return fields


def build_slack_message(deployment: DeploymentData) -> dict:
    status = deployment.status
    return {
        "text": f"{_STATUS_EMOJI[status]} Deployment {status.value}",
        "attachments": [
            {
                "color": f"#{_STATUS_COLOR[status]:06x}",
                "fields": [
                    {"title": name, "value": value, "short": short}
                    for name, value, short in _fields(deployment)
                ],
                "footer": FOOTER,
                "ts": int(deployment.start_time.timestamp()),
            }
        ],
    }


def build_discord_message(deployment: DeploymentData) -> dict:
    status = deployment.status
    embed = {
        "title": f"{_STATUS_EMOJI[status]} Deployment {status.value.upper()}",
        "color": _STATUS_COLOR[status],
        "fields": [
            {"name": name, "value": value, "inline": short}
            for name, value, short in _fields(deployment)
        ],
        "footer": {"text": FOOTER},
        "timestamp": deployment.start_time.isoformat(),
    }
    return {"embeds": [embed]}


class DeploymentNotifier:
    """Posts a deployment's status to every configured team webhook at once.

    Each destination is independent: a Discord outage still lets the Slack
    message through. ``notify`` never raises.
    """

    def __init__(
        self,
        slack_webhook_url: str | None = None,
        discord_webhook_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.slack_webhook_url = slack_webhook_url
        self.discord_webhook_url = discord_webhook_url
        self.timeout = timeout if timeout is not None else settings.notification_timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> DeploymentNotifier:
        return cls(
            slack_webhook_url=settings.deployment_slack_webhook_url,
            discord_webhook_url=settings.deployment_discord_webhook_url,
            transport=transport,
        )

    async def notify(self, deployment: DeploymentData) -> dict[str, ChannelResult]:
        logger.info(
            "Sending deployment notifications for %s (status=%s, environment=%s)",
            deployment.id,
            deployment.status.value,
            deployment.environment,
        )
        slack, discord = await asyncio.gather(
            self._post("slack", self.slack_webhook_url, build_slack_message(deployment)),
            self._post("discord", self.discord_webhook_url, build_discord_message(deployment)),
        )
        return {"slack": slack, "discord": discord}

    async def _post(self, channel: str, url: str | None, payload: dict) -> ChannelResult:
        if not url:
            logger.debug("%s webhook URL not configured for deployment notifications", channel)
            return ChannelResult(channel=channel, status=ChannelStatus.SKIPPED, error="webhook URL not configured")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("%s deployment notification failed: %s", channel, exc)
            return ChannelResult(
                channel=channel, status=ChannelStatus.FAILED, error=str(exc) or exc.__class__.__name__
            )

        if not response.is_success:
            error = f"{channel} webhook failed: {response.status_code} {response.reason_phrase}".rstrip()
            logger.warning("Deployment notification rejected: %s", error)
            return ChannelResult(channel=channel, status=ChannelStatus.FAILED, error=error)
        return ChannelResult(channel=channel, status=ChannelStatus.DELIVERED)
