"""
Outbound delivery of block watch alerts.

A watch can have a Slack incoming webhook, an email address, or both.
The notifier sends one message to every configured channel and raises
``DeliveryError`` if any of them fails, so the scheduler leaves the
notification unsent and retries it on a later cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from blocktime.config import Settings
from blocktime.db.models import BlockWatch
from blocktime.email.service import BaseEmailProvider, create_provider
from blocktime.email.templates import block_alert, headline
from blocktime.networks import network_label
from blocktime.notifications.calendar import CalendarLinks, build_calendar_links

logger = structlog.get_logger()


class DeliveryError(Exception):
    """A channel rejected or failed to accept a message."""


@dataclass(frozen=True)
class DeliveryMessage:
    watch_id: str
    tier: str
    target_height: int
    network: str
    network_label: str
    current_height: int
    blocks_remaining: int
    estimated_time: datetime
    calendar_links: CalendarLinks
    title: str = ""


class SlackWebhookChannel:
    """Posts Block Kit messages to a Slack incoming webhook."""

    name = "slack"

    def __init__(self, client: httpx.AsyncClient, timeout: float = 10.0) -> None:
        self.client = client
        self.timeout = timeout

    @staticmethod
    def payload(message: DeliveryMessage) -> dict[str, Any]:
        estimated = message.estimated_time.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S GMT")
        blocks: list[dict[str, Any]] = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": f"⏰ {headline(message)}", "emoji": True},
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Network:*\n{message.network_label}"},
                    {"type": "mrkdwn", "text": f"*Target Block:*\n{message.target_height:,}"},
                    {"type": "mrkdwn", "text": f"*Current Block:*\n{message.current_height:,}"},
                    {"type": "mrkdwn", "text": f"*Blocks Remaining:*\n{message.blocks_remaining:,}"},
                ],
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Estimated Time:* {estimated}"},
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "📅 Google Calendar"},
                        "url": message.calendar_links.google,
                        "style": "primary",
                    },
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "📅 Outlook Calendar"},
                        "url": message.calendar_links.outlook,
                    },
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "📥 Download .ics"},
                        "url": message.calendar_links.ics_url,
                    },
                ],
            },
        ]
        if message.title:
            blocks.insert(1, {"type": "context", "elements": [{"type": "mrkdwn", "text": message.title}]})
        return {"blocks": blocks}

    async def send(self, webhook_url: str, message: DeliveryMessage) -> None:
        try:
            response = await self.client.post(webhook_url, json=self.payload(message), timeout=self.timeout)
        except httpx.HTTPError as e:
            msg = f"Slack webhook failed: {type(e).__name__}: {e}"
            raise DeliveryError(msg) from e
        if not response.is_success:
            msg = f"Slack webhook failed: {response.status_code} {response.text}"
            raise DeliveryError(msg)


class EmailChannel:
    """Renders the alert template and hands it to the configured email provider."""

    name = "email"

    def __init__(self, provider: BaseEmailProvider) -> None:
        self.provider = provider

    async def send(self, to_email: str, message: DeliveryMessage) -> None:
        subject, html_body, text_body = block_alert(message)
        if not await self.provider.send(to_email, subject, html_body, text_body):
            msg = f"Email delivery to {to_email} failed"
            raise DeliveryError(msg)


class Notifier:
    """Builds alert messages for a watch and fans them out to its channels."""

    def __init__(
        self,
        slack: SlackWebhookChannel,
        email: EmailChannel | None,
        base_url: str,
    ) -> None:
        self.slack = slack
        self.email = email
        self.base_url = base_url

    def build_message(
        self,
        watch: BlockWatch,
        tier: str,
        current_height: int,
        blocks_remaining: int,
        estimated_time: datetime,
    ) -> DeliveryMessage:
        return DeliveryMessage(
            watch_id=watch.id,
            tier=tier,
            target_height=watch.target_height,
            network=watch.network,
            network_label=network_label(watch.network),
            current_height=current_height,
            blocks_remaining=blocks_remaining,
            estimated_time=estimated_time,
            calendar_links=build_calendar_links(
                watch.id, watch.target_height, watch.network, estimated_time, self.base_url
            ),
            title=watch.title,
        )

    async def dispatch(self, watch: BlockWatch, message: DeliveryMessage) -> list[str]:
        """Send ``message`` to every channel configured on ``watch``.

        Returns the names of the channels that accepted the message.

        Raises:
            DeliveryError: If any configured channel fails.
        """
        delivered: list[str] = []
        if watch.webhook_url:
            await self.slack.send(watch.webhook_url, message)
            delivered.append(self.slack.name)
        if watch.email:
            if self.email is None:
                msg = "Email channel is not configured"
                raise DeliveryError(msg)
            await self.email.send(watch.email, message)
            delivered.append(self.email.name)
        logger.info(
            "notification_dispatched",
            watch_id=watch.id,
            tier=message.tier,
            channels=delivered,
        )
        return delivered


def create_notifier(client: httpx.AsyncClient, settings: Settings) -> Notifier:
    """Slack over the shared HTTP client plus the configured email provider."""
    return Notifier(
        slack=SlackWebhookChannel(client, timeout=settings.webhook_timeout_seconds),
        email=EmailChannel(create_provider(settings, client)),
        base_url=settings.public_base_url,
    )
