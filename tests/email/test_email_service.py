"""Tests for email providers and the block alert template."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import aiosmtplib
import httpx
import pytest

from blocktime.config import Settings
from blocktime.email.service import ResendProvider, SMTPProvider, create_provider
from blocktime.email.templates import block_alert
from blocktime.notifications.calendar import CalendarLinks
from blocktime.notifications.delivery import DeliveryMessage
from blocktime.watches.tiers import REACHED, Tier

LINKS = CalendarLinks(
    google="https://calendar.google.com/calendar/render?x=1",
    outlook="https://outlook.live.com/calendar/0/deeplink/compose?x=1",
    ics_url="https://blocktotime.test/api/v1/calendar/w1",
)


def _message(tier: str, title: str = "") -> DeliveryMessage:
    return DeliveryMessage(
        watch_id="w1",
        tier=tier,
        target_height=2_000_000,
        network="XRPL_EVM_TESTNET",
        network_label="XRPL EVM Testnet",
        current_height=1_999_100,
        blocks_remaining=900,
        estimated_time=datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc),
        calendar_links=LINKS,
        title=title,
    )


class TestBlockAlertTemplate:
    def test_progress_alert(self):
        subject, html, text = block_alert(_message(Tier.SIX_HOURS.value))
        assert subject == "Block 2,000,000: 6 hours away!"
        assert "XRPL EVM Testnet" in html
        assert LINKS.ics_url in html
        assert "Estimated time: Sun, 01 Mar 2026 12:30:00 UTC" in text
        assert "Blocks remaining: 900" in text

    def test_reached_alert(self):
        subject, _, text = block_alert(_message(REACHED))
        assert subject == "Block 2,000,000 has been reached!"
        assert text.startswith("Block 2,000,000 has been reached!")

    def test_title_is_escaped_in_html(self):
        subject, html, _ = block_alert(_message(Tier.ONE_DAY.value, title="<b>launch</b>"))
        assert subject.endswith("(<b>launch</b>)")
        assert "<b>launch</b>" not in html


class TestProviders:
    @pytest.mark.asyncio
    async def test_resend_posts_payload(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"id": "email-1"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            provider = ResendProvider("re_key", "alerts@blocktotime.test", "Block to Time", client=client)
            assert await provider.send("bob@example.com", "Subj", "<p>hi</p>", "hi") is True

        request = captured[0]
        assert str(request.url) == ResendProvider.API_URL
        assert request.headers["Authorization"] == "Bearer re_key"
        body = json.loads(request.content)
        assert body["to"] == ["bob@example.com"]
        assert body["from"] == "Block to Time <alerts@blocktotime.test>"

    @pytest.mark.asyncio
    async def test_resend_error_returns_false(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(422))) as client:
            provider = ResendProvider("re_key", "a@b.test", "X", client=client)
            assert await provider.send("bob@example.com", "S", "h", "t") is False

    @pytest.mark.asyncio
    async def test_smtp_send(self):
        provider = SMTPProvider("smtp.test", 587, "user", "pass", "a@b.test", "Block to Time", use_tls=False)
        with patch("blocktime.email.service.aiosmtplib.send", new=AsyncMock()) as send:
            assert await provider.send("bob@example.com", "S", "<p>h</p>", "h") is True

        msg = send.await_args.args[0]
        assert msg["To"] == "bob@example.com"
        assert send.await_args.kwargs["hostname"] == "smtp.test"

    @pytest.mark.asyncio
    async def test_smtp_failure_returns_false(self):
        provider = SMTPProvider("smtp.test", 587, "", "", "a@b.test", "X", use_tls=False)
        failing = AsyncMock(side_effect=aiosmtplib.SMTPException("refused"))
        with patch("blocktime.email.service.aiosmtplib.send", new=failing):
            assert await provider.send("bob@example.com", "S", "h", "t") is False


class TestCreateProvider:
    def test_smtp_default(self):
        assert isinstance(create_provider(Settings()), SMTPProvider)

    def test_resend(self):
        assert isinstance(create_provider(Settings(email_provider="resend", resend_api_key="k")), ResendProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported email provider"):
            create_provider(Settings(email_provider="pigeon"))
