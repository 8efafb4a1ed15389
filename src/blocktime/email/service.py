"""
Email delivery with provider abstraction.

Supports SMTP (default) and the Resend API. Provider is selected via
configuration.
"""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib
import httpx
import structlog

from blocktime.config import Settings

logger = structlog.get_logger()


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        """Send an email. Returns True on success."""
        ...


class SMTPProvider(BaseEmailProvider):
    """Send emails via SMTP using aiosmtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.from_name = from_name
        self.use_tls = use_tls

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=ssl.create_default_context() if self.use_tls else None,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=to_email, provider="smtp")
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider="smtp")
        return True


class ResendProvider(BaseEmailProvider):
    """Send emails via Resend API."""

    API_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self._client = client

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        payload = {
            "from": f"{self.from_name} <{self.from_address}>",
            "to": [to_email],
            "subject": subject,
            "html": html_body,
            "text": text_body,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._client is not None:
                response = await self._client.post(self.API_URL, headers=headers, json=payload, timeout=10.0)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(self.API_URL, headers=headers, json=payload, timeout=10.0)
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("email_send_failed", to=to_email, provider="resend")
            return False
        logger.info("email_sent", to=to_email, subject=subject, provider="resend")
        return True


def create_provider(settings: Settings, client: httpx.AsyncClient | None = None) -> BaseEmailProvider:
    """Create email provider based on configuration."""
    provider_name = settings.email_provider.lower()

    if provider_name == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
        )
    if provider_name == "resend":
        return ResendProvider(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            client=client,
        )
    msg = f"Unsupported email provider: {provider_name}"
    raise ValueError(msg)
