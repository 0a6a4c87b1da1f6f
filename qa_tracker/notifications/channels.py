"""
Notification channel senders.

Both senders return ``False`` when the channel is not configured and raise
:class:`DeliveryError` when a configured channel fails.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib
import httpx
import structlog

from ..config import Settings
from ..core.errors import InfrastructureError

logger = structlog.get_logger()


class DeliveryError(InfrastructureError):
    """A configured notification channel failed to deliver."""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"{channel} delivery failed: {message}")


class EmailSender:
    """SMTP email sender (STARTTLS)."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.from_email = settings.email_from or settings.smtp_user
        self.from_name = settings.app_name

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.password)

    async def send(self, to_email: str, subject: str, text: str, html: str) -> bool:
        if not self.is_configured:
            logger.warning("email_not_configured", to=to_email)
            return False

        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject
        message.attach(MIMEText(text, "plain", "utf-8"))
        message.attach(MIMEText(html, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.user,
                password=self.password,
                start_tls=True,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise DeliveryError("email", str(exc)) from exc

        logger.info("email_sent", to=to_email, subject=subject)
        return True


def format_chat_id(phone_number: str) -> str:
    """Turn a phone number into a WhatsApp chat id."""
    phone_number = phone_number.strip()
    if phone_number.endswith("@c.us"):
        return phone_number
    digits = "".join(ch for ch in phone_number if ch.isdigit())
    return f"{digits}@c.us"


class WhatsAppSender:
    """Sends text messages through a WAHA-style HTTP gateway."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.api_url = settings.whatsapp_api_url
        self.api_key = settings.whatsapp_api_key
        self.session = settings.whatsapp_session
        self._client = client or httpx.AsyncClient(timeout=settings.whatsapp_timeout_seconds)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, phone_number: str, text: str) -> bool:
        if not self.is_configured:
            logger.warning("whatsapp_not_configured", to=phone_number)
            return False

        payload = {"chatId": format_chat_id(phone_number), "text": text, "session": self.session}
        headers = {"accept": "application/json", "X-Api-Key": self.api_key}
        try:
            response = await self._client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeliveryError("whatsapp", str(exc)) from exc

        logger.info("whatsapp_sent", to=payload["chatId"])
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
