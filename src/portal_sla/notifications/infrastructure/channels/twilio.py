"""
Twilio Channels (SMS and WhatsApp)
==================================

Both channels use the Twilio Messages REST API with basic auth; they differ
only in the sender number and in WhatsApp's `whatsapp:` address prefix.
"""

import re
from typing import Optional
from uuid import UUID

import httpx

from portal_sla.config import NotificationType, settings
from portal_sla.core.exceptions import ConfigurationException
from portal_sla.notifications.domain import NotificationResult
from portal_sla.notifications.infrastructure.channels.base import ChannelSender

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"

SMS_MAX_LENGTH = 160
TRUNCATION_MARKER = "..."


def truncate_sms(body: str, limit: int = SMS_MAX_LENGTH) -> str:
    """Cut a body to `limit` characters total, marker included."""
    if len(body) <= limit:
        return body
    return body[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def to_whatsapp_address(number: str) -> str:
    """Normalise a phone number to Twilio's `whatsapp:+<digits>` form."""
    number = number.strip()
    if number.lower().startswith("whatsapp:"):
        number = number.split(":", 1)[1].strip()
    digits = re.sub(r"[^\d]", "", number)
    if not digits:
        raise ValueError(f"Invalid WhatsApp number: {number!r}")
    return f"whatsapp:+{digits}"


class TwilioMessagingSender(ChannelSender):
    """Common Twilio Messages API client."""

    provider = "twilio"

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None
    ):
        super().__init__(client=client, timeout_seconds=timeout_seconds)
        self._account_sid = account_sid if account_sid is not None else settings.twilio_account_sid
        self._auth_token = auth_token if auth_token is not None else settings.twilio_auth_token
        self._from_number = from_number if from_number is not None else self._default_from_number()

    def _default_from_number(self) -> Optional[str]:
        return settings.twilio_phone_number

    def _format_body(self, subject: str, message: str) -> str:
        return f"{subject}\n\n{message}"

    def _format_address(self, number: str) -> str:
        return number

    async def _deliver(
        self,
        recipient: str,
        subject: str,
        message: str,
        metadata: dict,
        *,
        notification_type: Optional[NotificationType],
        ticket_id: Optional[UUID],
        organization_id: Optional[UUID]
    ) -> NotificationResult:
        if not (self._account_sid and self._auth_token and self._from_number):
            raise ConfigurationException(f"{self.channel_name} service not configured")

        response = await self._post(
            f"{TWILIO_API_BASE}/Accounts/{self._account_sid}/Messages.json",
            auth=(self._account_sid, self._auth_token),
            data={
                "To": self._format_address(recipient),
                "From": self._format_address(self._from_number),
                "Body": self._format_body(subject, message),
            },
        )
        data = response.json()
        return NotificationResult(success=True, message_id=data.get("sid"), provider=self.provider)


class SMSSender(TwilioMessagingSender):
    channel_name = "SMS"

    def _format_body(self, subject: str, message: str) -> str:
        return truncate_sms(super()._format_body(subject, message))


class WhatsAppSender(TwilioMessagingSender):
    channel_name = "WhatsApp"

    def _default_from_number(self) -> Optional[str]:
        return settings.twilio_whatsapp_number

    def _format_address(self, number: str) -> str:
        return to_whatsapp_address(number)
