"""
Channel Senders
===============

One adapter per delivery channel. All return NotificationResult and never
raise for configuration or transport failures. No retries: the sweep
cadence is the retry policy.
"""

from typing import Dict, Optional

import httpx

from portal_sla.config import NotificationChannel
from portal_sla.notifications.application.services import (
    IEmailTemplateRepository,
    INotificationSender,
)
from portal_sla.notifications.infrastructure.channels.base import ChannelSender
from portal_sla.notifications.infrastructure.channels.email import EmailSender
from portal_sla.notifications.infrastructure.channels.slack import SlackWebhookSender
from portal_sla.notifications.infrastructure.channels.twilio import SMSSender, WhatsAppSender


def build_channel_senders(
    template_repository: Optional[IEmailTemplateRepository] = None,
    client: Optional[httpx.AsyncClient] = None
) -> Dict[NotificationChannel, INotificationSender]:
    """Default sender per channel, configured from settings."""
    return {
        NotificationChannel.EMAIL: EmailSender(template_repository=template_repository, client=client),
        NotificationChannel.SMS: SMSSender(client=client),
        NotificationChannel.WHATSAPP: WhatsAppSender(client=client),
        NotificationChannel.SLACK: SlackWebhookSender(client=client),
    }


__all__ = [
    "ChannelSender",
    "EmailSender",
    "SMSSender",
    "SlackWebhookSender",
    "WhatsAppSender",
    "build_channel_senders",
]
