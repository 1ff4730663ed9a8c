"""
Slack Webhook Channel
=====================

Posts Block Kit messages to an organization's incoming webhook. The
webhook URL is the recipient and the only credential.
"""

from typing import Any, Dict, Optional
from uuid import UUID

import httpx

from portal_sla.config import NotificationType, settings
from portal_sla.notifications.domain import NotificationResult
from portal_sla.notifications.domain.formatter import DEFAULT_COLOR, notification_color
from portal_sla.notifications.infrastructure.channels.base import ChannelSender

HEADER_MAX_LENGTH = 150


def build_slack_message(
    subject: str,
    message: str,
    notification_type: Optional[NotificationType] = None,
    ticket_number: Optional[Any] = None,
    ticket_link: Optional[str] = None
) -> Dict[str, Any]:
    """Block Kit payload wrapped in an attachment coloured by severity."""
    header = subject if len(subject) <= HEADER_MAX_LENGTH else subject[: HEADER_MAX_LENGTH - 3] + "..."
    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": header, "emoji": True}
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message}
        },
    ]

    if ticket_number:
        blocks.append({
            "type": "context",
            "elements": [
                {"type": "mrkdwn", "text": f"Ticket #{ticket_number}"}
            ]
        })

    if ticket_link:
        blocks.append({
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "View Ticket", "emoji": True},
                    "url": ticket_link,
                    "style": "primary"
                }
            ]
        })

    color = notification_color(notification_type) if notification_type else DEFAULT_COLOR
    return {
        "text": subject,
        "attachments": [{"color": color, "blocks": blocks}]
    }


class SlackWebhookSender(ChannelSender):
    provider = "slack"
    channel_name = "Slack"

    def __init__(
        self,
        app_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None
    ):
        super().__init__(client=client, timeout_seconds=timeout_seconds)
        self._app_url = (app_url or settings.app_url).rstrip("/")

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
        if not recipient.startswith("https://"):
            raise ValueError("Slack webhook URL must use https")

        link = f"{self._app_url}/dashboard/tickets/{ticket_id}" if ticket_id else None
        await self._post(
            recipient,
            json=build_slack_message(
                subject,
                message,
                notification_type=notification_type,
                ticket_number=metadata.get("ticket_number"),
                ticket_link=link,
            ),
        )
        # Incoming webhooks answer with a bare "ok" and no message id
        return NotificationResult(success=True, provider=self.provider)
