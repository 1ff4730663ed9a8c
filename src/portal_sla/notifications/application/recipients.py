"""
Recipient resolution for ticket events.

Turns a ticket's audience (creator, assignee, owning organization) and a
formatted message into one payload per enabled channel and recipient.
"""

from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from portal_sla.config import NotificationChannel, NotificationType
from portal_sla.notifications.domain import (
    FormattedMessage,
    NotificationPayload,
    OrganizationContact,
    UserContact,
)

# Slack is an organization-level channel; users are reached directly.
USER_CHANNELS = (
    NotificationChannel.EMAIL,
    NotificationChannel.SMS,
    NotificationChannel.WHATSAPP,
)


def ticket_recipients(
    notification_type: NotificationType,
    creator: Optional[UserContact],
    assignee: Optional[UserContact]
) -> List[UserContact]:
    """The creator always; the assignee for every event except ticket creation."""
    recipients: List[UserContact] = []
    if creator is not None:
        recipients.append(creator)
    if (
        assignee is not None
        and notification_type != NotificationType.TICKET_CREATED
        and all(r.id != assignee.id for r in recipients)
    ):
        recipients.append(assignee)
    return recipients


def build_ticket_notification_payloads(
    *,
    ticket_id: UUID,
    organization: OrganizationContact,
    notification_type: NotificationType,
    formatted: FormattedMessage,
    creator: Optional[UserContact] = None,
    assignee: Optional[UserContact] = None,
    metadata: Optional[Mapping[str, Any]] = None
) -> List[NotificationPayload]:
    """Build one payload per (recipient, enabled channel), plus the org Slack webhook."""
    base_metadata: Dict[str, Any] = dict(metadata or {})
    payloads: List[NotificationPayload] = []

    for user in ticket_recipients(notification_type, creator, assignee):
        prefs = user.preferences
        for channel in USER_CHANNELS:
            if not prefs.allows(notification_type, channel, user.email):
                continue
            payloads.append(
                NotificationPayload(
                    type=notification_type,
                    channel=channel,
                    recipient=prefs.address_for(channel, user.email),
                    organization_id=organization.id,
                    user_id=user.id,
                    ticket_id=ticket_id,
                    subject=formatted.subject,
                    message=formatted.message,
                    metadata=dict(base_metadata),
                )
            )

    org_prefs = organization.preferences
    if org_prefs.allows(notification_type, NotificationChannel.SLACK):
        payloads.append(
            NotificationPayload(
                type=notification_type,
                channel=NotificationChannel.SLACK,
                recipient=org_prefs.slack_webhook_url,
                organization_id=organization.id,
                ticket_id=ticket_id,
                subject=formatted.subject,
                message=formatted.message,
                metadata=dict(base_metadata),
            )
        )

    return payloads
