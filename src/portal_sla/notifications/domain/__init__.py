"""
Notifications Domain Layer
==========================

Contains:
- Entities: preferences, payloads, delivery results, log entries, templates
- Formatter: channel-agnostic subject/message rendering

No infrastructure dependencies.
"""

from portal_sla.notifications.domain.entities import (
    EVENT_PREFERENCE_KEYS,
    EmailTemplate,
    NotificationLogEntry,
    NotificationPayload,
    NotificationPreferences,
    NotificationResult,
    OrganizationContact,
    RenderedEmail,
    UserContact,
)
from portal_sla.notifications.domain.formatter import (
    FormattedMessage,
    NotificationContext,
    format_notification_message,
    notification_color,
    notification_priority,
)

__all__ = [
    "EVENT_PREFERENCE_KEYS",
    "EmailTemplate",
    "NotificationLogEntry",
    "NotificationPayload",
    "NotificationPreferences",
    "NotificationResult",
    "OrganizationContact",
    "RenderedEmail",
    "UserContact",
    "FormattedMessage",
    "NotificationContext",
    "format_notification_message",
    "notification_color",
    "notification_priority",
]
