"""
Notifications Application Layer
===============================

Dispatcher, recipient resolution and the port interfaces implemented by
the infrastructure layer.
"""

from portal_sla.notifications.application.recipients import (
    build_ticket_notification_payloads,
    ticket_recipients,
)
from portal_sla.notifications.application.services import (
    IEmailTemplateRepository,
    INotificationLogRepository,
    INotificationSender,
    NotificationDispatcher,
)

__all__ = [
    "build_ticket_notification_payloads",
    "ticket_recipients",
    "IEmailTemplateRepository",
    "INotificationLogRepository",
    "INotificationSender",
    "NotificationDispatcher",
]
