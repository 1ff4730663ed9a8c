"""
Notification Domain Entities
=============================

Pure Python domain objects for notification delivery: preferences,
payloads, delivery results, audit log entries and email templates.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from portal_sla.config import (
    NotificationChannel,
    NotificationStatus,
    NotificationType,
)


# Each event type is toggled by its own preference flag. Types without a
# dedicated toggle in the portal UI still get one so they can be muted.
EVENT_PREFERENCE_KEYS: Dict[NotificationType, str] = {
    NotificationType.TICKET_CREATED: "notify_on_ticket_created",
    NotificationType.TICKET_UPDATED: "notify_on_ticket_updated",
    NotificationType.TICKET_COMMENT: "notify_on_ticket_comment",
    NotificationType.TICKET_ASSIGNED: "notify_on_ticket_assigned",
    NotificationType.TICKET_RESOLVED: "notify_on_ticket_resolved",
    NotificationType.TICKET_CLOSED: "notify_on_ticket_closed",
    NotificationType.SLA_WARNING: "notify_on_sla_warning",
    NotificationType.SLA_BREACH: "notify_on_sla_breach",
    NotificationType.SERVICE_REQUEST_CREATED: "notify_on_service_request_created",
    NotificationType.SERVICE_REQUEST_ASSIGNED: "notify_on_service_request_assigned",
    NotificationType.SERVICE_REQUEST_UPDATED: "notify_on_service_request_updated",
    NotificationType.PROJECT_REQUEST_CREATED: "notify_on_project_request_created",
    NotificationType.PROJECT_REQUEST_ASSIGNED: "notify_on_project_request_assigned",
    NotificationType.PROJECT_REQUEST_UPDATED: "notify_on_project_request_updated",
    NotificationType.TASK_ACKNOWLEDGEMENT_REMINDER: "notify_on_task_acknowledgement_reminder",
}


@dataclass(frozen=True)
class NotificationPreferences:
    """
    Per-user or per-organization notification preferences.

    Stored as a JSON blob by the portal; this is the read-only view the
    dispatcher works from. Email is on unless explicitly disabled, every
    other channel is opt-in. Event flags default to enabled.
    """

    email: bool = True
    sms: bool = False
    slack: bool = False
    whatsapp: bool = False
    sms_number: Optional[str] = None
    whatsapp_number: Optional[str] = None
    slack_webhook_url: Optional[str] = None
    events: Mapping[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "NotificationPreferences":
        """Build preferences from the stored JSON blob (None means all defaults)."""
        data = data or {}
        return cls(
            email=data.get("email") is not False,
            sms=bool(data.get("sms")),
            slack=bool(data.get("slack")),
            whatsapp=bool(data.get("whatsapp")),
            sms_number=data.get("sms_number") or None,
            whatsapp_number=data.get("whatsapp_number") or None,
            slack_webhook_url=data.get("slack_webhook_url") or None,
            events={
                key: bool(data[key])
                for key in EVENT_PREFERENCE_KEYS.values()
                if key in data and data[key] is not None
            },
        )

    def channel_enabled(self, channel: NotificationChannel) -> bool:
        return {
            NotificationChannel.EMAIL: self.email,
            NotificationChannel.SMS: self.sms,
            NotificationChannel.SLACK: self.slack,
            NotificationChannel.WHATSAPP: self.whatsapp,
        }[channel]

    def event_enabled(self, notification_type: NotificationType) -> bool:
        return self.events.get(EVENT_PREFERENCE_KEYS[notification_type], True)

    def address_for(
        self,
        channel: NotificationChannel,
        email: Optional[str] = None
    ) -> Optional[str]:
        """Channel-specific recipient address, or None when not configured."""
        return {
            NotificationChannel.EMAIL: email,
            NotificationChannel.SMS: self.sms_number,
            NotificationChannel.SLACK: self.slack_webhook_url,
            NotificationChannel.WHATSAPP: self.whatsapp_number,
        }[channel] or None

    def allows(
        self,
        notification_type: NotificationType,
        channel: NotificationChannel,
        email: Optional[str] = None
    ) -> bool:
        """Channel flag, event flag and a non-empty address are all required."""
        return (
            self.channel_enabled(channel)
            and self.event_enabled(notification_type)
            and self.address_for(channel, email) is not None
        )


@dataclass(frozen=True)
class UserContact:
    """A user who may receive notifications about a ticket."""
    id: UUID
    email: Optional[str]
    full_name: Optional[str] = None
    preferences: NotificationPreferences = field(default_factory=NotificationPreferences)


@dataclass(frozen=True)
class OrganizationContact:
    """The organization owning a ticket, with its org-level preferences."""
    id: UUID
    name: Optional[str] = None
    preferences: NotificationPreferences = field(default_factory=NotificationPreferences)


@dataclass
class NotificationPayload:
    """One delivery request: a single channel to a single recipient."""
    type: NotificationType
    channel: NotificationChannel
    recipient: str
    organization_id: UUID
    message: str
    subject: Optional[str] = None
    user_id: Optional[UUID] = None
    ticket_id: Optional[UUID] = None
    comment_id: Optional[UUID] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NotificationResult:
    """Outcome of one delivery attempt. Senders return these, never raise."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None
    template_id: Optional[UUID] = None

    @classmethod
    def failed(cls, error: str, provider: Optional[str] = None) -> "NotificationResult":
        return cls(success=False, error=error, provider=provider)


@dataclass
class NotificationLogEntry:
    """
    Audit record for one delivery attempt.

    The log is insert-only and doubles as the dedup ledger.
    """
    organization_id: UUID
    notification_type: NotificationType
    channel: NotificationChannel
    recipient: str
    message: str
    status: NotificationStatus
    created_at: datetime
    user_id: Optional[UUID] = None
    ticket_id: Optional[UUID] = None
    comment_id: Optional[UUID] = None
    subject: Optional[str] = None
    sent_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    provider: Optional[str] = None
    provider_message_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_attempt(
        cls,
        payload: NotificationPayload,
        result: NotificationResult,
        now: datetime
    ) -> "NotificationLogEntry":
        return cls(
            organization_id=payload.organization_id,
            user_id=payload.user_id,
            ticket_id=payload.ticket_id,
            comment_id=payload.comment_id,
            notification_type=payload.type,
            channel=payload.channel,
            recipient=payload.recipient,
            subject=payload.subject,
            message=payload.message,
            status=NotificationStatus.SENT if result.success else NotificationStatus.FAILED,
            sent_at=now if result.success else None,
            failed_at=None if result.success else now,
            error_message=result.error,
            provider=result.provider,
            provider_message_id=result.message_id,
            metadata=dict(payload.metadata),
            created_at=now,
        )


_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: Optional[str]


@dataclass(frozen=True)
class EmailTemplate:
    """
    An organization-specific or system-wide email template.

    Placeholders use `{{variable}}` syntax. Unknown placeholders are left
    in place so a missing variable is visible rather than silently blank.
    """
    id: UUID
    notification_type: NotificationType
    subject_template: str
    html_template: str
    text_template: Optional[str] = None
    organization_id: Optional[UUID] = None
    is_default: bool = False
    from_name: Optional[str] = None
    from_email: Optional[str] = None
    reply_to: Optional[str] = None

    @staticmethod
    def interpolate(template: str, variables: Mapping[str, Any]) -> str:
        def replace(match: "re.Match[str]") -> str:
            key = match.group(1)
            if key in variables and variables[key] is not None:
                return str(variables[key])
            return match.group(0)

        return _PLACEHOLDER.sub(replace, template)

    def render(self, variables: Mapping[str, Any]) -> RenderedEmail:
        return RenderedEmail(
            subject=self.interpolate(self.subject_template, variables),
            html=self.interpolate(self.html_template, variables),
            text=self.interpolate(self.text_template, variables) if self.text_template else None,
        )
