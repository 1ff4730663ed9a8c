"""
Notification Formatter
=======================

Renders channel-agnostic (subject, message) pairs for every notification
type. Pure functions: no I/O, no configuration lookups.

Missing context values degrade to readable defaults so that any type can
be formatted with an empty context.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from portal_sla.config import NotificationType, Priority


@dataclass(frozen=True)
class NotificationContext:
    """Interpolation values for a notification. Every field is optional."""
    ticket_number: Optional[int] = None
    ticket_subject: Optional[str] = None
    assignee_name: Optional[str] = None
    commenter_name: Optional[str] = None
    comment_preview: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    hours_overdue: Optional[float] = None
    hours_until_due: Optional[float] = None
    request_number: Optional[int] = None
    request_title: Optional[str] = None
    client_name: Optional[str] = None


@dataclass(frozen=True)
class FormattedMessage:
    subject: str
    message: str


def _ticket_ref(ctx: NotificationContext) -> str:
    return f"#{ctx.ticket_number}" if ctx.ticket_number else "A ticket"


def _ticket_title(ctx: NotificationContext) -> str:
    return f'"{ctx.ticket_subject}"' if ctx.ticket_subject else ""


def _priority(ctx: NotificationContext) -> str:
    return ctx.priority.capitalize() if ctx.priority else "Medium"


def _hours(value: Optional[float]) -> str:
    if value is None or round(value) < 1:
        return "Less than 1 hour"
    rounded = round(value)
    return f"{rounded} hour" if rounded == 1 else f"{rounded} hours"


def _line(*parts: str) -> str:
    return " ".join(part for part in parts if part)


def _request_ref(ctx: NotificationContext, kind: str) -> str:
    ref = f"{kind} #{ctx.request_number}" if ctx.request_number else f"A {kind.lower()}"
    if ctx.request_title:
        ref = f'{ref} "{ctx.request_title}"'
    return ref


def _ticket_created(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    return FormattedMessage(
        subject=f"New Support Ticket Created: {ref}",
        message=(
            "A new support ticket has been created.\n\n"
            f"Ticket: {_line(ref, _ticket_title(ctx))}\n"
            f"Priority: {_priority(ctx)}\n\n"
            "Please review and respond as soon as possible."
        ),
    )


def _ticket_updated(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    return FormattedMessage(
        subject=f"Ticket Updated: {ref}",
        message=(
            f"Ticket {_line(ref, _ticket_title(ctx))} has been updated.\n\n"
            f"New Status: {ctx.status or 'Unknown'}\n\n"
            "View the ticket for more details."
        ),
    )


def _ticket_comment(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    preview = ctx.comment_preview or "View the full comment in the ticket."
    return FormattedMessage(
        subject=f"New Comment on Ticket {ref}",
        message=(
            f"{ctx.commenter_name or 'Someone'} commented on ticket "
            f"{_line(ref, _ticket_title(ctx))}\n\n"
            f'"{preview}"\n\n'
            "Respond to keep the conversation going."
        ),
    )


def _ticket_assigned(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    return FormattedMessage(
        subject=f"Ticket Assigned to You: {ref}",
        message=(
            f"You have been assigned to ticket {_line(ref, _ticket_title(ctx))}\n\n"
            f"Priority: {_priority(ctx)}\n\n"
            "Please review and respond according to the SLA requirements."
        ),
    )


def _ticket_resolved(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    return FormattedMessage(
        subject=f"Ticket Resolved: {ref}",
        message=(
            f"Ticket {_line(ref, _ticket_title(ctx))} has been marked as resolved.\n\n"
            "If you have any questions or the issue persists, please reopen the ticket."
        ),
    )


def _ticket_closed(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    return FormattedMessage(
        subject=f"Ticket Closed: {ref}",
        message=(
            f"Ticket {_line(ref, _ticket_title(ctx))} has been closed.\n\n"
            "Thank you for using our support system."
        ),
    )


def _sla_warning(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    return FormattedMessage(
        subject=f"⚠️ SLA Warning: Ticket {ref} Approaching Deadline",
        message=(
            f"Ticket {_line(ref, _ticket_title(ctx))} is approaching its SLA deadline.\n\n"
            f"Priority: {_priority(ctx)}\n"
            f"Time Remaining: {_hours(ctx.hours_until_due)}\n\n"
            "Please respond urgently to meet the SLA commitment."
        ),
    )


def _sla_breach(ctx: NotificationContext) -> FormattedMessage:
    ref = _ticket_ref(ctx)
    return FormattedMessage(
        subject=f"🚨 SLA BREACH: Ticket {ref} Overdue",
        message=(
            f"URGENT: Ticket {_line(ref, _ticket_title(ctx))} has breached its SLA deadline.\n\n"
            f"Priority: {_priority(ctx)}\n"
            f"Overdue By: {_hours(ctx.hours_overdue)}\n\n"
            "Immediate action required!"
        ),
    )


def _request_renderers(kind: str) -> Dict[str, Callable[[NotificationContext], FormattedMessage]]:
    def created(ctx: NotificationContext) -> FormattedMessage:
        ref = _request_ref(ctx, kind)
        client = f" from {ctx.client_name}" if ctx.client_name else ""
        return FormattedMessage(
            subject=f"New {kind} Submitted",
            message=(
                f"{ref} has been submitted{client}.\n\n"
                f"Priority: {_priority(ctx)}\n\n"
                "Please acknowledge the request and begin review."
            ),
        )

    def assigned(ctx: NotificationContext) -> FormattedMessage:
        ref = _request_ref(ctx, kind)
        return FormattedMessage(
            subject=f"{kind} Assigned to You",
            message=(
                f"You have been assigned to {ref}.\n\n"
                f"Priority: {_priority(ctx)}\n\n"
                "Please acknowledge the assignment."
            ),
        )

    def updated(ctx: NotificationContext) -> FormattedMessage:
        ref = _request_ref(ctx, kind)
        return FormattedMessage(
            subject=f"{kind} Updated",
            message=(
                f"{ref} has been updated.\n\n"
                f"New Status: {ctx.status or 'Unknown'}\n\n"
                "View the request for more details."
            ),
        )

    return {"created": created, "assigned": assigned, "updated": updated}


_SERVICE_REQUEST = _request_renderers("Service Request")
_PROJECT_REQUEST = _request_renderers("Project Request")


def _task_acknowledgement_reminder(ctx: NotificationContext) -> FormattedMessage:
    ref = ctx.request_title or (f"#{ctx.request_number}" if ctx.request_number else "a task")
    return FormattedMessage(
        subject="Reminder: Task Awaiting Your Acknowledgement",
        message=(
            f"You have not yet acknowledged {ref}.\n\n"
            f"Priority: {_priority(ctx)}\n\n"
            "Please acknowledge it so the client knows work has started."
        ),
    )


_RENDERERS: Dict[NotificationType, Callable[[NotificationContext], FormattedMessage]] = {
    NotificationType.TICKET_CREATED: _ticket_created,
    NotificationType.TICKET_UPDATED: _ticket_updated,
    NotificationType.TICKET_COMMENT: _ticket_comment,
    NotificationType.TICKET_ASSIGNED: _ticket_assigned,
    NotificationType.TICKET_RESOLVED: _ticket_resolved,
    NotificationType.TICKET_CLOSED: _ticket_closed,
    NotificationType.SLA_WARNING: _sla_warning,
    NotificationType.SLA_BREACH: _sla_breach,
    NotificationType.SERVICE_REQUEST_CREATED: _SERVICE_REQUEST["created"],
    NotificationType.SERVICE_REQUEST_ASSIGNED: _SERVICE_REQUEST["assigned"],
    NotificationType.SERVICE_REQUEST_UPDATED: _SERVICE_REQUEST["updated"],
    NotificationType.PROJECT_REQUEST_CREATED: _PROJECT_REQUEST["created"],
    NotificationType.PROJECT_REQUEST_ASSIGNED: _PROJECT_REQUEST["assigned"],
    NotificationType.PROJECT_REQUEST_UPDATED: _PROJECT_REQUEST["updated"],
    NotificationType.TASK_ACKNOWLEDGEMENT_REMINDER: _task_acknowledgement_reminder,
}


def format_notification_message(
    notification_type: NotificationType,
    context: Optional[NotificationContext] = None
) -> FormattedMessage:
    """Render the subject and plain-text body for a notification."""
    ctx = context or NotificationContext()
    renderer = _RENDERERS.get(notification_type)
    if renderer is None:
        ref = _ticket_ref(ctx)
        return FormattedMessage(
            subject=f"Ticket Notification: {ref}",
            message=f"An update has been made to ticket {_line(ref, _ticket_title(ctx))}",
        )
    return renderer(ctx)


_COLORS = {
    NotificationType.SLA_BREACH: "#dc2626",
    NotificationType.SLA_WARNING: "#ea580c",
    NotificationType.TICKET_CREATED: "#2563eb",
    NotificationType.TICKET_ASSIGNED: "#2563eb",
    NotificationType.TICKET_RESOLVED: "#16a34a",
}
DEFAULT_COLOR = "#64748b"


def notification_color(notification_type: NotificationType) -> str:
    """Severity colour used by block-structured channels."""
    return _COLORS.get(notification_type, DEFAULT_COLOR)


def notification_priority(notification_type: NotificationType) -> Priority:
    if notification_type == NotificationType.SLA_BREACH:
        return Priority.CRITICAL
    if notification_type in (
        NotificationType.SLA_WARNING,
        NotificationType.TICKET_CREATED,
        NotificationType.TICKET_ASSIGNED,
    ):
        return Priority.HIGH
    if notification_type == NotificationType.TICKET_COMMENT:
        return Priority.MEDIUM
    return Priority.LOW
