"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

The ticket is owned by the surrounding portal; this module only reads it.
Deadline events are computed fresh on every evaluation and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from portal_sla.config import (
    TERMINAL_STATUSES,
    DeadlineKind,
    NotificationType,
    SLAClassification,
    TicketStatus,
)
from portal_sla.notifications.domain import OrganizationContact, UserContact


@dataclass
class Ticket:
    """
    Read-only view of a portal ticket with its SLA timestamps and audience.

    `resolution_due_at` maps to the portal's `sla_due_at` column.
    """

    id: UUID
    ticket_number: int
    subject: str
    priority: str
    status: TicketStatus
    created_at: datetime
    organization: OrganizationContact

    first_response_due_at: Optional[datetime] = None
    first_response_at: Optional[datetime] = None
    resolution_due_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    creator: Optional[UserContact] = None
    assignee: Optional[UserContact] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def due_at(self, kind: DeadlineKind) -> Optional[datetime]:
        if kind == DeadlineKind.FIRST_RESPONSE:
            return self.first_response_due_at
        return self.resolution_due_at

    def satisfied_at(self, kind: DeadlineKind) -> Optional[datetime]:
        """When the deadline was met, or None while it is still open."""
        if kind == DeadlineKind.FIRST_RESPONSE:
            return self.first_response_at
        return self.resolved_at


@dataclass(frozen=True)
class DeadlineEvent:
    """A warning or breach detected for one deadline of one ticket."""

    ticket_id: UUID
    kind: DeadlineKind
    classification: SLAClassification
    due_at: datetime
    computed_at: datetime
    created_at: datetime

    @property
    def notification_type(self) -> NotificationType:
        if self.classification == SLAClassification.BREACH:
            return NotificationType.SLA_BREACH
        return NotificationType.SLA_WARNING

    @property
    def hours_until_due(self) -> float:
        """Hours left before the deadline (0 once it has passed)."""
        return max(0.0, (self.due_at - self.computed_at).total_seconds() / 3600)

    @property
    def hours_overdue(self) -> float:
        """Hours past the deadline (0 while it is still ahead)."""
        return max(0.0, (self.computed_at - self.due_at).total_seconds() / 3600)

    @property
    def percent_remaining(self) -> float:
        total = (self.due_at - self.created_at).total_seconds()
        if total <= 0:
            return 0.0
        remaining = (self.due_at - self.computed_at).total_seconds()
        return max(0.0, remaining / total * 100)


@dataclass(frozen=True)
class NotifiedTicket:
    ticket_id: UUID
    ticket_number: int
    level: SLAClassification

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticket_id": str(self.ticket_id),
            "ticket_number": self.ticket_number,
            "level": self.level.value,
        }


@dataclass
class SLACheckResult:
    """
    Summary of one batch sweep.

    `checked` counts candidate tickets, `notified` counts notifications
    dispatched, `tickets` lists the tickets that produced at least one.
    """

    checked: int = 0
    notified: int = 0
    tickets: List[NotifiedTicket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checked": self.checked,
            "notified": self.notified,
            "tickets": [t.to_dict() for t in self.tickets],
        }
