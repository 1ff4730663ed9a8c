"""Shared fixtures: in-memory fakes for the repositories, senders and clock."""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest

from portal_sla.config import NotificationChannel, NotificationType, TicketStatus
from portal_sla.notifications.application import (
    IEmailTemplateRepository,
    INotificationLogRepository,
    INotificationSender,
    NotificationDispatcher,
)
from portal_sla.notifications.domain import (
    EmailTemplate,
    NotificationLogEntry,
    NotificationPreferences,
    NotificationResult,
    OrganizationContact,
    UserContact,
)
from portal_sla.sla.application import (
    DedupLedger,
    ISLAPolicyProvider,
    ITicketRepository,
    SLAMonitor,
)
from portal_sla.sla.domain import SLAPolicy, Ticket


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class InMemoryNotificationLogRepository(INotificationLogRepository):
    def __init__(self):
        self.entries: List[NotificationLogEntry] = []
        self.fail_inserts = False

    async def insert(self, entry: NotificationLogEntry) -> None:
        if self.fail_inserts:
            raise RuntimeError("log store unavailable")
        self.entries.append(entry)

    async def exists_since(self, ticket_id, notification_type, since) -> bool:
        return any(
            e.ticket_id == ticket_id
            and e.notification_type == notification_type
            and e.created_at >= since
            for e in self.entries
        )


class InMemoryEmailTemplateRepository(IEmailTemplateRepository):
    def __init__(self, templates: Optional[List[EmailTemplate]] = None, fail: bool = False):
        self.templates = templates or []
        self.fail = fail
        self.lookups = []

    async def find_effective(self, notification_type, organization_id=None):
        self.lookups.append((notification_type, organization_id))
        if self.fail:
            raise RuntimeError("template store unavailable")
        for template in self.templates:
            if template.notification_type == notification_type:
                return template
        return None


class RecordingSender(INotificationSender):
    """Sender double that records calls and returns a canned outcome."""

    def __init__(self, provider: str = "fake", fail_with: Optional[str] = None,
                 raises: Optional[Exception] = None, delay: float = 0):
        self.provider = provider
        self.fail_with = fail_with
        self.raises = raises
        self.delay = delay
        self.calls = []

    async def send(self, recipient, subject, message, metadata=None, *,
                   notification_type=None, ticket_id=None, organization_id=None):
        self.calls.append({
            "recipient": recipient,
            "subject": subject,
            "message": message,
            "metadata": dict(metadata or {}),
            "notification_type": notification_type,
            "ticket_id": ticket_id,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.fail_with:
            return NotificationResult.failed(self.fail_with, provider=self.provider)
        return NotificationResult(
            success=True, message_id=f"{self.provider}-{len(self.calls)}", provider=self.provider
        )

    async def close(self) -> None:
        pass


class FakeTicketRepository(ITicketRepository):
    def __init__(self, tickets: Optional[List[Ticket]] = None):
        self.tickets: Dict[UUID, Ticket] = {t.id: t for t in tickets or []}
        self.fail_listing = False

    async def get_ticket(self, ticket_id: UUID) -> Optional[Ticket]:
        return self.tickets.get(ticket_id)

    async def get_tickets_needing_attention(self, now, policy) -> List[Ticket]:
        if self.fail_listing:
            raise RuntimeError("database unavailable")
        return [t for t in self.tickets.values() if not t.is_terminal]


class StaticPolicyProvider(ISLAPolicyProvider):
    def __init__(self, policy: Optional[SLAPolicy] = None):
        self.policy = policy or SLAPolicy()

    def get_policy(self) -> SLAPolicy:
        return self.policy


def make_user(address="client@example.com", **prefs) -> UserContact:
    return UserContact(
        id=uuid4(),
        email=address,
        full_name="Client User",
        preferences=NotificationPreferences.from_dict(prefs),
    )


def make_ticket(
    *,
    ticket_number: int = 1001,
    priority: str = "high",
    status: TicketStatus = TicketStatus.OPEN,
    created_at: datetime = utc(2024, 1, 1, 0, 0),
    first_response_due_at: Optional[datetime] = utc(2024, 1, 1, 4, 0),
    first_response_at: Optional[datetime] = None,
    resolution_due_at: Optional[datetime] = None,
    resolved_at: Optional[datetime] = None,
    creator: Optional[UserContact] = None,
    assignee: Optional[UserContact] = None,
    org_prefs: Optional[dict] = None,
) -> Ticket:
    return Ticket(
        id=uuid4(),
        ticket_number=ticket_number,
        subject="Portal login fails",
        priority=priority,
        status=status,
        created_at=created_at,
        organization=OrganizationContact(
            id=uuid4(),
            name="Acme",
            preferences=NotificationPreferences.from_dict(org_prefs),
        ),
        first_response_due_at=first_response_due_at,
        first_response_at=first_response_at,
        resolution_due_at=resolution_due_at,
        resolved_at=resolved_at,
        creator=creator,
        assignee=assignee,
    )


@pytest.fixture
def log_repo():
    return InMemoryNotificationLogRepository()


@pytest.fixture
def clock():
    return MutableClock(utc(2024, 1, 1, 3, 10))


@pytest.fixture
def senders():
    return {
        NotificationChannel.EMAIL: RecordingSender("resend"),
        NotificationChannel.SMS: RecordingSender("twilio"),
        NotificationChannel.WHATSAPP: RecordingSender("twilio"),
        NotificationChannel.SLACK: RecordingSender("slack"),
    }


@pytest.fixture
def dispatcher(senders, log_repo, clock):
    return NotificationDispatcher(senders, log_repo, timeout_seconds=1, clock=clock)


@pytest.fixture
def ticket_repo():
    return FakeTicketRepository()


@pytest.fixture
def policy_provider():
    return StaticPolicyProvider()


@pytest.fixture
def monitor(ticket_repo, policy_provider, log_repo, dispatcher, clock):
    return SLAMonitor(
        ticket_repository=ticket_repo,
        policy_provider=policy_provider,
        ledger=DedupLedger(log_repo),
        dispatcher=dispatcher,
        clock=clock,
    )


ALL_NOTIFICATION_TYPES = list(NotificationType)
