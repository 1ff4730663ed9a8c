"""
Notification Application Services
==================================

Port interfaces for the notifications context and the dispatcher that
routes payloads to channel senders and records every attempt.

Following SOLID principles:
- Dependency Inversion: the dispatcher depends on sender and log
  repository abstractions, not on HTTP providers or SQL
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional
from uuid import UUID

from portal_sla.config import NotificationChannel, NotificationType, settings
from portal_sla.notifications.domain import (
    EmailTemplate,
    NotificationLogEntry,
    NotificationPayload,
    NotificationResult,
)
from portal_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ========== Port Interfaces (Dependency Inversion) ==========

class INotificationLogRepository(ABC):
    """Insert-only access to the notification log."""

    @abstractmethod
    async def insert(self, entry: NotificationLogEntry) -> None:
        """Persist one delivery attempt."""

    @abstractmethod
    async def exists_since(
        self,
        ticket_id: UUID,
        notification_type: NotificationType,
        since: datetime
    ) -> bool:
        """True if an entry for this ticket and type was created at or after `since`."""


class IEmailTemplateRepository(ABC):
    """Read access to organization and system email templates."""

    @abstractmethod
    async def find_effective(
        self,
        notification_type: NotificationType,
        organization_id: Optional[UUID] = None
    ) -> Optional[EmailTemplate]:
        """
        Resolve the template to use for a type.

        Priority: org default, org any (newest), system default, system any (newest).
        """


class INotificationSender(ABC):
    """One adapter per delivery channel."""

    provider: str

    @abstractmethod
    async def send(
        self,
        recipient: str,
        subject: str,
        message: str,
        metadata: Optional[Mapping] = None,
        *,
        notification_type: Optional[NotificationType] = None,
        ticket_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None
    ) -> NotificationResult:
        """Deliver a message. Must return a failed result rather than raise."""


# ========== Dispatcher ==========

class NotificationDispatcher:
    """
    Routes payloads to channel senders and writes the audit log.

    Every dispatch produces exactly one log entry, whatever the outcome.
    Nothing raised by a sender or by the log repository escapes to the caller.
    """

    def __init__(
        self,
        senders: Mapping[NotificationChannel, INotificationSender],
        log_repository: INotificationLogRepository,
        timeout_seconds: Optional[float] = None,
        clock: Clock = utc_now
    ):
        self._senders = dict(senders)
        self._log_repo = log_repository
        self._timeout = timeout_seconds or settings.channel_timeout_seconds
        self._clock = clock

    async def dispatch(self, payload: NotificationPayload) -> NotificationResult:
        """Send one payload and record the attempt."""
        result = await self._send(payload)
        await self._log(payload, result)
        return result

    async def dispatch_all(
        self,
        payloads: List[NotificationPayload]
    ) -> List[NotificationResult]:
        """Dispatch concurrently. Results come back in input order."""
        if not payloads:
            return []
        return list(await asyncio.gather(*(self.dispatch(p) for p in payloads)))

    async def _send(self, payload: NotificationPayload) -> NotificationResult:
        sender = self._senders.get(payload.channel)
        if sender is None:
            return NotificationResult.failed(
                f"Unsupported notification channel: {payload.channel}"
            )

        try:
            return await asyncio.wait_for(
                sender.send(
                    payload.recipient,
                    payload.subject or "Notification",
                    payload.message,
                    payload.metadata,
                    notification_type=payload.type,
                    ticket_id=payload.ticket_id,
                    organization_id=payload.organization_id,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Notification send timed out",
                extra={
                    "channel": payload.channel.value,
                    "ticket_id": str(payload.ticket_id) if payload.ticket_id else None,
                    "timeout_seconds": self._timeout,
                }
            )
            return NotificationResult.failed(
                f"Timed out after {self._timeout:g}s", provider=sender.provider
            )
        except Exception as e:
            logger.error(
                "Notification sender raised",
                extra={
                    "channel": payload.channel.value,
                    "error_type": type(e).__name__,
                    "error": str(e),
                }
            )
            return NotificationResult.failed(str(e) or type(e).__name__, provider=sender.provider)

    async def _log(self, payload: NotificationPayload, result: NotificationResult) -> None:
        entry = NotificationLogEntry.from_attempt(payload, result, self._clock())
        try:
            await self._log_repo.insert(entry)
        except Exception as e:
            logger.error(
                "Failed to write notification log",
                extra={
                    "channel": payload.channel.value,
                    "notification_type": payload.type.value,
                    "ticket_id": str(payload.ticket_id) if payload.ticket_id else None,
                    "error": str(e),
                }
            )
