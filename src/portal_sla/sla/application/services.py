"""
SLA Application Services
=========================

Application services orchestrate the SLA pipeline:
evaluate -> dedup check -> format -> resolve recipients -> dispatch.

Following SOLID principles:
- Single Responsibility: the ledger answers "already notified?", the
  monitor drives the pipeline
- Dependency Inversion: depend on repository/provider abstractions, not
  on SQLAlchemy, YAML or HTTP
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional, Union
from uuid import UUID

from portal_sla.config import NotificationType, SLAClassification
from portal_sla.notifications.application import (
    INotificationLogRepository,
    NotificationDispatcher,
    build_ticket_notification_payloads,
)
from portal_sla.notifications.application.services import Clock, utc_now
from portal_sla.notifications.domain import NotificationContext, format_notification_message
from portal_sla.shared.infrastructure.logging import get_logger, log_latency
from portal_sla.sla.domain import (
    DeadlineEvaluator,
    DeadlineEvent,
    NotifiedTicket,
    SLACheckResult,
    SLAPolicy,
    Ticket,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Read-only ticket access with audience (organization, creator, assignee)."""

    @abstractmethod
    async def get_ticket(self, ticket_id: UUID) -> Optional[Ticket]:
        """Get a ticket by id, or None if it does not exist."""

    @abstractmethod
    async def get_tickets_needing_attention(
        self,
        now: datetime,
        policy: SLAPolicy
    ) -> List[Ticket]:
        """Non-terminal tickets with at least one unmet deadline worth evaluating."""


class ISLAPolicyProvider(ABC):
    """Interface for SLA policy access."""

    @abstractmethod
    def get_policy(self) -> SLAPolicy:
        """Get current SLA policy."""


class ISweepMetricsExporter(ABC):
    """Receives the outcome of each batch sweep."""

    @abstractmethod
    async def export_sweep(self, result: SLACheckResult, latency_ms: int, trigger: str) -> None:
        """Best-effort export; implementations must not raise."""


# ========== Application Services ==========

class DedupLedger:
    """
    Answers whether a ticket was already notified for a type inside the cooldown.

    Backed by the notification log; a pure read. The log insert done by the
    dispatcher is what advances the window. Concurrent passes can still
    both send: this is a best-effort guard, not a lock.
    """

    def __init__(self, log_repository: INotificationLogRepository):
        self._log_repo = log_repository

    async def was_recently_notified(
        self,
        ticket_id: UUID,
        notification_type: NotificationType,
        cooldown: timedelta,
        now: datetime
    ) -> bool:
        return await self._log_repo.exists_since(ticket_id, notification_type, now - cooldown)


class SLAMonitor:
    """
    SLA monitor with two entry points: the batch sweep and the on-demand check.

    Neither entry point raises. Per-ticket failures are logged and the sweep
    moves on; delivery failures are recorded by the dispatcher.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        policy_provider: ISLAPolicyProvider,
        ledger: DedupLedger,
        dispatcher: NotificationDispatcher,
        clock: Clock = utc_now,
        metrics_exporter: Optional[ISweepMetricsExporter] = None
    ):
        self._ticket_repo = ticket_repository
        self._policy_provider = policy_provider
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._clock = clock
        self._metrics = metrics_exporter

    async def check_and_notify_sla(self, trigger: str = "cron") -> SLACheckResult:
        """
        Batch sweep over every ticket needing SLA attention.

        Returns:
            SLACheckResult with candidate count, notifications dispatched and
            the tickets that were notified
        """
        policy = self._policy_provider.get_policy()
        if not policy.enabled:
            logger.info("SLA monitoring disabled, skipping sweep")
            return SLACheckResult()

        start = time.perf_counter()
        result = SLACheckResult()

        with log_latency(logger, "sla_sweep", trigger=trigger):
            now = self._clock()
            try:
                tickets = await self._ticket_repo.get_tickets_needing_attention(now, policy)
            except Exception as e:
                logger.error(
                    "Failed to load tickets needing SLA attention",
                    extra={"error_type": type(e).__name__, "error": str(e)}
                )
                return result

            result.checked = len(tickets)

            for ticket in tickets:
                try:
                    event = DeadlineEvaluator.classify(ticket, policy, now)
                    if event is None:
                        continue
                    sent = await self._notify(ticket, event, policy)
                except Exception as e:
                    logger.error(
                        "SLA check failed for ticket",
                        extra={
                            "ticket_id": str(ticket.id),
                            "error_type": type(e).__name__,
                            "error": str(e),
                        }
                    )
                    continue

                if sent:
                    result.notified += sent
                    result.tickets.append(
                        NotifiedTicket(
                            ticket_id=ticket.id,
                            ticket_number=ticket.ticket_number,
                            level=event.classification,
                        )
                    )

        logger.info(
            "SLA sweep finished",
            extra={
                "trigger": trigger,
                "checked": result.checked,
                "notified": result.notified,
                "tickets_notified": len(result.tickets),
            }
        )
        await self._export_metrics(result, int((time.perf_counter() - start) * 1000), trigger)
        return result

    async def check_ticket_sla(self, ticket_id: Union[str, UUID]) -> bool:
        """
        Re-evaluate one ticket, typically on view or update.

        Returns:
            True if at least one notification was dispatched
        """
        try:
            ticket_uuid = ticket_id if isinstance(ticket_id, UUID) else UUID(str(ticket_id))
        except ValueError:
            logger.warning("Malformed ticket id for SLA check", extra={"ticket_id": str(ticket_id)})
            return False

        policy = self._policy_provider.get_policy()
        if not (policy.enabled and policy.on_demand_enabled):
            return False

        try:
            ticket = await self._ticket_repo.get_ticket(ticket_uuid)
            if ticket is None:
                logger.debug("Ticket not found for SLA check", extra={"ticket_id": str(ticket_uuid)})
                return False

            event = DeadlineEvaluator.classify(ticket, policy, self._clock())
            if event is None:
                return False

            if event.classification == SLAClassification.BREACH and not policy.breach_immediate_notify:
                # Breach notices are left to the next batch sweep
                return False

            return await self._notify(ticket, event, policy) > 0
        except Exception as e:
            logger.error(
                "On-demand SLA check failed",
                extra={
                    "ticket_id": str(ticket_uuid),
                    "error_type": type(e).__name__,
                    "error": str(e),
                }
            )
            return False

    async def _notify(self, ticket: Ticket, event: DeadlineEvent, policy: SLAPolicy) -> int:
        """Run dedup, format and dispatch for one event. Returns notifications dispatched."""
        notification_type = event.notification_type

        if await self._ledger.was_recently_notified(
            ticket.id, notification_type, policy.cooldown, event.computed_at
        ):
            logger.debug(
                "SLA notification suppressed by cooldown",
                extra={
                    "ticket_id": str(ticket.id),
                    "notification_type": notification_type.value,
                }
            )
            return 0

        is_breach = event.classification == SLAClassification.BREACH
        formatted = format_notification_message(
            notification_type,
            NotificationContext(
                ticket_number=ticket.ticket_number,
                ticket_subject=ticket.subject,
                priority=ticket.priority,
                hours_overdue=event.hours_overdue if is_breach else None,
                hours_until_due=None if is_breach else event.hours_until_due,
            ),
        )

        payloads = build_ticket_notification_payloads(
            ticket_id=ticket.id,
            organization=ticket.organization,
            notification_type=notification_type,
            formatted=formatted,
            creator=ticket.creator,
            assignee=ticket.assignee,
            metadata={
                "ticket_number": ticket.ticket_number,
                "ticket_subject": ticket.subject,
                "priority": ticket.priority,
                "deadline_kind": event.kind.value,
                "classification": event.classification.value,
                "due_at": event.due_at.isoformat(),
                "percent_remaining": round(event.percent_remaining, 1),
            },
        )
        if not payloads:
            logger.info(
                "No enabled recipients for SLA notification",
                extra={"ticket_id": str(ticket.id), "notification_type": notification_type.value}
            )
            return 0

        results = await self._dispatcher.dispatch_all(payloads)
        logger.info(
            "SLA notification dispatched",
            extra={
                "ticket_id": str(ticket.id),
                "ticket_number": ticket.ticket_number,
                "notification_type": notification_type.value,
                "deadline_kind": event.kind.value,
                "payloads": len(payloads),
                "delivered": sum(1 for r in results if r.success),
            }
        )
        return len(payloads)

    async def _export_metrics(self, result: SLACheckResult, latency_ms: int, trigger: str) -> None:
        if self._metrics is None:
            return
        try:
            await self._metrics.export_sweep(result, latency_ms, trigger)
        except Exception as e:
            logger.warning("Sweep metrics export failed", extra={"error": str(e)})
