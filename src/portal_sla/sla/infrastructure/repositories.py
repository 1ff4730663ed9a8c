"""
SLA Infrastructure Repositories
=================================

SQLAlchemy implementation of the ticket repository.

Reads run through the session factory with elevated (service) credentials,
so row-level tenant restrictions of the portal do not apply here.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, case, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload

from portal_sla.config import TERMINAL_STATUSES, TicketStatus
from portal_sla.core.exceptions import RepositoryException
from portal_sla.notifications.domain import (
    NotificationPreferences,
    OrganizationContact,
    UserContact,
)
from portal_sla.shared.infrastructure.logging import get_logger
from portal_sla.sla.application.services import ITicketRepository
from portal_sla.sla.domain import SLAPolicy, Ticket
from portal_sla.sla.infrastructure.models import (
    OrganizationModel,
    TicketModel,
    UserModel,
)

logger = get_logger(__name__)


class SQLAlchemyTicketRepository(ITicketRepository):
    """Read-only ticket access with organization, creator and assignee eagerly loaded."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    def _base_query(self):
        return select(TicketModel).options(
            joinedload(TicketModel.organization),
            joinedload(TicketModel.created_by_user),
            joinedload(TicketModel.assigned_to_user),
        )

    async def get_ticket(self, ticket_id: UUID) -> Optional[Ticket]:
        stmt = self._base_query().where(TicketModel.id == ticket_id)
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                model = result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RepositoryException(f"Failed to load ticket {ticket_id}", {"error": str(e)}) from e

        return _to_entity(model) if model is not None else None

    def _attention_query(self, now: datetime):
        """Open-deadline tickets, overdue first, then by the nearest open deadline."""
        terminal = [s.value for s in TERMINAL_STATUSES]
        # The deadline the evaluator looks at first: first response until met, then resolution
        open_due = case(
            (
                and_(
                    TicketModel.first_response_at.is_(None),
                    TicketModel.first_response_due_at.is_not(None),
                ),
                TicketModel.first_response_due_at,
            ),
            else_=TicketModel.sla_due_at,
        )
        return (
            self._base_query()
            .where(
                TicketModel.status.not_in(terminal),
                or_(
                    and_(
                        TicketModel.first_response_at.is_(None),
                        TicketModel.first_response_due_at.is_not(None),
                    ),
                    and_(
                        TicketModel.resolved_at.is_(None),
                        TicketModel.sla_due_at.is_not(None),
                    ),
                ),
            )
            .order_by(
                case((open_due < now, 0), else_=1),
                open_due,
                TicketModel.created_at,
            )
        )

    async def get_tickets_needing_attention(
        self,
        now: datetime,
        policy: SLAPolicy
    ) -> List[Ticket]:
        """
        Non-terminal tickets with an open deadline, overdue ones first.

        Classification is left to the evaluator; this only narrows and orders
        the set. `policy` is part of the port so a store can pre-filter on the
        warning thresholds; this implementation returns every open deadline.
        """
        stmt = self._attention_query(now)
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                models = result.unique().scalars().all()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to load tickets needing SLA attention", {"error": str(e)}) from e

        tickets = []
        for model in models:
            try:
                tickets.append(_to_entity(model))
            except ValueError as e:
                logger.warning(
                    "Skipping ticket with unreadable data",
                    extra={"ticket_id": str(model.id), "error": str(e)}
                )
        return tickets


def _to_user(model: Optional[UserModel]) -> Optional[UserContact]:
    if model is None:
        return None
    return UserContact(
        id=model.id,
        email=model.email,
        full_name=model.full_name,
        preferences=NotificationPreferences.from_dict(model.notification_preferences),
    )


def _to_organization(model: OrganizationModel) -> OrganizationContact:
    return OrganizationContact(
        id=model.id,
        name=model.name,
        preferences=NotificationPreferences.from_dict(model.notification_preferences),
    )


def _to_entity(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        ticket_number=model.ticket_number,
        subject=model.subject,
        priority=model.priority,
        status=TicketStatus(model.status),
        created_at=model.created_at,
        organization=_to_organization(model.organization),
        first_response_due_at=model.first_response_due_at,
        first_response_at=model.first_response_at,
        resolution_due_at=model.sla_due_at,
        resolved_at=model.resolved_at,
        creator=_to_user(model.created_by_user),
        assignee=_to_user(model.assigned_to_user),
    )
