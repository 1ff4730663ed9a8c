"""
Notification Infrastructure Repositories
=========================================

SQLAlchemy implementations of the notification log and email template ports.

Both repositories hold a session factory and open a short-lived session per
call: the dispatcher writes log entries concurrently and an AsyncSession
must not be shared across concurrent tasks.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portal_sla.config import NotificationType
from portal_sla.core.exceptions import RepositoryException
from portal_sla.notifications.application.services import (
    IEmailTemplateRepository,
    INotificationLogRepository,
)
from portal_sla.notifications.domain import EmailTemplate, NotificationLogEntry
from portal_sla.notifications.infrastructure.models import (
    EmailTemplateModel,
    NotificationLogModel,
)


class SQLAlchemyNotificationLogRepository(INotificationLogRepository):
    """Insert-only notification log backed by the notification_log table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def insert(self, entry: NotificationLogEntry) -> None:
        model = NotificationLogModel(
            organization_id=entry.organization_id,
            user_id=entry.user_id,
            notification_type=entry.notification_type.value,
            channel=entry.channel.value,
            ticket_id=entry.ticket_id,
            comment_id=entry.comment_id,
            subject=entry.subject,
            message=entry.message,
            recipient=entry.recipient,
            status=entry.status.value,
            sent_at=entry.sent_at,
            failed_at=entry.failed_at,
            error_message=entry.error_message,
            provider=entry.provider,
            provider_message_id=entry.provider_message_id,
            metadata_=_json_safe(entry.metadata),
            created_at=entry.created_at,
        )
        try:
            async with self._session_maker() as session:
                session.add(model)
                await session.commit()
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to insert notification log entry", {"error": str(e)}) from e

    async def exists_since(
        self,
        ticket_id: UUID,
        notification_type: NotificationType,
        since: datetime
    ) -> bool:
        stmt = (
            select(NotificationLogModel.id)
            .where(
                NotificationLogModel.ticket_id == ticket_id,
                NotificationLogModel.notification_type == notification_type.value,
                NotificationLogModel.created_at >= since,
            )
            .limit(1)
        )
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to query notification log", {"error": str(e)}) from e


class SQLAlchemyEmailTemplateRepository(IEmailTemplateRepository):
    """Resolves the effective email template for a type and organization."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def find_effective(
        self,
        notification_type: NotificationType,
        organization_id: Optional[UUID] = None
    ) -> Optional[EmailTemplate]:
        base = select(EmailTemplateModel).where(
            EmailTemplateModel.template_type == notification_type.value,
            EmailTemplateModel.is_active.is_(True),
        )
        newest = EmailTemplateModel.created_at.desc()

        candidates = []
        if organization_id is not None:
            scoped = base.where(EmailTemplateModel.organization_id == organization_id)
            candidates.append(scoped.where(EmailTemplateModel.is_default.is_(True)).order_by(newest))
            candidates.append(scoped.order_by(newest))
        system = base.where(EmailTemplateModel.organization_id.is_(None))
        candidates.append(system.where(EmailTemplateModel.is_default.is_(True)).order_by(newest))
        candidates.append(system.order_by(newest))

        try:
            async with self._session_maker() as session:
                for stmt in candidates:
                    result = await session.execute(stmt.limit(1))
                    model = result.scalar_one_or_none()
                    if model is not None:
                        return _to_entity(model)
        except SQLAlchemyError as e:
            raise RepositoryException("Failed to load email template", {"error": str(e)}) from e
        return None


def _to_entity(model: EmailTemplateModel) -> EmailTemplate:
    return EmailTemplate(
        id=model.id,
        notification_type=NotificationType(model.template_type),
        subject_template=model.subject,
        html_template=model.body_html,
        text_template=model.body_text,
        organization_id=model.organization_id,
        is_default=model.is_default,
        from_name=model.from_name,
        from_email=model.from_email,
        reply_to=model.reply_to,
    )


def _json_safe(value):
    """Coerce metadata to JSON-serialisable primitives."""
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
