"""
Shared plumbing for HTTP channel senders.

Subclasses implement `_deliver`, raising ConfigurationException when
credentials are missing and NotificationDeliveryException on non-2xx
responses. `send` turns both, plus transport errors, into failed results.
"""

from abc import abstractmethod
from typing import Any, Mapping, Optional
from uuid import UUID

import httpx

from portal_sla.config import NotificationType, settings
from portal_sla.core.exceptions import (
    ConfigurationException,
    NotificationDeliveryException,
)
from portal_sla.notifications.application.services import INotificationSender
from portal_sla.notifications.domain import NotificationResult
from portal_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ChannelSender(INotificationSender):
    """Base class for senders that talk to a provider over HTTP."""

    provider = "unknown"
    channel_name = "notification"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None
    ):
        self._http_client = client
        self._timeout = timeout_seconds or settings.channel_timeout_seconds

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

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
        try:
            return await self._deliver(
                recipient,
                subject,
                message,
                dict(metadata or {}),
                notification_type=notification_type,
                ticket_id=ticket_id,
                organization_id=organization_id,
            )
        except ConfigurationException as e:
            logger.error(
                f"{self.channel_name} sender not configured",
                extra={"provider": self.provider, "error": e.message}
            )
            return NotificationResult.failed(e.message)
        except NotificationDeliveryException as e:
            logger.error(
                f"{self.channel_name} send failed",
                extra={
                    "provider": self.provider,
                    "status_code": e.status_code,
                    "error": e.message,
                }
            )
            return NotificationResult.failed(e.message, provider=self.provider)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                f"{self.channel_name} error",
                extra={"provider": self.provider, "error_type": type(e).__name__, "error": str(e)}
            )
            return NotificationResult.failed(str(e) or type(e).__name__, provider=self.provider)

    @abstractmethod
    async def _deliver(
        self,
        recipient: str,
        subject: str,
        message: str,
        metadata: dict,
        *,
        notification_type: Optional[NotificationType],
        ticket_id: Optional[UUID],
        organization_id: Optional[UUID]
    ) -> NotificationResult:
        """Provider-specific delivery. May raise; `send` converts to a result."""

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        """POST and raise NotificationDeliveryException on a non-2xx response."""
        client = await self._get_client()
        response = await client.post(url, **kwargs)
        if not response.is_success:
            logger.debug(
                "Provider rejected request",
                extra={
                    "provider": self.provider,
                    "status_code": response.status_code,
                    "response": response.text[:500],
                }
            )
            raise NotificationDeliveryException(
                self.provider,
                f"Failed to send {self.channel_name.lower()}: "
                f"{response.reason_phrase or response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
