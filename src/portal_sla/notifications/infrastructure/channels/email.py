"""
Email Channel (Resend)
======================

Sends notification emails through the Resend HTTP API.

Two modes:
- Plain: the formatted message wrapped in the portal's HTML layout
- Templated: an organization or system template from the database, with
  `{{variable}}` interpolation. Falls back to plain when no template exists.
"""

import html
from email.utils import formataddr, parseaddr
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

import httpx

from portal_sla.config import NotificationType, settings
from portal_sla.core.exceptions import ConfigurationException
from portal_sla.notifications.application.services import IEmailTemplateRepository
from portal_sla.notifications.domain import EmailTemplate, NotificationResult
from portal_sla.notifications.infrastructure.channels.base import ChannelSender
from portal_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def ticket_url(ticket_id: Optional[UUID], app_url: Optional[str] = None) -> Optional[str]:
    if not ticket_id:
        return None
    return f"{app_url or settings.app_url}/dashboard/tickets/{ticket_id}"


def preferences_url(app_url: Optional[str] = None) -> str:
    return f"{app_url or settings.app_url}/dashboard/settings/notifications"


def format_email_html(
    message: str,
    portal_name: str,
    preferences_link: str,
    ticket_number: Optional[Any] = None,
    ticket_link: Optional[str] = None
) -> str:
    """Wrap a plain-text message in the portal's email layout."""
    paragraphs = "".join(
        '<p style="margin: 0 0 16px 0; line-height: 1.5;">'
        f"{html.escape(paragraph).replace(chr(10), '<br>')}</p>"
        for paragraph in message.split("\n\n")
    )
    title = f"Ticket #{ticket_number}" if ticket_number else "Notification"
    ticket_line = (
        '<p style="margin: 8px 0 0 0; color: rgba(255, 255, 255, 0.9); font-size: 14px;">'
        f"Ticket #{html.escape(str(ticket_number))}</p>"
        if ticket_number else ""
    )
    button = (
        '<table width="100%" cellpadding="0" cellspacing="0" style="margin-top: 24px;">'
        '<tr><td align="center">'
        f'<a href="{html.escape(ticket_link, quote=True)}" style="display: inline-block; '
        "padding: 12px 32px; background-color: #667eea; color: #ffffff; "
        'text-decoration: none; border-radius: 6px; font-weight: 500;">View Ticket</a>'
        "</td></tr></table>"
        if ticket_link else ""
    )

    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
  </head>
  <body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f8fafc; color: #1e293b;">
    <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f8fafc; padding: 40px 20px;">
      <tr>
        <td align="center">
          <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 8px; overflow: hidden;">
            <tr>
              <td style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 32px; text-align: center;">
                <h1 style="margin: 0; color: #ffffff; font-size: 24px; font-weight: 600;">{html.escape(portal_name)} Support</h1>
                {ticket_line}
              </td>
            </tr>
            <tr>
              <td style="padding: 40px 32px;">
                {paragraphs}
                {button}
              </td>
            </tr>
            <tr>
              <td style="background-color: #f8fafc; padding: 24px 32px; border-top: 1px solid #e2e8f0; text-align: center;">
                <p style="margin: 0; font-size: 12px; color: #64748b;">You received this email because you are subscribed to ticket notifications.</p>
                <p style="margin: 8px 0 0 0; font-size: 12px; color: #64748b;">
                  <a href="{html.escape(preferences_link, quote=True)}" style="color: #667eea; text-decoration: none;">Manage notification preferences</a>
                </p>
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>
"""


class EmailSender(ChannelSender):
    """
    Resend email sender.

    When a template repository is supplied and the notification type is
    known, an effective template is looked up first. Lookup failures are
    treated the same as "no template" and the plain layout is used.
    """

    provider = "resend"
    channel_name = "Email"

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_address: Optional[str] = None,
        template_repository: Optional[IEmailTemplateRepository] = None,
        app_url: Optional[str] = None,
        portal_name: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None
    ):
        super().__init__(client=client, timeout_seconds=timeout_seconds)
        self._api_key = api_key if api_key is not None else settings.resend_api_key
        self._from = from_address or settings.email_from
        self._templates = template_repository
        self._app_url = (app_url or settings.app_url).rstrip("/")
        self._portal_name = portal_name or settings.portal_name

    def _require_api_key(self) -> str:
        if not self._api_key:
            raise ConfigurationException("Email service not configured")
        return self._api_key

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
        self._require_api_key()

        template = None
        if self._templates is not None and notification_type is not None:
            template = await self._lookup_template(notification_type, organization_id)

        if template is not None:
            variables = self._template_variables(subject, message, metadata, ticket_id)
            return await self._send_template(recipient, template, variables)

        body = {
            "from": self._from,
            "to": [recipient],
            "subject": subject,
            "html": format_email_html(
                message,
                portal_name=self._portal_name,
                preferences_link=preferences_url(self._app_url),
                ticket_number=metadata.get("ticket_number"),
                ticket_link=ticket_url(ticket_id, self._app_url),
            ),
            "text": message,
        }
        return await self._post_email(body)

    async def send_templated(
        self,
        recipient: str,
        notification_type: NotificationType,
        variables: Mapping[str, Any],
        organization_id: Optional[UUID] = None
    ) -> NotificationResult:
        """
        Send using the effective template for a type.

        Without a template, `subject` and `message` from the variables are
        sent through the plain layout.
        """
        return await self.send(
            recipient,
            str(variables.get("subject") or "Notification"),
            str(variables.get("message") or "You have a new notification."),
            variables,
            notification_type=notification_type,
            organization_id=organization_id,
        )

    async def _lookup_template(
        self,
        notification_type: NotificationType,
        organization_id: Optional[UUID]
    ) -> Optional[EmailTemplate]:
        try:
            template = await self._templates.find_effective(notification_type, organization_id)
        except Exception as e:
            logger.error(
                "Email template lookup failed, using default layout",
                extra={"notification_type": notification_type.value, "error": str(e)}
            )
            return None
        if template is None:
            logger.debug(
                "No email template found, using default layout",
                extra={"notification_type": notification_type.value}
            )
        return template

    def _template_variables(
        self,
        subject: str,
        message: str,
        metadata: Mapping[str, Any],
        ticket_id: Optional[UUID]
    ) -> Dict[str, Any]:
        variables: Dict[str, Any] = {
            "portal_name": self._portal_name,
            "unsubscribe_url": preferences_url(self._app_url),
            "subject": subject,
            "message": message,
        }
        link = ticket_url(ticket_id, self._app_url)
        if link:
            variables["ticket_url"] = link
        variables.update(metadata)
        return variables

    async def _send_template(
        self,
        recipient: str,
        template: EmailTemplate,
        variables: Mapping[str, Any]
    ) -> NotificationResult:
        rendered = template.render(variables)
        from_address = self._from
        if template.from_name or template.from_email:
            default_name, default_email = parseaddr(self._from)
            from_address = formataddr((
                template.from_name or default_name,
                template.from_email or default_email or self._from.strip(),
            ))

        body: Dict[str, Any] = {
            "from": from_address,
            "to": [recipient],
            "subject": rendered.subject,
            "html": rendered.html,
        }
        if rendered.text:
            body["text"] = rendered.text
        if template.reply_to:
            body["reply_to"] = template.reply_to

        result = await self._post_email(body)
        result.template_id = template.id
        return result

    async def _post_email(self, body: Dict[str, Any]) -> NotificationResult:
        response = await self._post(
            RESEND_API_URL,
            headers={"Authorization": f"Bearer {self._require_api_key()}"},
            json=body,
        )
        data = response.json()
        return NotificationResult(success=True, message_id=data.get("id"), provider=self.provider)
