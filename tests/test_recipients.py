from uuid import uuid4

from conftest import make_user
from portal_sla.config import NotificationChannel, NotificationType
from portal_sla.notifications.application import (
    build_ticket_notification_payloads,
    ticket_recipients,
)
from portal_sla.notifications.domain import (
    FormattedMessage,
    NotificationPreferences,
    OrganizationContact,
)

FORMATTED = FormattedMessage(subject="Subject", message="Body")


def org(**prefs):
    return OrganizationContact(id=uuid4(), name="Acme", preferences=NotificationPreferences.from_dict(prefs))


def build(notification_type=NotificationType.SLA_WARNING, organization=None, **kwargs):
    return build_ticket_notification_payloads(
        ticket_id=uuid4(),
        organization=organization or org(),
        notification_type=notification_type,
        formatted=FORMATTED,
        **kwargs,
    )


def test_assignee_excluded_from_ticket_created():
    creator, assignee = make_user("a@example.com"), make_user("b@example.com")

    assert ticket_recipients(NotificationType.TICKET_CREATED, creator, assignee) == [creator]
    assert ticket_recipients(NotificationType.SLA_BREACH, creator, assignee) == [creator, assignee]


def test_same_user_as_creator_and_assignee_notified_once():
    user = make_user()
    assert ticket_recipients(NotificationType.SLA_WARNING, user, user) == [user]


def test_email_enabled_by_default():
    payloads = build(creator=make_user())

    assert [(p.channel, p.recipient) for p in payloads] == [
        (NotificationChannel.EMAIL, "client@example.com")
    ]


def test_channel_requires_flag_and_address():
    user = make_user(email=False, sms=True, sms_number="+15551234567", whatsapp=True)

    payloads = build(creator=user)

    assert [(p.channel, p.recipient) for p in payloads] == [
        (NotificationChannel.SMS, "+15551234567")
    ]


def test_event_flag_mutes_type():
    user = make_user(notify_on_sla_warning=False)

    assert build(NotificationType.SLA_WARNING, creator=user) == []
    assert len(build(NotificationType.SLA_BREACH, creator=user)) == 1


def test_org_slack_payload():
    organization = org(email=False, slack=True, slack_webhook_url="https://hooks.slack.com/services/T/B/X")

    payloads = build(organization=organization, metadata={"ticket_number": 1001})

    [slack] = payloads
    assert slack.channel == NotificationChannel.SLACK
    assert slack.recipient == "https://hooks.slack.com/services/T/B/X"
    assert slack.user_id is None
    assert slack.metadata == {"ticket_number": 1001}


def test_user_slack_preference_is_ignored():
    user = make_user(slack=True, slack_webhook_url="https://hooks.slack.com/services/U")

    payloads = build(creator=user)

    assert NotificationChannel.SLACK not in {p.channel for p in payloads}


def test_payload_metadata_is_not_shared():
    payloads = build(creator=make_user(), assignee=make_user("b@example.com"), metadata={"k": 1})

    payloads[0].metadata["k"] = 2
    assert payloads[1].metadata == {"k": 1}
