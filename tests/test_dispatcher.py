from uuid import uuid4

import pytest

from conftest import RecordingSender, utc
from portal_sla.config import NotificationChannel, NotificationStatus, NotificationType
from portal_sla.notifications.application import NotificationDispatcher
from portal_sla.notifications.domain import NotificationPayload


def payload(channel, recipient="client@example.com", **kwargs):
    return NotificationPayload(
        type=kwargs.pop("type", NotificationType.SLA_WARNING),
        channel=channel,
        recipient=recipient,
        organization_id=uuid4(),
        ticket_id=kwargs.pop("ticket_id", uuid4()),
        subject="⚠️ SLA Warning",
        message="Ticket is approaching its deadline.",
        **kwargs,
    )


async def test_successful_dispatch_writes_sent_log_entry(dispatcher, senders, log_repo, clock):
    result = await dispatcher.dispatch(payload(NotificationChannel.EMAIL))

    assert result.success
    assert result.message_id == "resend-1"
    assert len(senders[NotificationChannel.EMAIL].calls) == 1

    [entry] = log_repo.entries
    assert entry.status == NotificationStatus.SENT
    assert entry.sent_at == clock.now
    assert entry.failed_at is None
    assert entry.provider == "resend"
    assert entry.provider_message_id == "resend-1"


async def test_failed_result_is_logged_with_error(senders, log_repo, clock):
    senders[NotificationChannel.SMS] = RecordingSender("twilio", fail_with="Failed to send sms: Bad Request")
    dispatcher = NotificationDispatcher(senders, log_repo, timeout_seconds=1, clock=clock)

    result = await dispatcher.dispatch(payload(NotificationChannel.SMS, "+15551234567"))

    assert not result.success
    [entry] = log_repo.entries
    assert entry.status == NotificationStatus.FAILED
    assert entry.failed_at == clock.now
    assert entry.sent_at is None
    assert entry.error_message == "Failed to send sms: Bad Request"


async def test_raising_sender_does_not_affect_siblings(senders, log_repo, clock):
    senders[NotificationChannel.SMS] = RecordingSender("twilio", raises=RuntimeError("socket closed"))
    dispatcher = NotificationDispatcher(senders, log_repo, timeout_seconds=1, clock=clock)

    results = await dispatcher.dispatch_all([
        payload(NotificationChannel.EMAIL),
        payload(NotificationChannel.SMS, "+15551234567"),
        payload(NotificationChannel.SLACK, "https://hooks.slack.com/services/T/B/X"),
    ])

    assert [r.success for r in results] == [True, False, True]
    assert results[1].error == "socket closed"
    assert results[1].provider == "twilio"
    assert len(log_repo.entries) == 3


async def test_slow_sender_times_out(senders, log_repo, clock):
    senders[NotificationChannel.WHATSAPP] = RecordingSender("twilio", delay=0.5)
    dispatcher = NotificationDispatcher(senders, log_repo, timeout_seconds=0.05, clock=clock)

    result = await dispatcher.dispatch(payload(NotificationChannel.WHATSAPP, "+15551234567"))

    assert not result.success
    assert result.error == "Timed out after 0.05s"
    assert log_repo.entries[0].status == NotificationStatus.FAILED


async def test_missing_sender_yields_failed_result(log_repo, clock):
    dispatcher = NotificationDispatcher({}, log_repo, timeout_seconds=1, clock=clock)

    result = await dispatcher.dispatch(payload(NotificationChannel.SLACK, "https://hooks.slack.com/x"))

    assert not result.success
    assert result.error.startswith("Unsupported notification channel")
    assert len(log_repo.entries) == 1


async def test_log_failure_is_swallowed(dispatcher, log_repo):
    log_repo.fail_inserts = True

    result = await dispatcher.dispatch(payload(NotificationChannel.EMAIL))

    assert result.success


async def test_dispatch_all_empty():
    dispatcher = NotificationDispatcher({}, None, timeout_seconds=1)
    assert await dispatcher.dispatch_all([]) == []


async def test_log_entry_copies_payload_fields(dispatcher, log_repo):
    ticket_id = uuid4()
    p = payload(
        NotificationChannel.EMAIL,
        ticket_id=ticket_id,
        type=NotificationType.SLA_BREACH,
        metadata={"ticket_number": 1001},
    )

    await dispatcher.dispatch(p)

    [entry] = log_repo.entries
    assert entry.ticket_id == ticket_id
    assert entry.notification_type == NotificationType.SLA_BREACH
    assert entry.organization_id == p.organization_id
    assert entry.metadata == {"ticket_number": 1001}
    assert entry.created_at == utc(2024, 1, 1, 3, 10)


@pytest.mark.parametrize("subject", [None, ""])
async def test_missing_subject_defaults(dispatcher, senders, subject):
    p = payload(NotificationChannel.EMAIL)
    p.subject = subject

    await dispatcher.dispatch(p)

    assert senders[NotificationChannel.EMAIL].calls[0]["subject"] == "Notification"
