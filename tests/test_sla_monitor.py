from datetime import timedelta
from uuid import uuid4

import pytest

from conftest import make_ticket, make_user, utc
from portal_sla.config import NotificationChannel, NotificationType, SLAClassification
from portal_sla.notifications.domain import NotificationPayload
from portal_sla.sla.application import DedupLedger, ISweepMetricsExporter, SLAMonitor
from portal_sla.sla.domain import SLAPolicy

SLACK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


@pytest.fixture
def ticket():
    return make_ticket(
        creator=make_user(sms=True, sms_number="+15551234567"),
        org_prefs={"email": False, "slack": True, "slack_webhook_url": SLACK_URL},
    )


class RecordingMetrics(ISweepMetricsExporter):
    def __init__(self):
        self.exports = []

    async def export_sweep(self, result, latency_ms, trigger):
        self.exports.append((result.checked, result.notified, trigger))


class TestBatchSweep:
    async def test_warning_dispatches_one_payload_per_channel(self, monitor, ticket_repo, ticket, log_repo, senders):
        ticket_repo.tickets[ticket.id] = ticket

        result = await monitor.check_and_notify_sla()

        assert result.checked == 1
        assert result.notified == 3
        assert [t.to_dict() for t in result.tickets] == [
            {"ticket_id": str(ticket.id), "ticket_number": 1001, "level": "warning"}
        ]
        assert {e.channel for e in log_repo.entries} == {
            NotificationChannel.EMAIL,
            NotificationChannel.SMS,
            NotificationChannel.SLACK,
        }
        assert all(e.notification_type == NotificationType.SLA_WARNING for e in log_repo.entries)
        assert senders[NotificationChannel.EMAIL].calls[0]["subject"] == (
            "⚠️ SLA Warning: Ticket #1001 Approaching Deadline"
        )

    async def test_repeat_within_cooldown_is_suppressed_then_breach_fires(
        self, monitor, ticket_repo, ticket, log_repo, clock
    ):
        ticket_repo.tickets[ticket.id] = ticket
        await monitor.check_and_notify_sla()

        clock.now = utc(2024, 1, 1, 3, 40)
        suppressed = await monitor.check_and_notify_sla()
        assert suppressed.checked == 1
        assert suppressed.notified == 0
        assert suppressed.tickets == []
        assert len(log_repo.entries) == 3

        clock.now = utc(2024, 1, 1, 4, 5)
        breach = await monitor.check_and_notify_sla()
        assert breach.notified == 3
        assert breach.tickets[0].level == SLAClassification.BREACH
        assert [e.notification_type for e in log_repo.entries[3:]] == [NotificationType.SLA_BREACH] * 3

    async def test_warning_repeats_after_cooldown(self, monitor, ticket_repo, log_repo, clock):
        ticket = make_ticket(
            first_response_due_at=None,
            resolution_due_at=utc(2024, 1, 3, 0, 0),
            creator=make_user(),
        )
        ticket_repo.tickets[ticket.id] = ticket

        clock.now = utc(2024, 1, 2, 14, 0)
        assert (await monitor.check_and_notify_sla()).notified == 1
        clock.now = utc(2024, 1, 2, 17, 0)
        assert (await monitor.check_and_notify_sla()).notified == 0
        clock.now = utc(2024, 1, 2, 18, 1)
        assert (await monitor.check_and_notify_sla()).notified == 1

    async def test_ok_tickets_are_counted_but_not_notified(self, monitor, ticket_repo, log_repo, clock):
        ticket = make_ticket(creator=make_user())
        ticket_repo.tickets[ticket.id] = ticket
        clock.now = utc(2024, 1, 1, 1, 0)

        result = await monitor.check_and_notify_sla()

        assert result.checked == 1
        assert result.notified == 0
        assert log_repo.entries == []

    async def test_ticket_without_recipients_is_not_reported(self, monitor, ticket_repo):
        ticket = make_ticket()
        ticket_repo.tickets[ticket.id] = ticket

        result = await monitor.check_and_notify_sla()

        assert result.checked == 1
        assert result.notified == 0
        assert result.tickets == []

    async def test_failing_ticket_does_not_stop_the_sweep(self, ticket_repo, policy_provider, log_repo, dispatcher, clock):

        class BrokenLedger(DedupLedger):
            async def was_recently_notified(self, ticket_id, notification_type, cooldown, now):
                if ticket_id == bad.id:
                    raise RuntimeError("lookup failed")
                return await super().was_recently_notified(ticket_id, notification_type, cooldown, now)

        bad = make_ticket(ticket_number=1, creator=make_user())
        good = make_ticket(ticket_number=2, creator=make_user())
        ticket_repo.tickets = {bad.id: bad, good.id: good}
        monitor = SLAMonitor(ticket_repo, policy_provider, BrokenLedger(log_repo), dispatcher, clock=clock)

        result = await monitor.check_and_notify_sla()

        assert result.checked == 2
        assert [t.ticket_number for t in result.tickets] == [2]

    async def test_listing_failure_returns_empty_result(self, monitor, ticket_repo):
        ticket_repo.fail_listing = True

        result = await monitor.check_and_notify_sla()

        assert result.to_dict() == {"checked": 0, "notified": 0, "tickets": []}

    async def test_disabled_policy_skips_sweep(self, monitor, ticket_repo, ticket, policy_provider, log_repo):
        ticket_repo.tickets[ticket.id] = ticket
        policy_provider.policy = SLAPolicy(enabled=False)

        result = await monitor.check_and_notify_sla()

        assert result.checked == 0
        assert log_repo.entries == []

    async def test_delivery_failures_still_count_and_log(self, monitor, ticket_repo, ticket, senders, log_repo):
        senders[NotificationChannel.SMS].fail_with = "Failed to send sms: Bad Request"
        ticket_repo.tickets[ticket.id] = ticket

        result = await monitor.check_and_notify_sla()

        assert result.notified == 3
        assert sorted(e.status.value for e in log_repo.entries) == ["failed", "sent", "sent"]

    async def test_metrics_exported_after_sweep(self, ticket_repo, policy_provider, log_repo, dispatcher, clock, ticket):

        metrics = RecordingMetrics()
        monitor = SLAMonitor(
            ticket_repo, policy_provider, DedupLedger(log_repo), dispatcher,
            clock=clock, metrics_exporter=metrics,
        )
        ticket_repo.tickets[ticket.id] = ticket

        await monitor.check_and_notify_sla(trigger="scheduler")

        assert metrics.exports == [(1, 3, "scheduler")]


class TestOnDemandCheck:
    async def test_warning_notifies_once(self, monitor, ticket_repo, ticket, log_repo):
        ticket_repo.tickets[ticket.id] = ticket

        assert await monitor.check_ticket_sla(str(ticket.id)) is True
        assert await monitor.check_ticket_sla(ticket.id) is False
        assert len(log_repo.entries) == 3

    async def test_sweep_after_on_demand_is_suppressed(self, monitor, ticket_repo, ticket):
        ticket_repo.tickets[ticket.id] = ticket

        await monitor.check_ticket_sla(ticket.id)
        result = await monitor.check_and_notify_sla()

        assert result.notified == 0

    @pytest.mark.parametrize("ticket_id", ["not-a-uuid", "", "1234"])
    async def test_malformed_id_returns_false(self, monitor, ticket_id):
        assert await monitor.check_ticket_sla(ticket_id) is False

    async def test_unknown_ticket_returns_false(self, monitor):
        assert await monitor.check_ticket_sla(uuid4()) is False

    async def test_on_demand_disabled(self, monitor, ticket_repo, ticket, policy_provider):
        ticket_repo.tickets[ticket.id] = ticket
        policy_provider.policy = SLAPolicy(on_demand_enabled=False)

        assert await monitor.check_ticket_sla(ticket.id) is False

    async def test_breach_deferred_when_immediate_notify_off(self, monitor, ticket_repo, ticket, policy_provider, clock, log_repo):
        ticket_repo.tickets[ticket.id] = ticket
        policy_provider.policy = SLAPolicy(breach_immediate_notify=False)
        clock.now = utc(2024, 1, 1, 4, 5)

        assert await monitor.check_ticket_sla(ticket.id) is False
        assert log_repo.entries == []

        result = await monitor.check_and_notify_sla()
        assert result.notified == 3

    async def test_on_demand_carries_deadline_metadata(self, monitor, ticket_repo, ticket, senders, clock):
        ticket_repo.tickets[ticket.id] = ticket
        clock.now = utc(2024, 1, 1, 4, 0) + timedelta(hours=2)

        assert await monitor.check_ticket_sla(ticket.id) is True

        metadata = senders[NotificationChannel.SLACK].calls[0]["metadata"]
        assert metadata["deadline_kind"] == "first_response"
        assert metadata["classification"] == "breach"
        assert metadata["ticket_number"] == 1001
        assert "Overdue By: 2 hours" in senders[NotificationChannel.SLACK].calls[0]["message"]


async def test_dedup_ledger_window(log_repo, dispatcher, clock):
    ticket = make_ticket(creator=make_user())
    ledger = DedupLedger(log_repo)
    cooldown = timedelta(hours=4)

    assert not await ledger.was_recently_notified(ticket.id, NotificationType.SLA_WARNING, cooldown, clock.now)

    await dispatcher.dispatch(NotificationPayload(
        type=NotificationType.SLA_WARNING,
        channel=NotificationChannel.EMAIL,
        recipient="client@example.com",
        organization_id=ticket.organization.id,
        ticket_id=ticket.id,
        message="m",
    ))

    assert await ledger.was_recently_notified(ticket.id, NotificationType.SLA_WARNING, cooldown, clock.now)
    assert not await ledger.was_recently_notified(ticket.id, NotificationType.SLA_BREACH, cooldown, clock.now)
    assert not await ledger.was_recently_notified(
        ticket.id, NotificationType.SLA_WARNING, cooldown, clock.now + timedelta(hours=4, seconds=1)
    )
