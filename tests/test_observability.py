import json
import logging

import httpx

from portal_sla.shared.infrastructure.grafana import GrafanaOTLPExporter
from portal_sla.shared.infrastructure.logging import REDACTED, CustomJsonFormatter
from portal_sla.sla.domain import SLACheckResult
from portal_sla.sla.infrastructure import GrafanaSweepMetricsExporter


def exporter(handler):
    return GrafanaOTLPExporter(
        host="https://otlp.example.grafana.net",
        api_key="glc_key",
        instance_id="12345",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


async def test_sweep_metrics_are_pushed_as_gauges():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    await GrafanaSweepMetricsExporter(exporter(handler)).export_sweep(
        SLACheckResult(checked=4, notified=6), latency_ms=120, trigger="cron"
    )

    [request] = requests
    assert str(request.url) == "https://otlp.example.grafana.net/otlp/v1/metrics"
    metrics = json.loads(request.content)["resourceMetrics"][0]["scopeMetrics"][0]["metrics"]
    values = {m["name"]: m["gauge"]["dataPoints"][0]["asInt"] for m in metrics}
    assert values == {
        "sla_tickets_checked": 4,
        "sla_notifications_sent": 6,
        "sla_sweep_latency_ms": 120,
    }


async def test_export_failure_returns_false():
    def handler(request):
        raise httpx.ConnectError("unreachable")

    assert await exporter(handler).export_sweep_metrics(1, 1, 10) is False


def test_json_formatter_redacts_credentials():
    formatter = CustomJsonFormatter(fmt="%(name)s %(levelname)s %(message)s")
    record = logging.LogRecord("portal_sla", logging.INFO, __file__, 1, "sent", None, None)
    record.webhook_url = "https://hooks.slack.com/services/T/B/X"
    record.auth_token = "tw_secret"
    record.ticket_number = "1001"
    record.environment = "test"

    output = json.loads(formatter.format(record))

    assert output["webhook_url"] == REDACTED
    assert output["auth_token"] == REDACTED
    assert output["ticket_number"] == "1001"
    assert output["environment"] == "test"
    assert "timestamp" in output
