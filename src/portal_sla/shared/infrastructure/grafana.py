"""
Grafana OTLP Metrics Exporter
==============================

Pushes SLA sweep metrics to Grafana Cloud via OTLP.

Metrics exported:
- sla_tickets_checked: Tickets evaluated by a sweep
- sla_notifications_sent: Notifications dispatched by a sweep
- sla_sweep_latency_ms: Sweep duration in milliseconds

Export is best-effort: failures are logged and reported as False, never raised.
"""

import base64
import time
from typing import Optional, Dict, Any, List

import httpx

from portal_sla.config import settings
from portal_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class GrafanaOTLPExporter:
    """
    Export metrics to Grafana Cloud via OTLP HTTP endpoint.

    Uses OpenTelemetry Protocol (OTLP) format for metrics.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Grafana OTLP exporter.

        Args:
            host: Grafana OTLP gateway URL (e.g., https://otlp-gateway-prod-eu-west-2.grafana.net)
            api_key: Grafana API key
            instance_id: Instance ID for authentication
            client: Optional pre-built HTTP client (used by tests)
        """
        self._host = host or settings.grafana_host
        self._api_key = api_key or settings.grafana_api_key
        self._instance_id = instance_id or settings.grafana_instance_id
        self._enabled = bool(self._host and self._api_key and self._instance_id)
        self._client = client

        if self._enabled:
            auth_pair = f"{self._instance_id}:{self._api_key}"
            self._auth_encoded = base64.b64encode(auth_pair.encode()).decode()
            # Don't double-append the path if host already includes it
            if "/otlp/v1/metrics" not in self._host:
                self._url = f"{self._host.rstrip('/')}/otlp/v1/metrics"
            else:
                self._url = self._host
            logger.info(
                "Grafana OTLP exporter initialized",
                extra={"host": self._host, "instance_id": self._instance_id}
            )
        else:
            logger.info(
                "Grafana OTLP exporter not configured - metrics will not be exported",
                extra={
                    "host_configured": bool(self._host),
                    "api_key_configured": bool(self._api_key),
                    "instance_id_configured": bool(self._instance_id)
                }
            )

    def is_enabled(self) -> bool:
        """Check if exporter is properly configured."""
        return self._enabled

    def _gauge(
        self,
        name: str,
        unit: str,
        description: str,
        value: int,
        timestamp_ns: int,
        attributes: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return {
            "name": name,
            "unit": unit,
            "description": description,
            "gauge": {
                "dataPoints": [
                    {
                        "asInt": value,
                        "timeUnixNano": timestamp_ns,
                        "attributes": attributes
                    }
                ]
            }
        }

    def _build_payload(self, metrics: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": [
                            {"key": "service.name", "value": {"stringValue": settings.app_name}},
                            {"key": "service.version", "value": {"stringValue": settings.app_version}},
                            {"key": "deployment.environment", "value": {"stringValue": settings.environment}},
                        ]
                    },
                    "scopeMetrics": [{"metrics": metrics}]
                }
            ]
        }

    async def export_sweep_metrics(
        self,
        tickets_checked: int,
        notifications_sent: int,
        latency_ms: int,
        trigger: str = "cron",
        attributes: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Export the outcome of one SLA sweep.

        Args:
            tickets_checked: Number of tickets evaluated
            notifications_sent: Number of notifications dispatched
            latency_ms: Sweep duration in milliseconds
            trigger: What started the sweep (cron, scheduler)
            attributes: Additional attributes to attach to metrics

        Returns:
            True if export succeeded, False otherwise
        """
        if not self._enabled:
            logger.debug("Grafana exporter not enabled - skipping metrics export")
            return False

        timestamp_ns = int(time.time() * 1_000_000_000)

        metric_attributes = [
            {"key": "trigger", "value": {"stringValue": trigger}},
            {"key": "service", "value": {"stringValue": settings.app_name}},
        ]
        for key, value in (attributes or {}).items():
            metric_attributes.append({"key": key, "value": {"stringValue": str(value)}})

        payload = self._build_payload([
            self._gauge(
                "sla_tickets_checked", "1", "Tickets evaluated by an SLA sweep",
                tickets_checked, timestamp_ns, metric_attributes
            ),
            self._gauge(
                "sla_notifications_sent", "1", "Notifications dispatched by an SLA sweep",
                notifications_sent, timestamp_ns, metric_attributes
            ),
            self._gauge(
                "sla_sweep_latency_ms", "ms", "SLA sweep duration in milliseconds",
                latency_ms, timestamp_ns, metric_attributes
            ),
        ])

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self._auth_encoded}",
            "X-Grafana-Org-Id": str(self._instance_id)
        }

        try:
            if self._client is not None:
                response = await self._client.post(self._url, headers=headers, json=payload)
            else:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(
                "Error exporting metrics to Grafana",
                extra={"error": str(e)}
            )
            return False

        if response.status_code in (200, 202):
            logger.debug(
                "SLA sweep metrics exported to Grafana",
                extra={
                    "tickets_checked": tickets_checked,
                    "notifications_sent": notifications_sent,
                    "latency_ms": latency_ms
                }
            )
            return True

        logger.warning(
            "Failed to export metrics to Grafana",
            extra={
                "status_code": response.status_code,
                "response": response.text[:500],
                "url": self._url
            }
        )
        return False


# Global exporter instance
_grafana_exporter: Optional[GrafanaOTLPExporter] = None


def get_grafana_exporter() -> GrafanaOTLPExporter:
    """Get or create global Grafana exporter instance."""
    global _grafana_exporter
    if _grafana_exporter is None:
        _grafana_exporter = GrafanaOTLPExporter()
    return _grafana_exporter
