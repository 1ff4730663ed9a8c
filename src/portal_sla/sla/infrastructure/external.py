"""
SLA External Service Integrations
==================================

External services for SLA monitoring:
- YAML policy file with watchdog hot-reload
- APScheduler for in-process sweeps
- Grafana adapter for sweep metrics
"""

import threading
from pathlib import Path
from typing import Awaitable, Callable, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from portal_sla.core.exceptions import ConfigurationException
from portal_sla.shared.infrastructure.grafana import GrafanaOTLPExporter
from portal_sla.shared.infrastructure.logging import get_logger
from portal_sla.sla.application.services import ISLAPolicyProvider, ISweepMetricsExporter
from portal_sla.sla.domain import SLACheckResult, SLAPolicy

logger = get_logger(__name__)


class PolicyFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA policy file changes."""

    def __init__(self, policy_manager: "SLAPolicyManager", policy_path: Path):
        self.policy_manager = policy_manager
        self.policy_path = policy_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.policy_path.resolve():
            logger.info("SLA policy file changed", extra={"path": str(event.src_path)})
            self.policy_manager.reload()


class SLAPolicyManager(ISLAPolicyProvider):
    """
    Thread-safe SLA policy holder with hot-reload support.

    The watchdog observer runs on its own thread, so swaps happen under a
    lock. A reload that fails to parse keeps the previous policy.
    """

    def __init__(self):
        self._policy: Optional[SLAPolicy] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAPolicy:
        """Initial policy load. Raises ConfigurationException on an invalid file."""
        self._path = path
        policy = self._load_from_file(path)
        with self._lock:
            self._policy = policy
        return policy

    def _load_from_file(self, path: Path) -> SLAPolicy:
        if not path.exists():
            logger.warning("SLA policy file not found, using defaults", extra={"path": str(path)})
            return SLAPolicy()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            # Allow either a bare mapping or one nested under "sla_monitoring"
            if isinstance(data, dict) and "sla_monitoring" in data:
                data = data["sla_monitoring"] or {}
            return SLAPolicy(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid SLA policy file: {path}", {"error": str(e)}
            ) from e

    def reload(self) -> bool:
        """Reload policy from file."""
        if self._path is None:
            return False

        try:
            new_policy = self._load_from_file(self._path)
        except ConfigurationException as e:
            logger.error("Failed to reload SLA policy", extra={"error": e.details.get("error")})
            return False

        with self._lock:
            self._policy = new_policy
        logger.info("SLA policy reloaded successfully")
        return True

    def start_watching(self) -> None:
        """Start watching the policy file. Skipped when the file does not exist."""
        if self._path is None:
            raise RuntimeError("Policy not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                "SLA policy file doesn't exist, skipping file watch",
                extra={"path": str(self._path)}
            )
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                PolicyFileHandler(self, self._path),
                str(self._path.parent),
                recursive=False
            )
            self._observer.start()
            logger.info("Started watching SLA policy file", extra={"path": str(self._path)})
        except OSError as e:
            # inotify is unavailable in some containers
            logger.warning("File watching not available, using static policy", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_policy(self) -> SLAPolicy:
        with self._lock:
            if self._policy is None:
                raise RuntimeError("SLA policy not loaded")
            return self._policy


class GrafanaSweepMetricsExporter(ISweepMetricsExporter):
    """Forwards sweep results to the Grafana OTLP exporter."""

    def __init__(self, exporter: GrafanaOTLPExporter):
        self._exporter = exporter

    async def export_sweep(self, result: SLACheckResult, latency_ms: int, trigger: str) -> None:
        await self._exporter.export_sweep_metrics(
            tickets_checked=result.checked,
            notifications_sent=result.notified,
            latency_ms=latency_ms,
            trigger=trigger,
        )


class SLAScheduler:
    """
    Wrapper for APScheduler running the batch sweep in-process.

    `max_instances=1` keeps sweeps from overlapping within this process.
    """

    def __init__(self, interval_seconds: int = 300):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[object]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="sla_sweep",
            name="SLA Sweep Job",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info("SLA scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
