"""
SLA Infrastructure Layer
========================

SQLAlchemy models/repositories, policy hot-reload, scheduler and metrics adapter.
"""

from portal_sla.sla.infrastructure.external import (
    GrafanaSweepMetricsExporter,
    SLAPolicyManager,
    SLAScheduler,
)
from portal_sla.sla.infrastructure.repositories import SQLAlchemyTicketRepository

__all__ = [
    "GrafanaSweepMetricsExporter",
    "SLAPolicyManager",
    "SLAScheduler",
    "SQLAlchemyTicketRepository",
]
