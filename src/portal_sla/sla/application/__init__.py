"""
SLA Application Layer
=====================

Orchestration services and the port interfaces they depend on.
"""

from portal_sla.sla.application.services import (
    DedupLedger,
    ISLAPolicyProvider,
    ISweepMetricsExporter,
    ITicketRepository,
    SLAMonitor,
)
from portal_sla.sla.application.dto import (
    NotifiedTicketResponse,
    SLACheckResponse,
    TicketCheckResponse,
)

__all__ = [
    "DedupLedger",
    "ISLAPolicyProvider",
    "ISweepMetricsExporter",
    "ITicketRepository",
    "SLAMonitor",
    "NotifiedTicketResponse",
    "SLACheckResponse",
    "TicketCheckResponse",
]
