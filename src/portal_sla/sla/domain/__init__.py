"""
SLA Domain Layer
================

Domain layer for SLA monitoring.

Contains:
- Entities: Ticket, DeadlineEvent, SLACheckResult
- Value Objects: SLAPolicy
- Domain Services: DeadlineEvaluator

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from portal_sla.sla.domain.entities import (
    DeadlineEvent,
    NotifiedTicket,
    SLACheckResult,
    Ticket,
)
from portal_sla.sla.domain.value_objects import DeadlineEvaluator, SLAPolicy

__all__ = [
    # Entities
    "DeadlineEvent",
    "NotifiedTicket",
    "SLACheckResult",
    "Ticket",
    # Value Objects & Services
    "DeadlineEvaluator",
    "SLAPolicy",
]
