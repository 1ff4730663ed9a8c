"""
SLA Application DTOs
=====================

Pydantic response models for the SLA endpoints.
"""

from typing import List, Literal

from pydantic import BaseModel, Field

from portal_sla.sla.domain import SLACheckResult


class NotifiedTicketResponse(BaseModel):
    ticket_id: str
    ticket_number: int
    level: Literal["warning", "breach"]


class SLACheckResponse(BaseModel):
    """Summary returned by the cron sweep endpoint."""
    checked: int = Field(..., ge=0, description="Tickets evaluated")
    notified: int = Field(..., ge=0, description="Notifications dispatched")
    tickets: List[NotifiedTicketResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: SLACheckResult) -> "SLACheckResponse":
        return cls.model_validate(result.to_dict())


class TicketCheckResponse(BaseModel):
    ticket_id: str
    notified: bool
