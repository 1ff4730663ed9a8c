"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA monitoring.

Controllers are thin - they delegate to the SLAMonitor held on app state.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from portal_sla.config import settings
from portal_sla.shared.infrastructure.logging import get_logger
from portal_sla.sla.application import (
    SLACheckResponse,
    SLAMonitor,
    TicketCheckResponse,
)

logger = get_logger(__name__)

cron_router = APIRouter(prefix="/internal/cron", tags=["Cron"])
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

SLA_CHECK_RESPONSE_EXAMPLE = {
    "checked": 3,
    "notified": 2,
    "tickets": [
        {
            "ticket_id": "123e4567-e89b-12d3-a456-426614174000",
            "ticket_number": 1001,
            "level": "warning"
        }
    ]
}


# ========== Dependencies ==========

def get_sla_monitor(request: Request) -> SLAMonitor:
    """SLA monitor built once at startup."""
    monitor = getattr(request.app.state, "sla_monitor", None)
    if monitor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SLA monitor not initialized"
        )
    return monitor


def verify_cron_secret(
    request: Request,
    token: Optional[str] = Query(default=None, description="Cron secret (alternative to the Authorization header)")
) -> None:
    """Accept `Authorization: Bearer <secret>` or `?token=<secret>`. Fails closed when unset."""
    expected = settings.cron_secret
    if not expected:
        logger.error("CRON_SECRET not configured, rejecting cron request")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    provided = token
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        provided = credentials.strip()

    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Rejected cron request with invalid secret", extra={"path": request.url.path})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


# ========== Cron Endpoints ==========

@cron_router.get(
    "/sla-check",
    response_model=SLACheckResponse,
    dependencies=[Depends(verify_cron_secret)],
    summary="Run the SLA sweep",
    responses={
        200: {"content": {"application/json": {"example": SLA_CHECK_RESPONSE_EXAMPLE}}},
        401: {"description": "Missing or invalid cron secret"},
    },
)
async def run_sla_check(monitor: SLAMonitor = Depends(get_sla_monitor)) -> SLACheckResponse:
    """
    Evaluate every ticket needing SLA attention and send due notifications.

    Called by an external scheduler. Never fails because of an individual
    ticket; the summary reports what was sent.
    """
    result = await monitor.check_and_notify_sla(trigger="cron")
    return SLACheckResponse.from_result(result)


# ========== SLA Endpoints ==========

@router.post(
    "/tickets/{ticket_id}/check",
    response_model=TicketCheckResponse,
    summary="Re-check one ticket's SLA",
)
async def check_ticket(
    ticket_id: str,
    monitor: SLAMonitor = Depends(get_sla_monitor)
) -> TicketCheckResponse:
    """On-demand check, typically called when a ticket is viewed or updated."""
    notified = await monitor.check_ticket_sla(ticket_id)
    return TicketCheckResponse(ticket_id=ticket_id, notified=notified)
