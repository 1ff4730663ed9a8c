"""
SLA Interfaces Layer
====================

HTTP routes for the cron sweep and on-demand ticket checks.
"""

from portal_sla.sla.interfaces.controllers import cron_router, router

__all__ = ["cron_router", "router"]
