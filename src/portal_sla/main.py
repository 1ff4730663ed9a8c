"""
Client Portal SLA Monitor - Main Application
=============================================

Watches ticket first-response and resolution deadlines and notifies
creators, assignees and organization channels on warning and breach.

Modules:
- SLA Monitoring: deadline evaluation, dedup ledger, sweep and on-demand checks
- Notifications: formatting, channel senders, dispatch and audit log

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, providers, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from portal_sla.config import settings
from portal_sla.infrastructure.database import (
    close_database,
    create_tables,
    get_session_maker,
    init_database,
)
from portal_sla.notifications.application import NotificationDispatcher
from portal_sla.notifications.infrastructure.channels import build_channel_senders
from portal_sla.notifications.infrastructure.repositories import (
    SQLAlchemyEmailTemplateRepository,
    SQLAlchemyNotificationLogRepository,
)
from portal_sla.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
)
from portal_sla.shared.infrastructure.grafana import get_grafana_exporter
from portal_sla.shared.infrastructure.logging import get_logger, setup_logging
from portal_sla.sla.application import DedupLedger, SLAMonitor
from portal_sla.sla.infrastructure import (
    GrafanaSweepMetricsExporter,
    SLAPolicyManager,
    SLAScheduler,
    SQLAlchemyTicketRepository,
)
from portal_sla.sla.interfaces import cron_router, router as sla_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Load SLA policy and start watching it
    4. Build senders, dispatcher and monitor
    5. Start the in-process scheduler when an interval is configured

    SHUTDOWN:
    1. Stop scheduler and policy watcher
    2. Close sender HTTP clients
    3. Close database connections
    """
    # === STARTUP ===
    setup_logging(level=settings.log_level, environment=settings.environment)
    logger.info("Starting SLA monitor", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()
    if settings.create_tables_on_startup:
        try:
            await create_tables()
        except Exception as e:
            logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    policy_manager = SLAPolicyManager()
    policy_manager.load(settings.sla_config_path)
    policy_manager.start_watching()

    session_maker = get_session_maker()
    log_repository = SQLAlchemyNotificationLogRepository(session_maker)
    senders = build_channel_senders(
        template_repository=SQLAlchemyEmailTemplateRepository(session_maker)
    )
    dispatcher = NotificationDispatcher(senders, log_repository)

    grafana = get_grafana_exporter()
    monitor = SLAMonitor(
        ticket_repository=SQLAlchemyTicketRepository(session_maker),
        policy_provider=policy_manager,
        ledger=DedupLedger(log_repository),
        dispatcher=dispatcher,
        metrics_exporter=GrafanaSweepMetricsExporter(grafana) if grafana.is_enabled() else None,
    )

    scheduler = None
    if settings.sla_evaluation_interval > 0:
        scheduler = SLAScheduler(interval_seconds=settings.sla_evaluation_interval)

        async def sla_sweep_job():
            await monitor.check_and_notify_sla(trigger="scheduler")

        await scheduler.start(sla_sweep_job)
    else:
        logger.info("In-process SLA scheduler disabled; relying on the cron endpoint")

    app.state.settings = settings
    app.state.policy_manager = policy_manager
    app.state.sla_monitor = monitor
    app.state.sla_scheduler = scheduler

    logger.info("SLA monitor started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down SLA monitor")

    if scheduler:
        await scheduler.stop()
    policy_manager.stop_watching()
    for sender in senders.values():
        await sender.close()
    await close_database()

    logger.info("SLA monitor shutdown complete")


app = FastAPI(
    title="Client Portal SLA Monitor",
    description="""
    ## SLA Deadline Monitor

    Evaluates first-response and resolution deadlines for open tickets and
    notifies over email, SMS, WhatsApp and Slack.

    **Endpoints:**
    - `GET /internal/cron/sla-check` - Run the batch sweep (cron secret required)
    - `POST /sla/tickets/{id}/check` - Re-check one ticket on view/update
    - `GET /health` - Health check

    Each warning or breach is announced at most once per cooldown window.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(cron_router)
app.include_router(sla_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "sla_monitor": "ready",
                        "sla_policy": "loaded",
                        "sla_scheduler": "disabled"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """Health check endpoint for load balancers and orchestrators."""
    state = request.app.state
    scheduler = getattr(state, "sla_scheduler", None)
    checks = {
        "sla_monitor": "ready" if getattr(state, "sla_monitor", None) else "not_initialized",
        "sla_policy": "loaded" if getattr(state, "policy_manager", None) else "not_loaded",
        "sla_scheduler": (
            "running" if scheduler and scheduler.is_running
            else "disabled" if scheduler is None
            else "stopped"
        ),
    }
    return {
        "status": "healthy" if checks["sla_monitor"] == "ready" else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portal_sla.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
