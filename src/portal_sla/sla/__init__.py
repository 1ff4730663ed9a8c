"""
SLA Monitoring Module
=====================

Bounded context for SLA deadline monitoring.

Layers:
- domain: Ticket, DeadlineEvent, SLAPolicy, DeadlineEvaluator
- application: DedupLedger, SLAMonitor and repository interfaces
- infrastructure: SQLAlchemy ticket repository, policy hot-reload, scheduler
- interfaces: cron and on-demand HTTP routes
"""
