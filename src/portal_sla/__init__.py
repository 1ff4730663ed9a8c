"""
Client Portal SLA Monitor
=========================

Watches per-ticket first-response and resolution deadlines, classifies them
as warning or breach, and fans notifications out across email, SMS, Slack
and WhatsApp with a cooldown-based dedup guard.

Bounded contexts:
- sla: deadline evaluation, dedup ledger, monitor orchestration
- notifications: formatting, channel senders, dispatch and audit log
"""

__version__ = "1.0.0"
