"""
Notifications Module
====================

Bounded context for multi-channel notification delivery.

Layers:
- domain: preferences, payloads, results, templates, message formatting
- application: dispatcher and recipient resolution
- infrastructure: channel senders (Resend, Twilio, Slack) and SQLAlchemy repositories
"""
