"""
Notifications Infrastructure Layer
==================================

Channel senders and SQLAlchemy repositories.
"""
