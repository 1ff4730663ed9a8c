"""
Core Module
============

Shared core utilities and abstractions used across the application.
"""

from portal_sla.core.exceptions import (
    ApplicationException,
    RepositoryException,
    ConfigurationException,
    ExternalServiceException,
    NotificationDeliveryException,
)

__all__ = [
    "ApplicationException",
    "RepositoryException",
    "ConfigurationException",
    "ExternalServiceException",
    "NotificationDeliveryException",
]
