"""
Core Exceptions
================

Custom exceptions for the application.

These are raised inside adapters and repositories and converted into
result objects at the subsystem boundary, so callers of the monitor and
the dispatcher never see them.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ConfigurationException(ApplicationException):
    """Exception for configuration errors (e.g. missing provider credentials)."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class NotificationDeliveryException(ExternalServiceException):
    """A notification provider rejected or failed a delivery."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        self.provider = provider
        self.status_code = status_code
        super().__init__(provider, message, details)
        # Keep the provider-facing text without the "<service>: " prefix
        self.message = message
