"""
Configuration Module
====================

Application settings and shared constants, using Pydantic settings.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Provider credentials are optional: a channel whose credentials are
    missing reports "not configured" at send time instead of failing startup.
    """

    # ========== Application ==========
    app_name: str = Field(default="client-portal-sla", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/portal",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    create_tables_on_startup: bool = Field(
        default=False,
        description="Create tables at startup (development only)"
    )

    # ========== SLA Monitoring ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA policy YAML file"
    )
    sla_evaluation_interval: int = Field(
        default=0,
        description="Seconds between in-process SLA sweeps (0 disables the scheduler)",
        ge=0
    )
    cron_secret: Optional[str] = Field(
        default=None,
        description="Shared secret required by the cron sweep endpoint"
    )

    # ========== Portal ==========
    app_url: str = Field(
        default="http://localhost:3000",
        description="Public portal URL used for deep links"
    )
    portal_name: str = Field(default="Client Portal", description="Portal display name")

    # ========== Notification Channels ==========
    channel_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound for a single channel send",
        gt=0,
        le=60
    )
    resend_api_key: Optional[str] = Field(default=None, description="Resend API key")
    email_from: str = Field(
        default="Client Portal Support <support@example.com>",
        description="Default From address for notification emails"
    )
    twilio_account_sid: Optional[str] = Field(default=None, description="Twilio account SID")
    twilio_auth_token: Optional[str] = Field(default=None, description="Twilio auth token")
    twilio_phone_number: Optional[str] = Field(default=None, description="Twilio SMS sender number")
    twilio_whatsapp_number: Optional[str] = Field(
        default=None,
        description="Twilio WhatsApp sender number"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = Field(default=None, description="Grafana OTLP gateway URL")
    grafana_api_key: Optional[str] = Field(default=None, description="Grafana API key")
    grafana_instance_id: Optional[str] = Field(default=None, description="Grafana instance ID")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("app_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Priority(str, Enum):
    """Ticket priority levels."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses as stored by the portal."""
    NEW = "new"
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    PENDING_CLIENT = "pending_client"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class DeadlineKind(str, Enum):
    """The two SLA clocks tracked per ticket."""
    FIRST_RESPONSE = "first_response"
    RESOLUTION = "resolution"


class SLAClassification(str, Enum):
    """Outcome of evaluating one deadline."""
    OK = "ok"
    WARNING = "warning"
    BREACH = "breach"


class NotificationChannel(str, Enum):
    """Delivery channels."""
    EMAIL = "email"
    SMS = "sms"
    SLACK = "slack"
    WHATSAPP = "whatsapp"


class NotificationType(str, Enum):
    """Events that can produce a notification."""
    TICKET_CREATED = "ticket_created"
    TICKET_UPDATED = "ticket_updated"
    TICKET_COMMENT = "ticket_comment"
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_RESOLVED = "ticket_resolved"
    TICKET_CLOSED = "ticket_closed"
    SLA_WARNING = "sla_warning"
    SLA_BREACH = "sla_breach"
    SERVICE_REQUEST_CREATED = "service_request_created"
    SERVICE_REQUEST_ASSIGNED = "service_request_assigned"
    SERVICE_REQUEST_UPDATED = "service_request_updated"
    PROJECT_REQUEST_CREATED = "project_request_created"
    PROJECT_REQUEST_ASSIGNED = "project_request_assigned"
    PROJECT_REQUEST_UPDATED = "project_request_updated"
    TASK_ACKNOWLEDGEMENT_REMINDER = "task_acknowledgement_reminder"


class NotificationStatus(str, Enum):
    """Delivery outcome recorded in the notification log."""
    SENT = "sent"
    FAILED = "failed"


# ========== Derived constants ==========

TERMINAL_STATUSES = frozenset({
    TicketStatus.RESOLVED, TicketStatus.CLOSED, TicketStatus.CANCELLED
})
DEADLINE_EVALUATION_ORDER = (DeadlineKind.FIRST_RESPONSE, DeadlineKind.RESOLUTION)
