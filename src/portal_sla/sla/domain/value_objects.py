"""
SLA Value Objects
==================

Immutable policy configuration and the stateless deadline evaluator.
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from portal_sla.config import DEADLINE_EVALUATION_ORDER, SLAClassification
from portal_sla.sla.domain.entities import DeadlineEvent, Ticket


class SLAPolicy(BaseModel):
    """
    SLA monitoring policy, loaded from YAML.

    A deadline is in warning when the share of its allowed time that is
    left drops to `warning_threshold_percent` or below, or (when set) when
    fewer than `warning_threshold_hours` remain.
    """

    enabled: bool = Field(default=True, description="Master switch for SLA notifications")
    on_demand_enabled: bool = Field(
        default=True,
        description="Allow checks triggered from ticket view/update paths"
    )
    warning_threshold_percent: float = Field(default=25.0, ge=0, le=100)
    warning_threshold_hours: Optional[float] = Field(default=None, gt=0)
    notification_cooldown_hours: float = Field(default=4.0, ge=0)
    breach_immediate_notify: bool = Field(
        default=True,
        description="Notify breaches from on-demand checks instead of waiting for the sweep"
    )

    model_config = {"frozen": True}

    @property
    def cooldown(self) -> timedelta:
        return timedelta(hours=self.notification_cooldown_hours)


class DeadlineEvaluator:
    """
    Pure functions for deadline classification.

    At most one event per ticket per pass: first-response is evaluated
    before resolution and wins when both would fire.
    """

    @staticmethod
    def classify_deadline(
        created_at: datetime,
        due_at: datetime,
        now: datetime,
        policy: SLAPolicy
    ) -> SLAClassification:
        """Classify one open deadline."""
        total = (due_at - created_at).total_seconds()

        # Zero-length SLA: there is no elapsed fraction to compare against
        if total <= 0:
            return SLAClassification.BREACH if now >= due_at else SLAClassification.WARNING

        if due_at < now:
            return SLAClassification.BREACH

        remaining = (due_at - now).total_seconds()
        if remaining / total * 100 <= policy.warning_threshold_percent:
            return SLAClassification.WARNING

        if (
            policy.warning_threshold_hours is not None
            and remaining <= policy.warning_threshold_hours * 3600
        ):
            return SLAClassification.WARNING

        return SLAClassification.OK

    @classmethod
    def classify(
        cls,
        ticket: Ticket,
        policy: SLAPolicy,
        now: datetime
    ) -> Optional[DeadlineEvent]:
        """Return the event due for this ticket, or None when every open deadline is ok."""
        if ticket.is_terminal:
            return None

        for kind in DEADLINE_EVALUATION_ORDER:
            due_at = ticket.due_at(kind)
            if due_at is None or ticket.satisfied_at(kind) is not None:
                continue

            classification = cls.classify_deadline(ticket.created_at, due_at, now, policy)
            if classification == SLAClassification.OK:
                continue

            return DeadlineEvent(
                ticket_id=ticket.id,
                kind=kind,
                classification=classification,
                due_at=due_at,
                computed_at=now,
                created_at=ticket.created_at,
            )

        return None
