"""Subscription schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatus(str, Enum):
    """Lifecycle status of a subscription."""

    ACTIVE = "active"
    TRIAL = "trial"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    PAYMENT_FAILED = "payment_failed"
    EXPIRED = "expired"


# Statuses under which privileges may be consumed
ELIGIBLE_STATUSES = frozenset({SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIAL.value})


class Subscription(BaseModel):
    """Read-only subscription snapshot as seen by the privilege engine."""

    id: UUID
    plan_id: UUID
    status: str = Field(..., description="One of SubscriptionStatus; unknown values are not eligible")
    is_active: bool = True
    is_deleted: bool = False

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_eligible(self) -> bool:
        """Whether privileges may be consumed under this subscription."""
        return self.is_active and not self.is_deleted and self.status in ELIGIBLE_STATUSES
