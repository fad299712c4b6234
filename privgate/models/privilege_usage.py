"""Privilege usage model: the ledger entry per (subscription, plan privilege)."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from privgate.models._base import Base


class PrivilegeUsage(Base):
    """Cumulative usage counter of one plan privilege for one subscription.

    ``allowed_value`` is a snapshot of the grant's value taken when the entry was
    created or its period last rolled. For finite grants ``used_value`` never
    exceeds the cap in force: every increment is a conditional UPDATE.
    """

    __tablename__ = "privilege_usage"

    subscription_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    plan_privilege_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("plan_privilege.id", ondelete="CASCADE"), nullable=False
    )
    used_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allowed_value: Mapped[int] = mapped_column(Integer, nullable=False)
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reset_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "subscription_id", "plan_privilege_id", name="uq_privilege_usage_subscription_grant"
        ),
        CheckConstraint("used_value >= 0", name="ck_privilege_usage_used_non_negative"),
    )
