"""Plan privilege model: a privilege granted by a subscription plan."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from privgate.models._base import AuditMixin, Base

if TYPE_CHECKING:
    from privgate.models.privilege import Privilege


class PlanPrivilege(Base, AuditMixin):
    """Quota configuration of one privilege within one plan.

    ``value``: -1 unlimited, 0 disabled, >0 units per period.
    The daily/weekly/monthly limits are independent ceilings on top of ``value``.
    """

    __tablename__ = "plan_privilege"

    plan_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    privilege_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("privilege.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    period_months: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    effective_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expiration_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Time-based usage limits (None = not enforced)
    daily_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    weekly_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    monthly_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    privilege: Mapped["Privilege"] = relationship(
        "Privilege", back_populates="plan_privileges", lazy="joined"
    )

    __table_args__ = (Index("idx_plan_privilege_plan", "plan_id"),)
