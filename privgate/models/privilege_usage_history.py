"""Privilege usage history model: one immutable row per successful consumption."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from privgate.models._base import Base


class PrivilegeUsageHistory(Base):
    """Append-only usage event.

    Bucket keys are precomputed at write time so that the daily, weekly and
    monthly sums are plain equality lookups.
    """

    __tablename__ = "privilege_usage_history"

    privilege_usage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("privilege_usage.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    day_bucket: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    week_bucket: Mapped[str] = mapped_column(String(8), nullable=False)  # YYYY-Www
    month_bucket: Mapped[str] = mapped_column(String(7), nullable=False)  # YYYY-MM
    note: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_usage_history_day", "privilege_usage_id", "day_bucket"),
        Index("idx_usage_history_week", "privilege_usage_id", "week_bucket"),
        Index("idx_usage_history_month", "privilege_usage_id", "month_bucket"),
        Index("idx_usage_history_used_at", "privilege_usage_id", "used_at"),
    )
