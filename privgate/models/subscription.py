"""Subscription model.

Owned by the subscription lifecycle subsystem. This service only reads it.
"""

import uuid

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from privgate.models._base import Base


class Subscription(Base):
    """Read-only view of a customer subscription."""

    __tablename__ = "subscription"

    plan_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
