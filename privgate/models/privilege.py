"""Privilege catalog model."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from privgate.models._base import AuditMixin, Base

if TYPE_CHECKING:
    from privgate.models.plan_privilege import PlanPrivilege


class Privilege(Base, AuditMixin):
    """A named, metered benefit a subscription plan may grant (e.g. "Teleconsultation")."""

    __tablename__ = "privilege"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    privilege_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Never loaded; grants are read through crud.plan_privilege
    plan_privileges: Mapped[list["PlanPrivilege"]] = relationship(
        "PlanPrivilege", back_populates="privilege", lazy="raise"
    )

    __table_args__ = (
        # Names are unique among live privileges; deleted names may be reused
        Index(
            "uq_privilege_name_live",
            "name",
            unique=True,
            postgresql_where=text("NOT is_deleted"),
            sqlite_where=text("NOT is_deleted"),
        ),
    )
