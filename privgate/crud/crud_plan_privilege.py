"""CRUD operations for the PlanPrivilege model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from privgate.crud._base import CRUDBase
from privgate.models.plan_privilege import PlanPrivilege
from privgate.models.privilege import Privilege
from privgate.schemas.plan_privilege import TimeBasedLimitsUpdate


class CRUDPlanPrivilege(CRUDBase[PlanPrivilege, TimeBasedLimitsUpdate, TimeBasedLimitsUpdate]):
    """CRUD operations for the PlanPrivilege model."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[PlanPrivilege]:
        """Get a plan privilege with its catalog privilege loaded."""
        query = (
            select(PlanPrivilege)
            .options(joinedload(PlanPrivilege.privilege))
            .where(PlanPrivilege.id == id)
        )
        result = await db.execute(query)
        return result.unique().scalar_one_or_none()

    async def get_for_plan(self, db: AsyncSession, plan_id: UUID) -> list[PlanPrivilege]:
        """All grants of a plan whose catalog privilege is not deleted.

        Effective-window filtering is left to the caller, which knows ``now``.
        """
        query = (
            select(PlanPrivilege)
            .join(Privilege, Privilege.id == PlanPrivilege.privilege_id)
            .options(joinedload(PlanPrivilege.privilege))
            .where(
                PlanPrivilege.plan_id == plan_id,
                Privilege.is_deleted.is_(False),
            )
        )
        result = await db.execute(query)
        return list(result.unique().scalars().all())


plan_privilege = CRUDPlanPrivilege(PlanPrivilege)
