"""Grants of a plan and their time-based limits."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.context import BaseContext
from privgate.domains.privileges.exceptions import PlanPrivilegeNotFoundError
from privgate.domains.privileges.protocols import PlanPrivilegeLimitsServiceProtocol
from privgate.domains.privileges.repository import PlanPrivilegeRepositoryProtocol
from privgate.models.plan_privilege import PlanPrivilege
from privgate.schemas.plan_privilege import Grant, TimeBasedLimits, TimeBasedLimitsUpdate


def _to_limits(plan_privilege: PlanPrivilege) -> TimeBasedLimits:
    return TimeBasedLimits(
        plan_privilege_id=plan_privilege.id,
        privilege_name=plan_privilege.privilege.name,
        allowed_value=plan_privilege.value,
        daily_limit=plan_privilege.daily_limit,
        weekly_limit=plan_privilege.weekly_limit,
        monthly_limit=plan_privilege.monthly_limit,
    )


class PlanPrivilegeLimitsService(PlanPrivilegeLimitsServiceProtocol):
    """Reads and replaces daily, weekly and monthly sub-limits."""

    def __init__(self, plan_privilege_repo: PlanPrivilegeRepositoryProtocol) -> None:
        """Initialize with injected dependencies."""
        self._plan_privilege_repo = plan_privilege_repo

    async def list_for_plan(self, db: AsyncSession, plan_id: UUID) -> list[Grant]:
        """Grants of a plan, inactive and expired ones included, ordered by name."""
        grants = await self._plan_privilege_repo.get_grants_for_plan(db, plan_id)
        return sorted(grants, key=lambda g: g.privilege_name.lower())

    async def get_limits(self, db: AsyncSession, plan_privilege_id: UUID) -> TimeBasedLimits:
        """Current sub-limits of a plan privilege."""
        return _to_limits(await self._get(db, plan_privilege_id))

    async def update_limits(
        self,
        db: AsyncSession,
        plan_privilege_id: UUID,
        limits_in: TimeBasedLimitsUpdate,
        ctx: BaseContext,
    ) -> TimeBasedLimits:
        """Replace all three sub-limits. Omitted limits are cleared."""
        plan_privilege = await self._get(db, plan_privilege_id)
        await self._plan_privilege_repo.update_limits(
            db, db_obj=plan_privilege, limits=limits_in.model_dump(), ctx=ctx
        )
        ctx.logger.with_context(plan_privilege_id=str(plan_privilege_id)).info(
            f"Updated time-based limits: daily={limits_in.daily_limit} "
            f"weekly={limits_in.weekly_limit} monthly={limits_in.monthly_limit}"
        )
        return _to_limits(await self._get(db, plan_privilege_id))

    async def _get(self, db: AsyncSession, plan_privilege_id: UUID) -> PlanPrivilege:
        plan_privilege = await self._plan_privilege_repo.get(db, plan_privilege_id)
        if plan_privilege is None:
            raise PlanPrivilegeNotFoundError(plan_privilege_id)
        return plan_privilege
