"""API endpoints for plan privileges and their time-based limits."""

from uuid import UUID

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from privgate import schemas
from privgate.api.context import ApiContext
from privgate.api.deps import Inject, get_context, get_db
from privgate.api.router import TrailingSlashRouter
from privgate.domains.privileges.protocols import PlanPrivilegeLimitsServiceProtocol

router = TrailingSlashRouter()


@router.get("", response_model=list[schemas.Grant])
async def list_plan_privileges(
    plan_id: UUID = Query(..., description="Plan whose grants to list"),
    db: AsyncSession = Depends(get_db),
    limits_service: PlanPrivilegeLimitsServiceProtocol = Inject(
        PlanPrivilegeLimitsServiceProtocol
    ),
) -> list[schemas.Grant]:
    """List the privileges a plan grants, with quotas and time-based limits."""
    return await limits_service.list_for_plan(db, plan_id)


@router.get("/{plan_privilege_id}/time-based-limits", response_model=schemas.TimeBasedLimits)
async def get_time_based_limits(
    plan_privilege_id: UUID,
    db: AsyncSession = Depends(get_db),
    limits_service: PlanPrivilegeLimitsServiceProtocol = Inject(
        PlanPrivilegeLimitsServiceProtocol
    ),
) -> schemas.TimeBasedLimits:
    """Get the daily, weekly and monthly limits of a plan privilege."""
    return await limits_service.get_limits(db, plan_privilege_id)


@router.put("/{plan_privilege_id}/time-based-limits", response_model=schemas.TimeBasedLimits)
async def update_time_based_limits(
    plan_privilege_id: UUID,
    limits_in: schemas.TimeBasedLimitsUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    limits_service: PlanPrivilegeLimitsServiceProtocol = Inject(
        PlanPrivilegeLimitsServiceProtocol
    ),
) -> schemas.TimeBasedLimits:
    """Replace the time-based limits of a plan privilege. Null removes a limit."""
    return await limits_service.update_limits(db, plan_privilege_id, limits_in, ctx)
