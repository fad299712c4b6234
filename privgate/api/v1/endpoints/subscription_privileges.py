"""API endpoints for consuming subscription privileges.

Denials are regular 200 responses carrying ``allowed: false`` and a reason:
they are outcomes, not errors. Storage failures surface as 503.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from privgate.api.context import ApiContext
from privgate.api.deps import Inject, get_context, get_db
from privgate.api.router import TrailingSlashRouter
from privgate.domains.privileges.protocols import PrivilegeUsageServiceProtocol
from privgate.domains.privileges.types import UNLIMITED, UsageDecision
from privgate.schemas.privilege_usage import (
    RemainingResponse,
    UsageDecisionResponse,
    UsageHistoryList,
    UseRequest,
)

router = TrailingSlashRouter()


def _to_response(decision: UsageDecision) -> UsageDecisionResponse:
    return UsageDecisionResponse(
        allowed=decision.allowed,
        reason=decision.reason.value if decision.reason else None,
        message=decision.message,
        remaining=decision.remaining,
    )


@router.get("/{subscription_id}/privileges/usage-history", response_model=UsageHistoryList)
async def list_usage_history(
    subscription_id: UUID,
    page: int = Query(1, ge=1, description="1-based page number"),
    page_size: int = Query(20, ge=1, le=100, description="Records per page"),
    start: Optional[datetime] = Query(None, description="Only events at or after this time"),
    end: Optional[datetime] = Query(None, description="Only events before this time"),
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    usage_service: PrivilegeUsageServiceProtocol = Inject(PrivilegeUsageServiceProtocol),
) -> UsageHistoryList:
    """List a subscription's privilege usage, newest first."""
    return await usage_service.list_history(
        db, subscription_id, ctx, page=page, page_size=page_size, start=start, end=end
    )


@router.get(
    "/{subscription_id}/privileges/{privilege_name}/remaining",
    response_model=RemainingResponse,
)
async def get_remaining(
    subscription_id: UUID,
    privilege_name: str = Path(..., min_length=1, max_length=100),
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    usage_service: PrivilegeUsageServiceProtocol = Inject(PrivilegeUsageServiceProtocol),
) -> RemainingResponse:
    """Units of a privilege left in the current period.

    0 when the privilege is disabled or not in the plan; 2147483647 when unlimited.
    """
    remaining = await usage_service.get_remaining(db, subscription_id, privilege_name, ctx)
    return RemainingResponse(
        subscription_id=subscription_id,
        privilege_name=privilege_name,
        remaining=remaining,
        unlimited=remaining == UNLIMITED,
    )


@router.get(
    "/{subscription_id}/privileges/{privilege_name}/can-use",
    response_model=UsageDecisionResponse,
)
async def can_use(
    subscription_id: UUID,
    privilege_name: str = Path(..., min_length=1, max_length=100),
    amount: int = Query(1, le=UNLIMITED, description="Units the caller intends to consume"),
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    usage_service: PrivilegeUsageServiceProtocol = Inject(PrivilegeUsageServiceProtocol),
) -> UsageDecisionResponse:
    """Check whether a privilege could be used now, without consuming it."""
    decision = await usage_service.can_use(db, subscription_id, privilege_name, amount, ctx)
    return _to_response(decision)


@router.post(
    "/{subscription_id}/privileges/{privilege_name}/use",
    response_model=UsageDecisionResponse,
)
async def use_privilege(
    subscription_id: UUID,
    use_in: UseRequest,
    privilege_name: str = Path(..., min_length=1, max_length=100),
    db: AsyncSession = Depends(get_db),
    ctx: ApiContext = Depends(get_context),
    usage_service: PrivilegeUsageServiceProtocol = Inject(PrivilegeUsageServiceProtocol),
) -> UsageDecisionResponse:
    """Consume units of a privilege and record the usage."""
    decision = await usage_service.try_use(
        db, subscription_id, privilege_name, use_in.amount, ctx, note=use_in.note
    )
    return _to_response(decision)
