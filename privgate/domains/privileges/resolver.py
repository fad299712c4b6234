"""Plan privilege resolver: the single eligibility gate.

Given a subscription and a privilege name, finds the grant in force. A
subscription that is missing, deleted, inactive or in a non-consuming status
resolves to a denial, not an error.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.logging import logger
from privgate.domains.privileges.protocols import PlanPrivilegeResolverProtocol
from privgate.domains.privileges.repository import (
    PlanPrivilegeRepositoryProtocol,
    SubscriptionRepositoryProtocol,
)
from privgate.domains.privileges.types import DenialReason, ResolvedGrant
from privgate.schemas.plan_privilege import Grant


class PlanPrivilegeResolver(PlanPrivilegeResolverProtocol):
    """Resolves grants from the subscription's plan. No side effects."""

    def __init__(
        self,
        subscription_repo: SubscriptionRepositoryProtocol,
        plan_privilege_repo: PlanPrivilegeRepositoryProtocol,
    ) -> None:
        """Initialize with injected dependencies."""
        self._subscription_repo = subscription_repo
        self._plan_privilege_repo = plan_privilege_repo

    async def resolve(
        self, db: AsyncSession, subscription_id: UUID, privilege_name: str, now: datetime
    ) -> ResolvedGrant:
        """Resolve the grant for ``privilege_name`` (exact, case-sensitive match)."""
        subscription = await self._subscription_repo.get(db, subscription_id)
        if subscription is None or not subscription.is_eligible:
            return ResolvedGrant(reason=DenialReason.SUBSCRIPTION_NOT_ELIGIBLE)

        grants = await self._plan_privilege_repo.get_grants_for_plan(db, subscription.plan_id)
        matches = [
            grant
            for grant in grants
            if grant.privilege_name == privilege_name and grant.is_effective_at(now)
        ]
        if not matches:
            return ResolvedGrant(reason=DenialReason.GRANT_NOT_FOUND)

        if len(matches) > 1:
            logger.with_context(
                plan_id=str(subscription.plan_id), privilege=privilege_name
            ).warning(f"{len(matches)} grants in force for one privilege, using the newest")
        return ResolvedGrant(grant=_newest(matches))


def _newest(grants: list[Grant]) -> Grant:
    """Latest effective date wins; undated grants rank oldest. Ties break on id."""
    return max(
        grants,
        key=lambda g: (g.effective_date is not None, g.effective_date or datetime.min, str(g.id)),
    )
