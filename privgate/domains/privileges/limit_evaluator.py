"""Time-window limit evaluation.

Sums the history of the grant's ledger entry in the current day, ISO week and
calendar month buckets and compares each against its configured sub-limit.
Independent of the total quota, which the ledger enforces.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.datetime_utils import as_utc
from privgate.domains.privileges.protocols import (
    LimitEvaluatorProtocol,
    UsageHistoryStoreProtocol,
)
from privgate.domains.privileges.repository import PrivilegeUsageRepositoryProtocol
from privgate.domains.privileges.types import (
    WINDOW_ORDER,
    WindowCheck,
    bucket_keys,
    time_limit_for,
)
from privgate.schemas.plan_privilege import Grant


class LimitEvaluator(LimitEvaluatorProtocol):
    """Checks daily, then weekly, then monthly limits; the first violation wins."""

    def __init__(
        self,
        usage_repo: PrivilegeUsageRepositoryProtocol,
        history: UsageHistoryStoreProtocol,
    ) -> None:
        """Initialize with injected dependencies."""
        self._usage_repo = usage_repo
        self._history = history

    async def check_time_windows(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        grant: Grant,
        requested_amount: int,
        now: datetime,
    ) -> WindowCheck:
        """Whether ``requested_amount`` more units fit in every configured window."""
        if not grant.has_time_limits:
            return WindowCheck(allowed=True)

        entry = await self._usage_repo.get_entry(
            db, subscription_id=subscription_id, plan_privilege_id=grant.id
        )
        keys = bucket_keys(as_utc(now))

        for kind in WINDOW_ORDER:
            limit = time_limit_for(grant, kind)
            if limit is None:
                continue
            used = 0
            if entry is not None:
                used = await self._history.sum_for_bucket(db, entry.id, kind, keys.for_kind(kind))
            if used + requested_amount > limit:
                return WindowCheck(allowed=False, window=kind, used=used, limit=limit)

        return WindowCheck(allowed=True)
