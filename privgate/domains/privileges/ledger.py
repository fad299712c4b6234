"""Usage ledger: per-period counters with atomic check-and-increment.

The check against the cap and the increment are one conditional UPDATE in the
store (``used_value + amount <= cap``), so two writers can never both pass the
check for the last unit. A write that matches no row leaves the counter as is.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.datetime_utils import as_utc
from privgate.core.exceptions import InvalidStateError
from privgate.domains.privileges.protocols import UsageLedgerProtocol
from privgate.domains.privileges.repository import PrivilegeUsageRepositoryProtocol
from privgate.domains.privileges.types import (
    UNLIMITED,
    ConsumeResult,
    effective_cap,
    next_period,
    period_bounds,
    remaining_for,
)
from privgate.schemas.plan_privilege import Grant
from privgate.schemas.privilege_usage import UsageLedgerEntry


class UsageLedger(UsageLedgerProtocol):
    """Owns every mutation of ledger entries."""

    def __init__(self, usage_repo: PrivilegeUsageRepositoryProtocol) -> None:
        """Initialize with injected dependencies."""
        self._usage_repo = usage_repo

    async def get_remaining(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant, now: datetime
    ) -> int:
        """Units left in the current period.

        0 for disabled grants, ``UNLIMITED`` for unlimited ones. Without an entry,
        or when the entry's period has ended, the full grant value is available.
        """
        if grant.is_disabled:
            return 0
        if grant.is_unlimited:
            return UNLIMITED

        entry = await self._usage_repo.get_entry(
            db, subscription_id=subscription_id, plan_privilege_id=grant.id
        )
        if entry is None or entry.period_end <= as_utc(now):
            return grant.allowed_value
        return remaining_for(grant, entry.used_value, entry.allowed_value)

    async def lock_current_entry(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant, now: datetime
    ) -> None:
        """Hold the row lock of the current entry until the transaction ends.

        Creates the entry or rolls its period first, like ``try_consume``.
        Another process locking the same entry waits for this transaction.
        """
        entry = await self._get_current_entry(db, subscription_id, grant, as_utc(now))
        await self._usage_repo.lock_entry(db, entry_id=entry.id)

    async def try_consume(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant, amount: int, now: datetime
    ) -> ConsumeResult:
        """Consume ``amount`` units if the total quota allows it.

        Creates the entry on first use and rolls it into a new period when the
        current one has ended. Does not commit.
        """
        if grant.is_disabled or amount <= 0:
            return ConsumeResult(success=False)

        now = as_utc(now)
        entry = await self._get_current_entry(db, subscription_id, grant, now)

        if grant.is_unlimited:
            await self._usage_repo.atomic_increment(
                db, entry_id=entry.id, amount=amount, cap=None, now=now
            )
            return ConsumeResult(success=True, ledger_entry_id=entry.id, remaining=UNLIMITED)

        cap = effective_cap(grant, entry.allowed_value)
        incremented = await self._usage_repo.atomic_increment(
            db, entry_id=entry.id, amount=amount, cap=cap, now=now
        )

        current = await self._reload(db, subscription_id, grant)
        return ConsumeResult(
            success=incremented,
            ledger_entry_id=entry.id,
            remaining=remaining_for(grant, current.used_value, current.allowed_value),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _get_current_entry(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant, now: datetime
    ) -> UsageLedgerEntry:
        period_start, period_end = period_bounds(now, grant.period_months)
        entry = await self._usage_repo.get_or_create_entry(
            db,
            subscription_id=subscription_id,
            plan_privilege_id=grant.id,
            allowed_value=grant.allowed_value,
            period_start=period_start,
            period_end=period_end,
        )
        if entry.period_end > now:
            return entry

        # Period ended: a concurrent caller may already have rolled it, so the
        # roll is conditional and the entry is re-read either way.
        new_start, new_end = next_period(entry.period_end, grant.period_months, now)
        await self._usage_repo.roll_period(
            db,
            entry_id=entry.id,
            now=now,
            allowed_value=grant.allowed_value,
            period_start=new_start,
            period_end=new_end,
        )
        return await self._reload(db, subscription_id, grant)

    async def _reload(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant
    ) -> UsageLedgerEntry:
        entry = await self._usage_repo.get_entry(
            db, subscription_id=subscription_id, plan_privilege_id=grant.id
        )
        if entry is None:
            raise InvalidStateError(f"Ledger entry for plan privilege {grant.id} vanished")
        return entry
