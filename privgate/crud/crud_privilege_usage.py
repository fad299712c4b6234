"""CRUD operations for the PrivilegeUsage model.

Counters are only ever changed through conditional UPDATE statements, so the
check and the write are one statement and hold across processes.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from privgate.models.plan_privilege import PlanPrivilege
from privgate.models.privilege_usage import PrivilegeUsage
from privgate.models.subscription import Subscription
from privgate.schemas.subscription import ELIGIBLE_STATUSES


class CRUDPrivilegeUsage:
    """CRUD operations for the PrivilegeUsage model."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[PrivilegeUsage]:
        """Get a ledger entry by ID, bypassing any stale identity-map copy."""
        query = (
            select(PrivilegeUsage)
            .where(PrivilegeUsage.id == id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_entry(
        self, db: AsyncSession, *, subscription_id: UUID, plan_privilege_id: UUID
    ) -> Optional[PrivilegeUsage]:
        """Get the ledger entry of a (subscription, plan privilege) pair."""
        query = (
            select(PrivilegeUsage)
            .where(
                PrivilegeUsage.subscription_id == subscription_id,
                PrivilegeUsage.plan_privilege_id == plan_privilege_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def lock_entry(self, db: AsyncSession, *, entry_id: UUID) -> None:
        """Hold a row lock on a ledger entry until the transaction ends.

        Emits SELECT ... FOR UPDATE; dialects without row locks (SQLite) omit it.
        """
        query = select(PrivilegeUsage.id).where(PrivilegeUsage.id == entry_id).with_for_update()
        await db.execute(query)

    async def get_or_create_entry(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        plan_privilege_id: UUID,
        allowed_value: int,
        period_start: datetime,
        period_end: datetime,
    ) -> PrivilegeUsage:
        """Get the ledger entry of a pair, creating it with zero usage if missing.

        The insert runs in a SAVEPOINT. When a concurrent writer wins the unique
        constraint, the savepoint is rolled back and the winner's row is returned.
        """
        existing = await self.get_entry(
            db, subscription_id=subscription_id, plan_privilege_id=plan_privilege_id
        )
        if existing is not None:
            return existing

        entry = PrivilegeUsage(
            subscription_id=subscription_id,
            plan_privilege_id=plan_privilege_id,
            used_value=0,
            allowed_value=allowed_value,
            period_start=period_start,
            period_end=period_end,
        )
        try:
            async with db.begin_nested():
                db.add(entry)
                await db.flush()
        except IntegrityError:
            existing = await self.get_entry(
                db, subscription_id=subscription_id, plan_privilege_id=plan_privilege_id
            )
            if existing is None:
                raise
            return existing
        return entry

    async def atomic_increment(
        self,
        db: AsyncSession,
        *,
        entry_id: UUID,
        amount: int,
        cap: Optional[int],
        now: datetime,
    ) -> bool:
        """Add ``amount`` to the counter unless that would exceed ``cap``.

        ``cap=None`` increments unconditionally. Returns whether a row was updated;
        a False result leaves the row untouched.
        """
        stmt = update(PrivilegeUsage).where(PrivilegeUsage.id == entry_id)
        if cap is not None:
            stmt = stmt.where(PrivilegeUsage.used_value + amount <= cap)
        stmt = stmt.values(
            used_value=PrivilegeUsage.used_value + amount,
            last_used_at=now,
        ).execution_options(synchronize_session=False)

        result = await db.execute(stmt)
        return result.rowcount == 1

    async def roll_period(
        self,
        db: AsyncSession,
        *,
        entry_id: UUID,
        now: datetime,
        allowed_value: int,
        period_start: datetime,
        period_end: datetime,
    ) -> bool:
        """Start a new period on an entry whose period has ended.

        Matches only while ``period_end <= now``, so a roll that already happened
        through another path is not repeated. Returns whether the entry was rolled.
        """
        stmt = (
            update(PrivilegeUsage)
            .where(PrivilegeUsage.id == entry_id, PrivilegeUsage.period_end <= now)
            .values(
                used_value=0,
                allowed_value=allowed_value,
                period_start=period_start,
                period_end=period_end,
                reset_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def get_expired_entries(
        self, db: AsyncSession, *, now: datetime, limit: int
    ) -> list[tuple[PrivilegeUsage, PlanPrivilege]]:
        """Entries whose period has ended and whose subscription is still eligible.

        Each entry comes with its plan privilege so the caller can take a fresh
        allowance snapshot. Oldest periods first.
        """
        query = (
            select(PrivilegeUsage, PlanPrivilege)
            .join(PlanPrivilege, PlanPrivilege.id == PrivilegeUsage.plan_privilege_id)
            .join(Subscription, Subscription.id == PrivilegeUsage.subscription_id)
            .where(
                PrivilegeUsage.period_end <= now,
                Subscription.is_active.is_(True),
                Subscription.is_deleted.is_(False),
                Subscription.status.in_(sorted(ELIGIBLE_STATUSES)),
            )
            .order_by(PrivilegeUsage.period_end, PrivilegeUsage.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return [(row[0], row[1]) for row in result.unique().all()]


privilege_usage = CRUDPrivilegeUsage()
