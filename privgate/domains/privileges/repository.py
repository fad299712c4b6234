"""Privilege domain repositories wrapping the crud singletons.

Repositories hand schemas, not ORM rows, to the engine components so that the
in-memory fakes and the database implementations are interchangeable.
"""

from datetime import datetime
from typing import Any, Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from privgate import crud
from privgate.core.context import BaseContext
from privgate.domains.privileges.types import BucketKeys, BucketKind, ExpiredEntry
from privgate.models.plan_privilege import PlanPrivilege
from privgate.models.privilege import Privilege
from privgate.schemas.plan_privilege import Grant
from privgate.schemas.privilege import PrivilegeCreate
from privgate.schemas.privilege_usage import UsageHistoryRecord, UsageLedgerEntry
from privgate.schemas.subscription import Subscription


def grant_from_model(plan_privilege: PlanPrivilege) -> Grant:
    """Join a plan privilege row with its catalog name."""
    return Grant(
        id=plan_privilege.id,
        plan_id=plan_privilege.plan_id,
        privilege_id=plan_privilege.privilege_id,
        privilege_name=plan_privilege.privilege.name,
        allowed_value=plan_privilege.value,
        period_months=plan_privilege.period_months,
        daily_limit=plan_privilege.daily_limit,
        weekly_limit=plan_privilege.weekly_limit,
        monthly_limit=plan_privilege.monthly_limit,
        effective_date=plan_privilege.effective_date,
        expiration_date=plan_privilege.expiration_date,
        is_active=plan_privilege.is_active and plan_privilege.privilege.is_active,
    )


# ---------------------------------------------------------------------------
# Subscriptions (read-only)
# ---------------------------------------------------------------------------


class SubscriptionRepositoryProtocol(Protocol):
    """Read access to subscriptions owned by another subsystem."""

    async def get(self, db: AsyncSession, subscription_id: UUID) -> Optional[Subscription]:
        """Get a subscription, or None if it does not exist."""
        ...


class SubscriptionRepository(SubscriptionRepositoryProtocol):
    """Delegates to the crud.subscription singleton."""

    async def get(self, db: AsyncSession, subscription_id: UUID) -> Optional[Subscription]:
        """Get a subscription, or None if it does not exist."""
        row = await crud.subscription.get(db, subscription_id)
        return Subscription.model_validate(row) if row is not None else None


# ---------------------------------------------------------------------------
# Plan grants
# ---------------------------------------------------------------------------


class PlanPrivilegeRepositoryProtocol(Protocol):
    """Data access for plan privileges."""

    async def get_grants_for_plan(self, db: AsyncSession, plan_id: UUID) -> list[Grant]:
        """All grants of a plan whose catalog privilege is not deleted."""
        ...

    async def get(self, db: AsyncSession, plan_privilege_id: UUID) -> Optional[PlanPrivilege]:
        """Get a plan privilege row."""
        ...

    async def update_limits(
        self,
        db: AsyncSession,
        *,
        db_obj: PlanPrivilege,
        limits: dict[str, Optional[int]],
        ctx: BaseContext,
    ) -> PlanPrivilege:
        """Overwrite the time-based limits of a plan privilege."""
        ...


class PlanPrivilegeRepository(PlanPrivilegeRepositoryProtocol):
    """Delegates to the crud.plan_privilege singleton."""

    async def get_grants_for_plan(self, db: AsyncSession, plan_id: UUID) -> list[Grant]:
        """All grants of a plan whose catalog privilege is not deleted."""
        rows = await crud.plan_privilege.get_for_plan(db, plan_id)
        return [grant_from_model(row) for row in rows]

    async def get(self, db: AsyncSession, plan_privilege_id: UUID) -> Optional[PlanPrivilege]:
        """Get a plan privilege row."""
        return await crud.plan_privilege.get(db, plan_privilege_id)

    async def update_limits(
        self,
        db: AsyncSession,
        *,
        db_obj: PlanPrivilege,
        limits: dict[str, Optional[int]],
        ctx: BaseContext,
    ) -> PlanPrivilege:
        """Overwrite the time-based limits of a plan privilege."""
        return await crud.plan_privilege.update(db, db_obj=db_obj, obj_in=limits, ctx=ctx)


# ---------------------------------------------------------------------------
# Usage ledger
# ---------------------------------------------------------------------------


class PrivilegeUsageRepositoryProtocol(Protocol):
    """Data access for ledger entries. Counters change only through conditional writes."""

    async def get_entry(
        self, db: AsyncSession, *, subscription_id: UUID, plan_privilege_id: UUID
    ) -> Optional[UsageLedgerEntry]:
        """Get the ledger entry of a (subscription, plan privilege) pair."""
        ...

    async def get_or_create_entry(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        plan_privilege_id: UUID,
        allowed_value: int,
        period_start: datetime,
        period_end: datetime,
    ) -> UsageLedgerEntry:
        """Get the ledger entry of a pair, creating it with zero usage if missing."""
        ...

    async def lock_entry(self, db: AsyncSession, *, entry_id: UUID) -> None:
        """Hold a row lock on a ledger entry until the transaction ends."""
        ...

    async def atomic_increment(
        self,
        db: AsyncSession,
        *,
        entry_id: UUID,
        amount: int,
        cap: Optional[int],
        now: datetime,
    ) -> bool:
        """Add ``amount`` unless the result would exceed ``cap``. Returns whether it did."""
        ...

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
        """Reset an entry whose period ended at or before ``now``. Returns whether it did."""
        ...

    async def get_expired_entries(
        self, db: AsyncSession, *, now: datetime, limit: int
    ) -> list[ExpiredEntry]:
        """Entries of eligible subscriptions whose period has ended."""
        ...


class PrivilegeUsageRepository(PrivilegeUsageRepositoryProtocol):
    """Delegates to the crud.privilege_usage singleton."""

    async def get_entry(
        self, db: AsyncSession, *, subscription_id: UUID, plan_privilege_id: UUID
    ) -> Optional[UsageLedgerEntry]:
        """Get the ledger entry of a (subscription, plan privilege) pair."""
        row = await crud.privilege_usage.get_entry(
            db, subscription_id=subscription_id, plan_privilege_id=plan_privilege_id
        )
        return UsageLedgerEntry.model_validate(row) if row is not None else None

    async def get_or_create_entry(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        plan_privilege_id: UUID,
        allowed_value: int,
        period_start: datetime,
        period_end: datetime,
    ) -> UsageLedgerEntry:
        """Get the ledger entry of a pair, creating it with zero usage if missing."""
        row = await crud.privilege_usage.get_or_create_entry(
            db,
            subscription_id=subscription_id,
            plan_privilege_id=plan_privilege_id,
            allowed_value=allowed_value,
            period_start=period_start,
            period_end=period_end,
        )
        return UsageLedgerEntry.model_validate(row)

    async def lock_entry(self, db: AsyncSession, *, entry_id: UUID) -> None:
        """Hold a row lock on a ledger entry until the transaction ends."""
        await crud.privilege_usage.lock_entry(db, entry_id=entry_id)

    async def atomic_increment(
        self,
        db: AsyncSession,
        *,
        entry_id: UUID,
        amount: int,
        cap: Optional[int],
        now: datetime,
    ) -> bool:
        """Add ``amount`` unless the result would exceed ``cap``. Returns whether it did."""
        return await crud.privilege_usage.atomic_increment(
            db, entry_id=entry_id, amount=amount, cap=cap, now=now
        )

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
        """Reset an entry whose period ended at or before ``now``. Returns whether it did."""
        return await crud.privilege_usage.roll_period(
            db,
            entry_id=entry_id,
            now=now,
            allowed_value=allowed_value,
            period_start=period_start,
            period_end=period_end,
        )

    async def get_expired_entries(
        self, db: AsyncSession, *, now: datetime, limit: int
    ) -> list[ExpiredEntry]:
        """Entries of eligible subscriptions whose period has ended."""
        rows = await crud.privilege_usage.get_expired_entries(db, now=now, limit=limit)
        expired = []
        for usage, plan_privilege in rows:
            entry = UsageLedgerEntry.model_validate(usage)
            expired.append(
                ExpiredEntry(
                    entry_id=entry.id,
                    subscription_id=entry.subscription_id,
                    period_end=entry.period_end,
                    allowed_value=plan_privilege.value if plan_privilege.is_active else 0,
                    period_months=plan_privilege.period_months,
                )
            )
        return expired


# ---------------------------------------------------------------------------
# Usage history
# ---------------------------------------------------------------------------


class PrivilegeUsageHistoryRepositoryProtocol(Protocol):
    """Data access for the append-only usage history."""

    async def append(
        self,
        db: AsyncSession,
        *,
        privilege_usage_id: UUID,
        amount: int,
        used_at: datetime,
        buckets: BucketKeys,
        note: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> UsageHistoryRecord:
        """Record a usage event. Committing is up to the caller."""
        ...

    async def sum_by_bucket(
        self,
        db: AsyncSession,
        *,
        privilege_usage_id: UUID,
        bucket_kind: BucketKind,
        bucket_key: str,
    ) -> int:
        """Total amount recorded for an entry in one bucket."""
        ...

    async def list_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        skip: int = 0,
        limit: int = 100,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[UsageHistoryRecord]:
        """Usage events of a subscription, newest first."""
        ...

    async def count_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Count usage events of a subscription."""
        ...


class PrivilegeUsageHistoryRepository(PrivilegeUsageHistoryRepositoryProtocol):
    """Delegates to the crud.privilege_usage_history singleton."""

    async def append(
        self,
        db: AsyncSession,
        *,
        privilege_usage_id: UUID,
        amount: int,
        used_at: datetime,
        buckets: BucketKeys,
        note: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> UsageHistoryRecord:
        """Record a usage event. Committing is up to the caller."""
        row = await crud.privilege_usage_history.append(
            db,
            privilege_usage_id=privilege_usage_id,
            amount=amount,
            used_at=used_at,
            day_bucket=buckets.day,
            week_bucket=buckets.week,
            month_bucket=buckets.month,
            note=note,
            created_by=created_by,
        )
        return UsageHistoryRecord.model_validate(row)

    async def sum_by_bucket(
        self,
        db: AsyncSession,
        *,
        privilege_usage_id: UUID,
        bucket_kind: BucketKind,
        bucket_key: str,
    ) -> int:
        """Total amount recorded for an entry in one bucket."""
        return await crud.privilege_usage_history.sum_by_bucket(
            db,
            privilege_usage_id=privilege_usage_id,
            bucket_kind=bucket_kind.value,
            bucket_key=bucket_key,
        )

    async def list_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        skip: int = 0,
        limit: int = 100,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[UsageHistoryRecord]:
        """Usage events of a subscription, newest first."""
        rows = await crud.privilege_usage_history.list_for_subscription(
            db, subscription_id=subscription_id, skip=skip, limit=limit, start=start, end=end
        )
        records = []
        for row, privilege_name in rows:
            record = UsageHistoryRecord.model_validate(row)
            records.append(record.model_copy(update={"privilege_name": privilege_name}))
        return records

    async def count_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Count usage events of a subscription."""
        return await crud.privilege_usage_history.count_for_subscription(
            db, subscription_id=subscription_id, start=start, end=end
        )


# ---------------------------------------------------------------------------
# Privilege catalog
# ---------------------------------------------------------------------------


class PrivilegeRepositoryProtocol(Protocol):
    """Data access for the privilege catalog. Deleted rows are never returned."""

    async def get(self, db: AsyncSession, privilege_id: UUID) -> Optional[Privilege]:
        """Get a privilege by ID."""
        ...

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Privilege]:
        """Get a privilege by exact name."""
        ...

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int,
        limit: int,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list[Privilege]:
        """List privileges ordered by name."""
        ...

    async def count(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> int:
        """Count privileges matching the filters."""
        ...

    async def get_types(self, db: AsyncSession) -> list[str]:
        """Distinct types of the listed privileges."""
        ...

    async def create(
        self, db: AsyncSession, *, obj_in: PrivilegeCreate, ctx: BaseContext
    ) -> Privilege:
        """Create a privilege."""
        ...

    async def update(
        self, db: AsyncSession, *, db_obj: Privilege, obj_in: dict[str, Any], ctx: BaseContext
    ) -> Privilege:
        """Update a privilege."""
        ...

    async def soft_delete(
        self, db: AsyncSession, *, db_obj: Privilege, ctx: BaseContext
    ) -> Privilege:
        """Mark a privilege deleted."""
        ...


class PrivilegeRepository(PrivilegeRepositoryProtocol):
    """Delegates to the crud.privilege singleton."""

    async def get(self, db: AsyncSession, privilege_id: UUID) -> Optional[Privilege]:
        """Get a privilege by ID."""
        return await crud.privilege.get(db, privilege_id)

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Privilege]:
        """Get a privilege by exact name."""
        return await crud.privilege.get_by_name(db, name)

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        skip: int,
        limit: int,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list[Privilege]:
        """List privileges ordered by name."""
        return await crud.privilege.get_multi(
            db, skip=skip, limit=limit, search=search, is_active=is_active, category=category
        )

    async def count(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> int:
        """Count privileges matching the filters."""
        return await crud.privilege.count(
            db, search=search, is_active=is_active, category=category
        )

    async def get_types(self, db: AsyncSession) -> list[str]:
        """Distinct types of the listed privileges."""
        return await crud.privilege.get_types(db)

    async def create(
        self, db: AsyncSession, *, obj_in: PrivilegeCreate, ctx: BaseContext
    ) -> Privilege:
        """Create a privilege."""
        return await crud.privilege.create(db, obj_in=obj_in, ctx=ctx)

    async def update(
        self, db: AsyncSession, *, db_obj: Privilege, obj_in: dict[str, Any], ctx: BaseContext
    ) -> Privilege:
        """Update a privilege."""
        return await crud.privilege.update(db, db_obj=db_obj, obj_in=obj_in, ctx=ctx)

    async def soft_delete(
        self, db: AsyncSession, *, db_obj: Privilege, ctx: BaseContext
    ) -> Privilege:
        """Mark a privilege deleted."""
        return await crud.privilege.soft_delete(db, db_obj=db_obj, actor=ctx.tracking_id)
