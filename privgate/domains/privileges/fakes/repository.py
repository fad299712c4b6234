"""Fake privilege repositories for testing.

In-memory stores keyed like the real tables. Reads yield to the event loop
(``await asyncio.sleep(0)``) so concurrent callers interleave the way they do
against a real database, while each conditional write completes without a
suspension point between its check and its update, like a single UPDATE.
"""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.context import BaseContext
from privgate.core.datetime_utils import utc_now
from privgate.domains.privileges.types import BucketKeys, BucketKind, ExpiredEntry
from privgate.models.plan_privilege import PlanPrivilege
from privgate.models.privilege import Privilege
from privgate.schemas.plan_privilege import Grant
from privgate.schemas.privilege import PrivilegeCreate
from privgate.schemas.privilege_usage import UsageHistoryRecord, UsageLedgerEntry
from privgate.schemas.subscription import Subscription


class _CallRecorder:
    def __init__(self) -> None:
        self._calls: list[tuple] = []

    def call_count(self, method: str) -> int:
        """Return the number of times a method was called."""
        return sum(1 for name, *_ in self._calls if name == method)


class FakeSubscriptionRepository(_CallRecorder):
    """In-memory fake for SubscriptionRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty in-memory store."""
        super().__init__()
        self._store: dict[UUID, Subscription] = {}
        self.error: Optional[Exception] = None

    def seed(self, subscription: Subscription) -> None:
        """Add or replace a subscription."""
        self._store[subscription.id] = subscription

    async def get(self, db: AsyncSession, subscription_id: UUID) -> Optional[Subscription]:
        self._calls.append(("get", subscription_id))
        if self.error is not None:
            raise self.error
        await asyncio.sleep(0)
        return self._store.get(subscription_id)


class FakePlanPrivilegeRepository(_CallRecorder):
    """In-memory fake for PlanPrivilegeRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty in-memory stores."""
        super().__init__()
        self._grants: dict[UUID, list[Grant]] = defaultdict(list)
        self._rows: dict[UUID, PlanPrivilege] = {}

    def seed_grant(self, grant: Grant) -> None:
        """Add a grant to its plan."""
        self._grants[grant.plan_id].append(grant)

    def seed_row(self, plan_privilege: PlanPrivilege) -> None:
        """Add a plan privilege row (its ``privilege`` must be set)."""
        self._rows[plan_privilege.id] = plan_privilege

    async def get_grants_for_plan(self, db: AsyncSession, plan_id: UUID) -> list[Grant]:
        self._calls.append(("get_grants_for_plan", plan_id))
        await asyncio.sleep(0)
        return list(self._grants.get(plan_id, []))

    async def get(self, db: AsyncSession, plan_privilege_id: UUID) -> Optional[PlanPrivilege]:
        self._calls.append(("get", plan_privilege_id))
        return self._rows.get(plan_privilege_id)

    async def update_limits(
        self,
        db: AsyncSession,
        *,
        db_obj: PlanPrivilege,
        limits: dict[str, Optional[int]],
        ctx: BaseContext,
    ) -> PlanPrivilege:
        self._calls.append(("update_limits", db_obj.id, limits))
        for field, value in limits.items():
            setattr(db_obj, field, value)
        db_obj.modified_by = ctx.tracking_id
        return db_obj


class FakePrivilegeUsageRepository(_CallRecorder):
    """In-memory fake for PrivilegeUsageRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty in-memory store."""
        super().__init__()
        self._entries: dict[tuple[UUID, UUID], UsageLedgerEntry] = {}
        self._expired_grants: dict[UUID, tuple[int, int]] = {}
        self.eligible_subscriptions: Optional[set[UUID]] = None

    def seed_entry(
        self,
        *,
        subscription_id: UUID,
        plan_privilege_id: UUID,
        used_value: int,
        allowed_value: int,
        period_start: datetime,
        period_end: datetime,
        period_months: int = 1,
    ) -> UsageLedgerEntry:
        """Insert a ledger entry directly."""
        entry = UsageLedgerEntry(
            id=uuid4(),
            subscription_id=subscription_id,
            plan_privilege_id=plan_privilege_id,
            used_value=used_value,
            allowed_value=allowed_value,
            period_start=period_start,
            period_end=period_end,
        )
        self._entries[(subscription_id, plan_privilege_id)] = entry
        self._expired_grants[entry.id] = (allowed_value, period_months)
        return entry

    def entry(self, subscription_id: UUID, plan_privilege_id: UUID) -> Optional[UsageLedgerEntry]:
        """Synchronous peek at an entry."""
        return self._entries.get((subscription_id, plan_privilege_id))

    async def get_entry(
        self, db: AsyncSession, *, subscription_id: UUID, plan_privilege_id: UUID
    ) -> Optional[UsageLedgerEntry]:
        self._calls.append(("get_entry", subscription_id, plan_privilege_id))
        await asyncio.sleep(0)
        return self._entries.get((subscription_id, plan_privilege_id))

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
        self._calls.append(("get_or_create_entry", subscription_id, plan_privilege_id))
        await asyncio.sleep(0)
        key = (subscription_id, plan_privilege_id)
        existing = self._entries.get(key)
        if existing is not None:
            return existing
        entry = UsageLedgerEntry(
            id=uuid4(),
            subscription_id=subscription_id,
            plan_privilege_id=plan_privilege_id,
            used_value=0,
            allowed_value=allowed_value,
            period_start=period_start,
            period_end=period_end,
        )
        self._entries[key] = entry
        return entry

    async def lock_entry(self, db: AsyncSession, *, entry_id: UUID) -> None:
        self._calls.append(("lock_entry", entry_id))
        await asyncio.sleep(0)

    async def atomic_increment(
        self,
        db: AsyncSession,
        *,
        entry_id: UUID,
        amount: int,
        cap: Optional[int],
        now: datetime,
    ) -> bool:
        self._calls.append(("atomic_increment", entry_id, amount, cap))
        key, entry = self.find_by_id(entry_id)
        if entry is None:
            return False
        if cap is not None and entry.used_value + amount > cap:
            return False
        self._entries[key] = entry.model_copy(
            update={"used_value": entry.used_value + amount, "last_used_at": now}
        )
        return True

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
        self._calls.append(("roll_period", entry_id))
        key, entry = self.find_by_id(entry_id)
        if entry is None or entry.period_end > now:
            return False
        self._entries[key] = entry.model_copy(
            update={
                "used_value": 0,
                "allowed_value": allowed_value,
                "period_start": period_start,
                "period_end": period_end,
                "reset_at": now,
            }
        )
        return True

    async def get_expired_entries(
        self, db: AsyncSession, *, now: datetime, limit: int
    ) -> list[ExpiredEntry]:
        self._calls.append(("get_expired_entries", now, limit))
        expired = [
            entry
            for entry in self._entries.values()
            if entry.period_end <= now
            and (
                self.eligible_subscriptions is None
                or entry.subscription_id in self.eligible_subscriptions
            )
        ]
        expired.sort(key=lambda e: e.period_end)
        result = []
        for entry in expired[:limit]:
            allowed_value, period_months = self._expired_grants.get(
                entry.id, (entry.allowed_value, 1)
            )
            result.append(
                ExpiredEntry(
                    entry_id=entry.id,
                    subscription_id=entry.subscription_id,
                    period_end=entry.period_end,
                    allowed_value=allowed_value,
                    period_months=period_months,
                )
            )
        return result

    def find_by_id(
        self, entry_id: UUID
    ) -> tuple[Optional[tuple[UUID, UUID]], Optional[UsageLedgerEntry]]:
        """Locate an entry by its id."""
        for key, entry in self._entries.items():
            if entry.id == entry_id:
                return key, entry
        return None, None


class FakePrivilegeUsageHistoryRepository(_CallRecorder):
    """In-memory fake for PrivilegeUsageHistoryRepositoryProtocol."""

    def __init__(self, usage_repo: Optional[FakePrivilegeUsageRepository] = None) -> None:
        """Initialize empty in-memory store.

        With ``usage_repo`` the subscription of a record is looked up from its
        ledger entry; otherwise use ``link``.
        """
        super().__init__()
        self.records: list[UsageHistoryRecord] = []
        self._subscription_of: dict[UUID, UUID] = {}
        self._usage_repo = usage_repo
        self.error: Optional[Exception] = None

    def link(self, privilege_usage_id: UUID, subscription_id: UUID) -> None:
        """Tell the fake which subscription a ledger entry belongs to."""
        self._subscription_of[privilege_usage_id] = subscription_id

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
        self._calls.append(("append", privilege_usage_id, amount))
        if self.error is not None:
            raise self.error
        record = UsageHistoryRecord(
            id=uuid4(),
            privilege_usage_id=privilege_usage_id,
            amount=amount,
            used_at=used_at,
            day_bucket=buckets.day,
            week_bucket=buckets.week,
            month_bucket=buckets.month,
            note=note,
            created_by=created_by,
        )
        self.records.append(record)
        return record

    async def sum_by_bucket(
        self,
        db: AsyncSession,
        *,
        privilege_usage_id: UUID,
        bucket_kind: BucketKind,
        bucket_key: str,
    ) -> int:
        self._calls.append(("sum_by_bucket", privilege_usage_id, bucket_kind, bucket_key))
        await asyncio.sleep(0)
        column = f"{bucket_kind.value}_bucket"
        return sum(
            r.amount
            for r in self.records
            if r.privilege_usage_id == privilege_usage_id and getattr(r, column) == bucket_key
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
        self._calls.append(("list_for_subscription", subscription_id, skip, limit))
        matching = self._matching(subscription_id, start, end)
        matching.sort(key=lambda r: r.used_at, reverse=True)
        return matching[skip : skip + limit]

    async def count_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        self._calls.append(("count_for_subscription", subscription_id))
        return len(self._matching(subscription_id, start, end))

    def _matching(
        self, subscription_id: UUID, start: Optional[datetime], end: Optional[datetime]
    ) -> list[UsageHistoryRecord]:
        return [
            r
            for r in self.records
            if self._subscription_for(r.privilege_usage_id) == subscription_id
            and (start is None or r.used_at >= start)
            and (end is None or r.used_at < end)
        ]

    def _subscription_for(self, privilege_usage_id: UUID) -> Optional[UUID]:
        if privilege_usage_id in self._subscription_of:
            return self._subscription_of[privilege_usage_id]
        if self._usage_repo is not None:
            _, entry = self._usage_repo.find_by_id(privilege_usage_id)
            return entry.subscription_id if entry is not None else None
        return None


class FakePrivilegeRepository(_CallRecorder):
    """In-memory fake for PrivilegeRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize empty in-memory store."""
        super().__init__()
        self._store: dict[UUID, Privilege] = {}
        self.write_error: Optional[Exception] = None

    def seed(self, privilege: Privilege) -> Privilege:
        """Add a privilege row."""
        self._store[privilege.id] = privilege
        return privilege

    async def get(self, db: AsyncSession, privilege_id: UUID) -> Optional[Privilege]:
        self._calls.append(("get", privilege_id))
        privilege = self._store.get(privilege_id)
        if privilege is None or privilege.is_deleted:
            return None
        return privilege

    async def get_by_name(self, db: AsyncSession, name: str) -> Optional[Privilege]:
        self._calls.append(("get_by_name", name))
        for privilege in self._live():
            if privilege.name == name:
                return privilege
        return None

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
        self._calls.append(("get_multi", skip, limit, search, is_active, category))
        rows = sorted(self._filtered(search, is_active, category), key=lambda p: p.name)
        return rows[skip : skip + limit]

    async def count(
        self,
        db: AsyncSession,
        *,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> int:
        self._calls.append(("count", search, is_active, category))
        return len(self._filtered(search, is_active, category))

    async def get_types(self, db: AsyncSession) -> list[str]:
        self._calls.append(("get_types",))
        return sorted({p.privilege_type for p in self._live() if p.privilege_type})

    async def create(
        self, db: AsyncSession, *, obj_in: PrivilegeCreate, ctx: BaseContext
    ) -> Privilege:
        self._calls.append(("create", obj_in.name))
        if self.write_error is not None:
            raise self.write_error
        now = utc_now()
        privilege = Privilege(
            id=uuid4(),
            created_at=now,
            modified_at=now,
            is_deleted=False,
            created_by=ctx.tracking_id,
            modified_by=ctx.tracking_id,
            **obj_in.model_dump(),
        )
        self._store[privilege.id] = privilege
        return privilege

    async def update(
        self, db: AsyncSession, *, db_obj: Privilege, obj_in: dict[str, Any], ctx: BaseContext
    ) -> Privilege:
        self._calls.append(("update", db_obj.id, obj_in))
        if self.write_error is not None:
            raise self.write_error
        for field, value in obj_in.items():
            setattr(db_obj, field, value)
        db_obj.modified_by = ctx.tracking_id
        db_obj.modified_at = utc_now()
        return db_obj

    async def soft_delete(
        self, db: AsyncSession, *, db_obj: Privilege, ctx: BaseContext
    ) -> Privilege:
        self._calls.append(("soft_delete", db_obj.id))
        db_obj.is_deleted = True
        db_obj.modified_by = ctx.tracking_id
        return db_obj

    def _live(self) -> list[Privilege]:
        return [p for p in self._store.values() if not p.is_deleted]

    def _filtered(
        self, search: Optional[str], is_active: Optional[bool], category: Optional[str]
    ) -> list[Privilege]:
        rows = self._live()
        if search:
            needle = search.lower()
            rows = [
                p
                for p in rows
                if needle in p.name.lower() or needle in (p.description or "").lower()
            ]
        if is_active is not None:
            rows = [p for p in rows if p.is_active == is_active]
        if category:
            rows = [p for p in rows if (p.privilege_type or "").lower() == category.lower()]
        return rows
