"""CRUD operations for the PrivilegeUsageHistory model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from privgate.models.plan_privilege import PlanPrivilege
from privgate.models.privilege import Privilege
from privgate.models.privilege_usage import PrivilegeUsage
from privgate.models.privilege_usage_history import PrivilegeUsageHistory

_BUCKET_COLUMNS = {
    "day": PrivilegeUsageHistory.day_bucket,
    "week": PrivilegeUsageHistory.week_bucket,
    "month": PrivilegeUsageHistory.month_bucket,
}


class CRUDPrivilegeUsageHistory:
    """Append and aggregate usage events. Rows are never updated or deleted."""

    async def append(
        self,
        db: AsyncSession,
        *,
        privilege_usage_id: UUID,
        amount: int,
        used_at: datetime,
        day_bucket: str,
        week_bucket: str,
        month_bucket: str,
        note: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> PrivilegeUsageHistory:
        """Add a usage event to the session and flush it. Committing is up to the caller."""
        record = PrivilegeUsageHistory(
            privilege_usage_id=privilege_usage_id,
            amount=amount,
            used_at=used_at,
            day_bucket=day_bucket,
            week_bucket=week_bucket,
            month_bucket=month_bucket,
            note=note,
            created_by=created_by,
        )
        db.add(record)
        await db.flush()
        return record

    async def sum_by_bucket(
        self, db: AsyncSession, *, privilege_usage_id: UUID, bucket_kind: str, bucket_key: str
    ) -> int:
        """Total amount recorded for an entry within one day, week or month bucket."""
        column = _BUCKET_COLUMNS[bucket_kind]
        query = select(func.coalesce(func.sum(PrivilegeUsageHistory.amount), 0)).where(
            PrivilegeUsageHistory.privilege_usage_id == privilege_usage_id,
            column == bucket_key,
        )
        result = await db.execute(query)
        return int(result.scalar_one())

    async def list_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        skip: int = 0,
        limit: int = 100,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[tuple[PrivilegeUsageHistory, str]]:
        """Usage events of a subscription, newest first, paired with the privilege name."""
        query = self._for_subscription(
            select(PrivilegeUsageHistory, Privilege.name), subscription_id, start, end
        )
        query = (
            query.order_by(PrivilegeUsageHistory.used_at.desc(), PrivilegeUsageHistory.id)
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    async def count_for_subscription(
        self,
        db: AsyncSession,
        *,
        subscription_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Count usage events of a subscription within an optional time range."""
        query = self._for_subscription(
            select(func.count(PrivilegeUsageHistory.id)), subscription_id, start, end
        )
        result = await db.execute(query)
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _for_subscription(
        query: Select,
        subscription_id: UUID,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> Select:
        query = (
            query.select_from(PrivilegeUsageHistory)
            .join(PrivilegeUsage, PrivilegeUsage.id == PrivilegeUsageHistory.privilege_usage_id)
            .join(PlanPrivilege, PlanPrivilege.id == PrivilegeUsage.plan_privilege_id)
            .join(Privilege, Privilege.id == PlanPrivilege.privilege_id)
            .where(PrivilegeUsage.subscription_id == subscription_id)
        )
        if start is not None:
            query = query.where(PrivilegeUsageHistory.used_at >= start)
        if end is not None:
            query = query.where(PrivilegeUsageHistory.used_at < end)
        return query


privilege_usage_history = CRUDPrivilegeUsageHistory()
