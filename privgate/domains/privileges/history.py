"""Usage history store: append-only event log."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.datetime_utils import as_utc
from privgate.domains.privileges.protocols import UsageHistoryStoreProtocol
from privgate.domains.privileges.repository import PrivilegeUsageHistoryRepositoryProtocol
from privgate.domains.privileges.types import BucketKind, bucket_keys
from privgate.schemas.pagination import PaginationMeta
from privgate.schemas.privilege_usage import UsageHistoryList, UsageHistoryRecord


class UsageHistoryStore(UsageHistoryStoreProtocol):
    """Stamps bucket keys on every event so window sums are equality lookups."""

    def __init__(self, history_repo: PrivilegeUsageHistoryRepositoryProtocol) -> None:
        """Initialize with injected dependencies."""
        self._history_repo = history_repo

    async def append(
        self,
        db: AsyncSession,
        ledger_entry_id: UUID,
        amount: int,
        now: datetime,
        note: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> UsageHistoryRecord:
        """Record a usage event. Does not commit."""
        used_at = as_utc(now)
        return await self._history_repo.append(
            db,
            privilege_usage_id=ledger_entry_id,
            amount=amount,
            used_at=used_at,
            buckets=bucket_keys(used_at),
            note=note,
            created_by=created_by,
        )

    async def sum_for_bucket(
        self, db: AsyncSession, ledger_entry_id: UUID, bucket_kind: BucketKind, bucket_key: str
    ) -> int:
        """Total amount recorded for an entry in one bucket."""
        return await self._history_repo.sum_by_bucket(
            db, privilege_usage_id=ledger_entry_id, bucket_kind=bucket_kind, bucket_key=bucket_key
        )

    async def list_for_subscription(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        page: int,
        page_size: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> UsageHistoryList:
        """A page of a subscription's usage events, newest first."""
        total = await self._history_repo.count_for_subscription(
            db, subscription_id=subscription_id, start=start, end=end
        )
        records = await self._history_repo.list_for_subscription(
            db,
            subscription_id=subscription_id,
            skip=(page - 1) * page_size,
            limit=page_size,
            start=start,
            end=end,
        )
        return UsageHistoryList(
            data=records, meta=PaginationMeta.build(total, page=page, page_size=page_size)
        )
