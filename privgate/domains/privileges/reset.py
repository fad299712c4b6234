"""Usage period reset sweep.

Invoked by an external scheduler. Rolls every ledger entry whose period has
ended, using the same conditional roll as consumption, so an entry a concurrent
use already rolled is left alone.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from privgate.core.datetime_utils import as_utc, utc_now
from privgate.core.logging import logger
from privgate.db.unit_of_work import UnitOfWork
from privgate.domains.privileges.protocols import UsagePeriodResetServiceProtocol
from privgate.domains.privileges.repository import PrivilegeUsageRepositoryProtocol
from privgate.domains.privileges.types import next_period


class UsagePeriodResetService(UsagePeriodResetServiceProtocol):
    """Rolls expired ledger entries in committed batches."""

    def __init__(self, usage_repo: PrivilegeUsageRepositoryProtocol, batch_size: int) -> None:
        """Initialize with injected dependencies."""
        self._usage_repo = usage_repo
        self._batch_size = batch_size

    async def reset_expired_periods(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
        batch_size: Optional[int] = None,
    ) -> int:
        """Roll every expired entry. Returns how many were rolled."""
        now = as_utc(now) if now else utc_now()
        size = batch_size or self._batch_size
        log = logger.with_context(job="usage_period_reset")

        total = 0
        while True:
            found, rolled = await self._roll_batch(db, now, size)
            total += rolled
            if found < size:
                break

        log.info(f"Usage period reset rolled {total} ledger entries")
        return total

    @retry(
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(OperationalError),
        wait=wait_exponential(multiplier=0.5, max=5),
        reraise=True,
    )
    async def _roll_batch(self, db: AsyncSession, now: datetime, size: int) -> tuple[int, int]:
        """Roll one batch in its own transaction. Returns (found, rolled)."""
        async with UnitOfWork(db) as uow:
            expired = await self._usage_repo.get_expired_entries(db, now=now, limit=size)
            rolled = 0
            for entry in expired:
                period_start, period_end = next_period(
                    entry.period_end, entry.period_months, now
                )
                if await self._usage_repo.roll_period(
                    db,
                    entry_id=entry.entry_id,
                    now=now,
                    allowed_value=entry.allowed_value,
                    period_start=period_start,
                    period_end=period_end,
                ):
                    rolled += 1
            await uow.commit()
        return len(expired), rolled
