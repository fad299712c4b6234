"""Privilege usage service: the orchestrator external callers invoke.

Flow of a use:
    amount check -> grant resolution -> disabled check -> time windows
    -> total quota -> (ledger increment + history append, one transaction)

Calls for the same (subscription, privilege name) are serialized in-process.
Across processes the ledger's conditional write keeps the total quota exact,
and a grant with time limits re-checks its windows under the ledger row lock.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.context import BaseContext
from privgate.core.datetime_utils import utc_now
from privgate.core.logging import ContextualLogger
from privgate.core.protocols.metrics import PrivilegeUsageMetrics
from privgate.db.unit_of_work import UnitOfWork
from privgate.domains.privileges.exceptions import (
    PrivilegeStorageError,
    SubscriptionNotFoundError,
)
from privgate.domains.privileges.protocols import (
    LimitEvaluatorProtocol,
    PlanPrivilegeResolverProtocol,
    PrivilegeUsageServiceProtocol,
    UsageHistoryStoreProtocol,
    UsageLedgerProtocol,
)
from privgate.domains.privileges.repository import SubscriptionRepositoryProtocol
from privgate.domains.privileges.types import UNLIMITED, DenialReason, UsageDecision
from privgate.schemas.plan_privilege import Grant
from privgate.schemas.privilege_usage import UsageHistoryList


class _KeyLock:
    """A lock shared by the callers of one key, dropped when the last one leaves."""

    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class PrivilegeUsageService(PrivilegeUsageServiceProtocol):
    """Decides and records privilege consumption."""

    def __init__(
        self,
        resolver: PlanPrivilegeResolverProtocol,
        limit_evaluator: LimitEvaluatorProtocol,
        ledger: UsageLedgerProtocol,
        history: UsageHistoryStoreProtocol,
        subscription_repo: SubscriptionRepositoryProtocol,
        metrics: PrivilegeUsageMetrics,
    ) -> None:
        """Initialize with injected dependencies."""
        self._resolver = resolver
        self._limit_evaluator = limit_evaluator
        self._ledger = ledger
        self._history = history
        self._subscription_repo = subscription_repo
        self._metrics = metrics
        self._locks: dict[tuple[UUID, str], _KeyLock] = {}

    async def get_remaining(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        ctx: BaseContext,
        now: Optional[datetime] = None,
    ) -> int:
        """Units left in the current period, 0 when no grant resolves."""
        now = now or utc_now()
        log = _log_for(ctx, subscription_id, privilege_name)
        async with _storage_errors("get_remaining", log):
            resolved = await self._resolver.resolve(db, subscription_id, privilege_name, now)
            if not resolved.found:
                return 0
            return await self._ledger.get_remaining(db, subscription_id, resolved.grant, now)

    async def can_use(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        amount: int,
        ctx: BaseContext,
        now: Optional[datetime] = None,
    ) -> UsageDecision:
        """Whether ``amount`` units could be consumed now. No side effects."""
        now = now or utc_now()
        log = _log_for(ctx, subscription_id, privilege_name)
        async with _storage_errors("can_use", log):
            decision, _ = await self._evaluate(db, subscription_id, privilege_name, amount, now)
        log.debug(f"can_use amount={amount}: allowed={decision.allowed} reason={decision.reason}")
        return decision

    async def try_use(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        amount: int,
        ctx: BaseContext,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UsageDecision:
        """Consume ``amount`` units and record the event, or explain the denial.

        The increment and the history row commit together or not at all.
        """
        now = now or utc_now()
        log = _log_for(ctx, subscription_id, privilege_name)

        async with self._serialized(subscription_id, privilege_name):
            async with _storage_errors("use", log):
                decision, grant = await self._evaluate(
                    db, subscription_id, privilege_name, amount, now
                )
                if decision.allowed:
                    decision = await self._consume(
                        db, subscription_id, grant, amount, now, note, ctx.tracking_id
                    )

        self._record(privilege_name, amount, decision, log)
        return decision

    async def use(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        amount: int,
        ctx: BaseContext,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Consume ``amount`` units. Returns whether the use was recorded."""
        decision = await self.try_use(
            db, subscription_id, privilege_name, amount, ctx, note=note, now=now
        )
        return decision.allowed

    async def list_history(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        ctx: BaseContext,
        page: int = 1,
        page_size: int = 20,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> UsageHistoryList:
        """A page of a subscription's usage history, newest first."""
        log = ctx.logger.with_context(subscription_id=str(subscription_id))
        async with _storage_errors("list_history", log):
            if await self._subscription_repo.get(db, subscription_id) is None:
                raise SubscriptionNotFoundError(subscription_id)
            return await self._history.list_for_subscription(
                db, subscription_id, page=page, page_size=page_size, start=start, end=end
            )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _evaluate(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        amount: int,
        now: datetime,
    ) -> tuple[UsageDecision, Optional[Grant]]:
        if amount <= 0 or amount > UNLIMITED:
            return UsageDecision.deny(DenialReason.INVALID_AMOUNT, privilege_name), None

        resolved = await self._resolver.resolve(db, subscription_id, privilege_name, now)
        if not resolved.found:
            return UsageDecision.deny(resolved.reason, privilege_name), None

        grant = resolved.grant
        if grant.is_disabled:
            return UsageDecision.deny(DenialReason.GRANT_DISABLED, privilege_name), grant

        remaining = await self._ledger.get_remaining(db, subscription_id, grant, now)

        window = await self._limit_evaluator.check_time_windows(
            db, subscription_id, grant, amount, now
        )
        if not window.allowed:
            return UsageDecision.deny(window.reason, privilege_name, remaining), grant

        if not grant.is_unlimited and amount > remaining:
            return (
                UsageDecision.deny(DenialReason.QUOTA_EXHAUSTED, privilege_name, remaining),
                grant,
            )

        return UsageDecision.allow(remaining), grant

    async def _consume(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        grant: Grant,
        amount: int,
        now: datetime,
        note: Optional[str],
        actor: Optional[str],
    ) -> UsageDecision:
        async with UnitOfWork(db) as uow:
            if grant.has_time_limits:
                await self._ledger.lock_current_entry(db, subscription_id, grant, now)
                window = await self._limit_evaluator.check_time_windows(
                    db, subscription_id, grant, amount, now
                )
                if not window.allowed:
                    remaining = await self._ledger.get_remaining(db, subscription_id, grant, now)
                    return UsageDecision.deny(window.reason, grant.privilege_name, remaining)
            result = await self._ledger.try_consume(db, subscription_id, grant, amount, now)
            if not result.success:
                # Lost the race at the conditional write; nothing is committed.
                return UsageDecision.deny(
                    DenialReason.QUOTA_EXHAUSTED, grant.privilege_name, result.remaining
                )
            await self._history.append(
                db, result.ledger_entry_id, amount, now, note=note, created_by=actor
            )
            await uow.commit()
        return UsageDecision.allow(result.remaining)

    @asynccontextmanager
    async def _serialized(self, subscription_id: UUID, privilege_name: str) -> AsyncIterator[None]:
        key = (subscription_id, privilege_name)
        key_lock = self._locks.get(key)
        if key_lock is None:
            key_lock = self._locks[key] = _KeyLock()
        key_lock.holders += 1
        try:
            async with key_lock.lock:
                yield
        finally:
            key_lock.holders -= 1
            if key_lock.holders == 0:
                self._locks.pop(key, None)

    def _record(
        self, privilege_name: str, amount: int, decision: UsageDecision, log: ContextualLogger
    ) -> None:
        if decision.allowed:
            self._metrics.record_decision(privilege_name, "allowed", "none")
            self._metrics.record_consumed(privilege_name, amount)
            log.info(f"Privilege used: amount={amount} remaining={decision.remaining}")
        else:
            self._metrics.record_decision(privilege_name, "denied", decision.reason.value)
            log.info(f"Privilege use denied: {decision.reason.value}")


def _log_for(ctx: BaseContext, subscription_id: UUID, privilege_name: str) -> ContextualLogger:
    return ctx.logger.with_context(subscription_id=str(subscription_id), privilege=privilege_name)


@asynccontextmanager
async def _storage_errors(operation: str, log: ContextualLogger) -> AsyncIterator[None]:
    """Re-raise database failures as PrivilegeStorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        log.error(f"Privilege storage failure during {operation}: {exc}", exc_info=True)
        raise PrivilegeStorageError(operation) from exc
