"""Privilege domain protocols.

Engine components (resolver, limit evaluator, ledger, history store) are
internal collaborators of PrivilegeUsageService, the only component external
callers use for consumption. The catalog, plan-limit and period-reset services
serve the administrative and scheduler surfaces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from privgate.core.context import BaseContext
from privgate.domains.privileges.types import (
    BucketKind,
    ConsumeResult,
    ResolvedGrant,
    UsageDecision,
    WindowCheck,
)
from privgate.models.privilege import Privilege
from privgate.schemas.plan_privilege import Grant, TimeBasedLimits, TimeBasedLimitsUpdate
from privgate.schemas.privilege import PrivilegeCreate, PrivilegeList, PrivilegeUpdate
from privgate.schemas.privilege_usage import UsageHistoryList, UsageHistoryRecord

# ---------------------------------------------------------------------------
# Engine components
# ---------------------------------------------------------------------------


@runtime_checkable
class PlanPrivilegeResolverProtocol(Protocol):
    """Maps (subscription, privilege name) to the grant in force. Read-only."""

    async def resolve(
        self, db: AsyncSession, subscription_id: UUID, privilege_name: str, now: datetime
    ) -> ResolvedGrant:
        """Resolve the effective grant, or the reason none applies."""
        ...


@runtime_checkable
class LimitEvaluatorProtocol(Protocol):
    """Checks daily, weekly and monthly sub-limits against recorded history."""

    async def check_time_windows(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        grant: Grant,
        requested_amount: int,
        now: datetime,
    ) -> WindowCheck:
        """Whether ``requested_amount`` more units fit in every configured window."""
        ...


@runtime_checkable
class UsageLedgerProtocol(Protocol):
    """Per-period counters with atomic check-and-increment."""

    async def get_remaining(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant, now: datetime
    ) -> int:
        """Units left in the current period."""
        ...

    async def lock_current_entry(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant, now: datetime
    ) -> None:
        """Hold the row lock of the current entry until the transaction ends."""
        ...

    async def try_consume(
        self, db: AsyncSession, subscription_id: UUID, grant: Grant, amount: int, now: datetime
    ) -> ConsumeResult:
        """Consume ``amount`` units if the total quota allows it. Does not commit."""
        ...


@runtime_checkable
class UsageHistoryStoreProtocol(Protocol):
    """Append-only usage log and the source of bucketed sums."""

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
        ...

    async def sum_for_bucket(
        self, db: AsyncSession, ledger_entry_id: UUID, bucket_kind: BucketKind, bucket_key: str
    ) -> int:
        """Total amount recorded for an entry in one bucket."""
        ...

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
        ...


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@runtime_checkable
class PrivilegeUsageServiceProtocol(Protocol):
    """Entry point for privilege consumption.

    Business denials come back as ``UsageDecision``; storage failures raise
    ``PrivilegeStorageError``.
    """

    async def get_remaining(
        self, db: AsyncSession, subscription_id: UUID, privilege_name: str, ctx: BaseContext
    ) -> int:
        """Units left in the current period, 0 when no grant resolves."""
        ...

    async def can_use(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        amount: int,
        ctx: BaseContext,
    ) -> UsageDecision:
        """Whether ``amount`` units could be consumed now. No side effects."""
        ...

    async def try_use(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        amount: int,
        ctx: BaseContext,
        note: Optional[str] = None,
    ) -> UsageDecision:
        """Consume ``amount`` units and record the event, or explain the denial."""
        ...

    async def use(
        self,
        db: AsyncSession,
        subscription_id: UUID,
        privilege_name: str,
        amount: int,
        ctx: BaseContext,
        note: Optional[str] = None,
    ) -> bool:
        """Consume ``amount`` units. Returns whether the use was recorded."""
        ...

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
        """A page of a subscription's usage history."""
        ...


@runtime_checkable
class PrivilegeCatalogServiceProtocol(Protocol):
    """Administrative CRUD over privilege definitions."""

    async def list(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
    ) -> PrivilegeList:
        """A filtered page of privileges."""
        ...

    async def list_types(self, db: AsyncSession) -> list[str]:
        """Distinct privilege types in the catalog."""
        ...

    async def get(self, db: AsyncSession, privilege_id: UUID) -> Privilege:
        """Get a privilege or raise PrivilegeNotFoundError."""
        ...

    async def create(
        self, db: AsyncSession, privilege_in: PrivilegeCreate, ctx: BaseContext
    ) -> Privilege:
        """Create a privilege with a unique name."""
        ...

    async def update(
        self,
        db: AsyncSession,
        privilege_id: UUID,
        privilege_in: PrivilegeUpdate,
        ctx: BaseContext,
    ) -> Privilege:
        """Update a privilege."""
        ...

    async def delete(self, db: AsyncSession, privilege_id: UUID, ctx: BaseContext) -> Privilege:
        """Soft-delete a privilege."""
        ...


@runtime_checkable
class PlanPrivilegeLimitsServiceProtocol(Protocol):
    """Reads and updates the time-based sub-limits of plan privileges."""

    async def list_for_plan(self, db: AsyncSession, plan_id: UUID) -> list[Grant]:
        """Grants of a plan whose catalog privilege is not deleted, by name."""
        ...

    async def get_limits(self, db: AsyncSession, plan_privilege_id: UUID) -> TimeBasedLimits:
        """Current sub-limits of a plan privilege."""
        ...

    async def update_limits(
        self,
        db: AsyncSession,
        plan_privilege_id: UUID,
        limits_in: TimeBasedLimitsUpdate,
        ctx: BaseContext,
    ) -> TimeBasedLimits:
        """Replace the sub-limits of a plan privilege."""
        ...


@runtime_checkable
class UsagePeriodResetServiceProtocol(Protocol):
    """Scheduler-driven sweep that rolls ledger entries whose period ended."""

    async def reset_expired_periods(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
        batch_size: Optional[int] = None,
    ) -> int:
        """Roll every expired entry. Returns how many were rolled."""
        ...
