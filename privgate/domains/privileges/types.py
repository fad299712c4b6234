"""Privilege domain types and pure business logic.

Constants, enums, and pure functions used by the privilege services. No IO,
everything here is deterministic.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta

from privgate.schemas.plan_privilege import Grant

# Remaining-quota sentinel reported for unlimited grants.
UNLIMITED = 2**31 - 1


class DenialReason(str, Enum):
    """Why a usage request was denied."""

    SUBSCRIPTION_NOT_ELIGIBLE = "subscription_not_eligible"
    GRANT_NOT_FOUND = "grant_not_found"
    GRANT_DISABLED = "grant_disabled"
    INVALID_AMOUNT = "invalid_amount"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    WEEKLY_LIMIT_EXCEEDED = "weekly_limit_exceeded"
    MONTHLY_LIMIT_EXCEEDED = "monthly_limit_exceeded"
    QUOTA_EXHAUSTED = "quota_exhausted"


class BucketKind(str, Enum):
    """Calendar window a time-based limit applies to."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# Order in which time-based limits are evaluated.
WINDOW_ORDER: tuple[BucketKind, ...] = (BucketKind.DAY, BucketKind.WEEK, BucketKind.MONTH)

WINDOW_DENIALS: dict[BucketKind, DenialReason] = {
    BucketKind.DAY: DenialReason.DAILY_LIMIT_EXCEEDED,
    BucketKind.WEEK: DenialReason.WEEKLY_LIMIT_EXCEEDED,
    BucketKind.MONTH: DenialReason.MONTHLY_LIMIT_EXCEEDED,
}

_WINDOW_LABELS: dict[BucketKind, str] = {
    BucketKind.DAY: "Daily",
    BucketKind.WEEK: "Weekly",
    BucketKind.MONTH: "Monthly",
}


@dataclass(frozen=True)
class UsageDecision:
    """Outcome of a can-use check or a use attempt.

    ``remaining`` is the total quota left after the call (``UNLIMITED`` for
    unlimited grants, 0 when no grant resolves).
    """

    allowed: bool
    remaining: int
    reason: Optional[DenialReason] = None
    message: Optional[str] = None

    @classmethod
    def allow(cls, remaining: int) -> "UsageDecision":
        return cls(allowed=True, remaining=remaining)

    @classmethod
    def deny(
        cls, reason: DenialReason, privilege_name: str, remaining: int = 0
    ) -> "UsageDecision":
        return cls(
            allowed=False,
            remaining=remaining,
            reason=reason,
            message=denial_message(reason, privilege_name),
        )


@dataclass(frozen=True)
class ResolvedGrant:
    """Result of grant resolution: a grant, or the reason none applies."""

    grant: Optional[Grant] = None
    reason: Optional[DenialReason] = None

    @property
    def found(self) -> bool:
        return self.grant is not None


@dataclass(frozen=True)
class WindowCheck:
    """Result of evaluating the time-based limits of a grant."""

    allowed: bool
    window: Optional[BucketKind] = None
    used: int = 0
    limit: Optional[int] = None

    @property
    def reason(self) -> Optional[DenialReason]:
        return WINDOW_DENIALS[self.window] if self.window is not None else None


@dataclass(frozen=True)
class ConsumeResult:
    """Result of a ledger consumption attempt."""

    success: bool
    ledger_entry_id: Optional[UUID] = None
    remaining: int = 0


@dataclass(frozen=True)
class BucketKeys:
    """Day, week and month bucket keys of one instant."""

    day: str
    week: str
    month: str

    def for_kind(self, kind: BucketKind) -> str:
        return getattr(self, kind.value)


def bucket_keys(at: datetime) -> BucketKeys:
    """Bucket keys of ``at`` (expected in UTC).

    Weeks are ISO weeks: Monday-aligned, numbered within the ISO year, so the
    first days of January can belong to the last week of the previous year.
    """
    iso_year, iso_week, _ = at.isocalendar()
    return BucketKeys(
        day=at.strftime("%Y-%m-%d"),
        week=f"{iso_year:04d}-W{iso_week:02d}",
        month=at.strftime("%Y-%m"),
    )


def time_limit_for(grant: Grant, kind: BucketKind) -> Optional[int]:
    """The configured limit of ``grant`` for a window, or None."""
    return {
        BucketKind.DAY: grant.daily_limit,
        BucketKind.WEEK: grant.weekly_limit,
        BucketKind.MONTH: grant.monthly_limit,
    }[kind]


def period_bounds(start: datetime, period_months: int) -> tuple[datetime, datetime]:
    """A usage period of ``period_months`` calendar months starting at ``start``."""
    return start, start + relativedelta(months=period_months)


def next_period(
    period_end: datetime, period_months: int, now: datetime
) -> tuple[datetime, datetime]:
    """The period containing ``now`` that follows a period ending at ``period_end``.

    Periods stay contiguous: a subscription idle for several periods lands on the
    one that contains ``now`` rather than starting a new one at ``now``.
    """
    start = period_end
    end = period_end + relativedelta(months=period_months)
    steps = 1
    while end <= now:
        steps += 1
        start = end
        end = period_end + relativedelta(months=period_months * steps)
    return start, end


def denial_message(reason: DenialReason, privilege_name: str) -> str:
    """User-facing explanation of a denial."""
    if reason == DenialReason.SUBSCRIPTION_NOT_ELIGIBLE:
        return "Your subscription is not active"
    if reason == DenialReason.GRANT_NOT_FOUND:
        return f"{privilege_name} is not included in your plan"
    if reason == DenialReason.GRANT_DISABLED:
        return f"{privilege_name} is not available in your plan"
    if reason == DenialReason.INVALID_AMOUNT:
        return f"Amount must be between 1 and {UNLIMITED}"
    if reason == DenialReason.QUOTA_EXHAUSTED:
        return f"No {privilege_name} remaining in your plan"
    for kind, window_reason in WINDOW_DENIALS.items():
        if reason == window_reason:
            return f"{_WINDOW_LABELS[kind]} limit reached for {privilege_name}"
    return f"{privilege_name} cannot be used right now"


def effective_cap(grant: Grant, snapshot: int) -> int:
    """Cap in force for a finite grant.

    The period's snapshot governs, unless it was taken while the grant was
    unlimited or disabled; then the grant's current value applies.
    """
    return snapshot if snapshot > 0 else grant.allowed_value


def remaining_for(grant: Grant, used_value: int, snapshot: int) -> int:
    """Remaining units given a counter and its allowance snapshot."""
    if grant.is_disabled:
        return 0
    if grant.is_unlimited:
        return UNLIMITED
    return max(0, effective_cap(grant, snapshot) - used_value)


@dataclass(frozen=True)
class ExpiredEntry:
    """A ledger entry past its period end, with the grant values to roll it with."""

    entry_id: UUID
    subscription_id: UUID
    period_end: datetime
    allowed_value: int
    period_months: int
