"""Schemas for the application."""

from .health import HealthResponse
from .pagination import PaginationMeta
from .plan_privilege import Grant, TimeBasedLimits, TimeBasedLimitsUpdate
from .privilege import Privilege, PrivilegeCreate, PrivilegeList, PrivilegeUpdate
from .privilege_usage import (
    RemainingResponse,
    UsageDecisionResponse,
    UsageHistoryList,
    UsageHistoryRecord,
    UsageLedgerEntry,
    UseRequest,
)
from .subscription import ELIGIBLE_STATUSES, Subscription, SubscriptionStatus

__all__ = [
    "ELIGIBLE_STATUSES",
    "Grant",
    "HealthResponse",
    "PaginationMeta",
    "Privilege",
    "PrivilegeCreate",
    "PrivilegeList",
    "PrivilegeUpdate",
    "RemainingResponse",
    "Subscription",
    "SubscriptionStatus",
    "TimeBasedLimits",
    "TimeBasedLimitsUpdate",
    "UsageDecisionResponse",
    "UsageHistoryList",
    "UsageHistoryRecord",
    "UsageLedgerEntry",
    "UseRequest",
]
