"""Fake implementations for privileges domain testing."""

from privgate.domains.privileges.fakes.repository import (
    FakePlanPrivilegeRepository,
    FakePrivilegeRepository,
    FakePrivilegeUsageHistoryRepository,
    FakePrivilegeUsageRepository,
    FakeSubscriptionRepository,
)

__all__ = [
    "FakePlanPrivilegeRepository",
    "FakePrivilegeRepository",
    "FakePrivilegeUsageHistoryRepository",
    "FakePrivilegeUsageRepository",
    "FakeSubscriptionRepository",
]
