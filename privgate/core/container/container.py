"""Dependency Injection Container.

The container is a simple immutable dataclass that holds protocol implementations.
It has no construction logic; that belongs in the factory.
"""

from dataclasses import dataclass, replace
from typing import Any

from privgate.core.protocols import MetricsRenderer, PrivilegeUsageMetrics
from privgate.domains.privileges.protocols import (
    PlanPrivilegeLimitsServiceProtocol,
    PrivilegeCatalogServiceProtocol,
    PrivilegeUsageServiceProtocol,
    UsagePeriodResetServiceProtocol,
)
from privgate.domains.privileges.repository import (
    PlanPrivilegeRepositoryProtocol,
    PrivilegeRepositoryProtocol,
    PrivilegeUsageHistoryRepositoryProtocol,
    PrivilegeUsageRepositoryProtocol,
    SubscriptionRepositoryProtocol,
)


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: use the global container built by the factory
        from privgate.core.container import container
        await container.privilege_usage_service.use(db, sub_id, "Teleconsultation", 1, ctx)

        # Testing: construct directly with fakes (see conftest.py for the
        # full test_container fixture)
        test_container = Container(privilege_usage_service=..., ...)

        # FastAPI endpoints: use Inject() to pull individual protocols
        from privgate.api.deps import Inject
        async def my_endpoint(svc: PrivilegeUsageServiceProtocol = Inject(
            PrivilegeUsageServiceProtocol
        )):
            ...
    """

    # Privilege consumption: the only entry point for use/can-use/remaining
    privilege_usage_service: PrivilegeUsageServiceProtocol

    # Administrative services
    privilege_catalog_service: PrivilegeCatalogServiceProtocol
    plan_privilege_limits_service: PlanPrivilegeLimitsServiceProtocol

    # Scheduler-driven period roll
    usage_period_reset_service: UsagePeriodResetServiceProtocol

    # Repository protocols (thin wrappers around crud singletons)
    subscription_repo: SubscriptionRepositoryProtocol
    plan_privilege_repo: PlanPrivilegeRepositoryProtocol
    privilege_repo: PrivilegeRepositoryProtocol
    usage_repo: PrivilegeUsageRepositoryProtocol
    usage_history_repo: PrivilegeUsageHistoryRepositoryProtocol

    # Metrics
    usage_metrics: PrivilegeUsageMetrics
    metrics_renderer: MetricsRenderer

    # -----------------------------------------------------------------
    # Convenience methods
    # -----------------------------------------------------------------

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for partial overrides in tests:

            modified = container.replace(usage_metrics=FakePrivilegeUsageMetrics())
        """
        return replace(self, **changes)
