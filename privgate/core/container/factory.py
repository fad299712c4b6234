"""Container factory.

Builds the production container from settings. Engine components are wired
bottom-up: storage (history store, ledger) first, then the limit evaluator
and resolver, then the services that compose them.
"""

from prometheus_client import CollectorRegistry

from privgate.adapters.metrics import PrometheusMetricsRenderer, PrometheusPrivilegeUsageMetrics
from privgate.core.config import Settings
from privgate.core.container.container import Container
from privgate.domains.privileges.catalog import PrivilegeCatalogService
from privgate.domains.privileges.history import UsageHistoryStore
from privgate.domains.privileges.ledger import UsageLedger
from privgate.domains.privileges.limit_evaluator import LimitEvaluator
from privgate.domains.privileges.plan_limits import PlanPrivilegeLimitsService
from privgate.domains.privileges.repository import (
    PlanPrivilegeRepository,
    PrivilegeRepository,
    PrivilegeUsageHistoryRepository,
    PrivilegeUsageRepository,
    SubscriptionRepository,
)
from privgate.domains.privileges.reset import UsagePeriodResetService
from privgate.domains.privileges.resolver import PlanPrivilegeResolver
from privgate.domains.privileges.service import PrivilegeUsageService


def create_container(settings: Settings) -> Container:
    """Build container with production implementations.

    This is the single source of truth for dependency wiring.

    Args:
        settings: Application settings (from core/config)

    Returns:
        Fully constructed Container ready for use
    """
    # -----------------------------------------------------------------
    # Repositories
    # -----------------------------------------------------------------
    subscription_repo = SubscriptionRepository()
    plan_privilege_repo = PlanPrivilegeRepository()
    privilege_repo = PrivilegeRepository()
    usage_repo = PrivilegeUsageRepository()
    usage_history_repo = PrivilegeUsageHistoryRepository()

    # -----------------------------------------------------------------
    # Metrics (Prometheus adapters on one shared registry)
    # -----------------------------------------------------------------
    registry = CollectorRegistry()
    usage_metrics = PrometheusPrivilegeUsageMetrics(registry=registry)
    metrics_renderer = PrometheusMetricsRenderer(registry=registry)

    # -----------------------------------------------------------------
    # Usage engine
    # -----------------------------------------------------------------
    history = UsageHistoryStore(usage_history_repo)
    ledger = UsageLedger(usage_repo)
    limit_evaluator = LimitEvaluator(usage_repo, history)
    resolver = PlanPrivilegeResolver(subscription_repo, plan_privilege_repo)

    privilege_usage_service = PrivilegeUsageService(
        resolver=resolver,
        limit_evaluator=limit_evaluator,
        ledger=ledger,
        history=history,
        subscription_repo=subscription_repo,
        metrics=usage_metrics,
    )

    return Container(
        privilege_usage_service=privilege_usage_service,
        privilege_catalog_service=PrivilegeCatalogService(privilege_repo),
        plan_privilege_limits_service=PlanPrivilegeLimitsService(plan_privilege_repo),
        usage_period_reset_service=UsagePeriodResetService(
            usage_repo, batch_size=settings.USAGE_PERIOD_RESET_BATCH_SIZE
        ),
        subscription_repo=subscription_repo,
        plan_privilege_repo=plan_privilege_repo,
        privilege_repo=privilege_repo,
        usage_repo=usage_repo,
        usage_history_repo=usage_history_repo,
        usage_metrics=usage_metrics,
        metrics_renderer=metrics_renderer,
    )
