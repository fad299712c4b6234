"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before both testpaths (tests/ and privgate/),
making its fixtures available to centralized tests AND colocated domain tests.
"""

import os

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables: must be set before any privgate module import
# Uses setdefault so real env vars (CI) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")
os.environ.setdefault("RUN_ALEMBIC_MIGRATIONS", "false")


# ---------------------------------------------------------------------------
# Shared fake fixtures: individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_subscription_repo():
    """Fake SubscriptionRepository backed by a dict."""
    from privgate.domains.privileges.fakes import FakeSubscriptionRepository

    return FakeSubscriptionRepository()


@pytest.fixture
def fake_plan_privilege_repo():
    """Fake PlanPrivilegeRepository holding grants per plan."""
    from privgate.domains.privileges.fakes import FakePlanPrivilegeRepository

    return FakePlanPrivilegeRepository()


@pytest.fixture
def fake_privilege_repo():
    """Fake PrivilegeRepository holding catalog rows."""
    from privgate.domains.privileges.fakes import FakePrivilegeRepository

    return FakePrivilegeRepository()


@pytest.fixture
def fake_usage_repo():
    """Fake PrivilegeUsageRepository with conditional writes."""
    from privgate.domains.privileges.fakes import FakePrivilegeUsageRepository

    return FakePrivilegeUsageRepository()


@pytest.fixture
def fake_usage_history_repo(fake_usage_repo):
    """Fake PrivilegeUsageHistoryRepository linked to the fake ledger."""
    from privgate.domains.privileges.fakes import FakePrivilegeUsageHistoryRepository

    return FakePrivilegeUsageHistoryRepository(usage_repo=fake_usage_repo)


@pytest.fixture
def fake_usage_metrics():
    """Fake PrivilegeUsageMetrics that records decisions."""
    from privgate.adapters.metrics import FakePrivilegeUsageMetrics

    return FakePrivilegeUsageMetrics()


@pytest.fixture
def fake_metrics_renderer():
    """Fake MetricsRenderer with canned output."""
    from privgate.adapters.metrics import FakeMetricsRenderer

    return FakeMetricsRenderer()


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------


@pytest.fixture
def test_container(
    fake_subscription_repo,
    fake_plan_privilege_repo,
    fake_privilege_repo,
    fake_usage_repo,
    fake_usage_history_repo,
    fake_usage_metrics,
    fake_metrics_renderer,
):
    """A Container with real services wired to in-memory fakes.

    Tests can seed the fakes and assert on their state; the services under
    test are the production implementations.
    """
    from privgate.core.container import Container
    from privgate.domains.privileges.catalog import PrivilegeCatalogService
    from privgate.domains.privileges.history import UsageHistoryStore
    from privgate.domains.privileges.ledger import UsageLedger
    from privgate.domains.privileges.limit_evaluator import LimitEvaluator
    from privgate.domains.privileges.plan_limits import PlanPrivilegeLimitsService
    from privgate.domains.privileges.reset import UsagePeriodResetService
    from privgate.domains.privileges.resolver import PlanPrivilegeResolver
    from privgate.domains.privileges.service import PrivilegeUsageService

    history = UsageHistoryStore(fake_usage_history_repo)
    ledger = UsageLedger(fake_usage_repo)

    return Container(
        privilege_usage_service=PrivilegeUsageService(
            resolver=PlanPrivilegeResolver(fake_subscription_repo, fake_plan_privilege_repo),
            limit_evaluator=LimitEvaluator(fake_usage_repo, history),
            ledger=ledger,
            history=history,
            subscription_repo=fake_subscription_repo,
            metrics=fake_usage_metrics,
        ),
        privilege_catalog_service=PrivilegeCatalogService(fake_privilege_repo),
        plan_privilege_limits_service=PlanPrivilegeLimitsService(fake_plan_privilege_repo),
        usage_period_reset_service=UsagePeriodResetService(fake_usage_repo, batch_size=50),
        subscription_repo=fake_subscription_repo,
        plan_privilege_repo=fake_plan_privilege_repo,
        privilege_repo=fake_privilege_repo,
        usage_repo=fake_usage_repo,
        usage_history_repo=fake_usage_history_repo,
        usage_metrics=fake_usage_metrics,
        metrics_renderer=fake_metrics_renderer,
    )
