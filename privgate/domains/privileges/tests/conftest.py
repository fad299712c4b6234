"""Privilege domain test fixtures and helpers.

Services under test are the production implementations wired to the
in-memory fakes from the root conftest.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from privgate.core.logging import logger
from privgate.domains.privileges.history import UsageHistoryStore
from privgate.domains.privileges.ledger import UsageLedger
from privgate.domains.privileges.limit_evaluator import LimitEvaluator
from privgate.domains.privileges.resolver import PlanPrivilegeResolver
from privgate.models.plan_privilege import PlanPrivilege
from privgate.models.privilege import Privilege
from privgate.schemas.plan_privilege import Grant
from privgate.schemas.subscription import Subscription

# Wednesday
NOW = datetime(2024, 3, 13, 10, 0, tzinfo=timezone.utc)
PRIVILEGE_NAME = "Teleconsultation"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_ctx(actor: str = "test-actor"):
    """Build a minimal ApiContext for tests."""
    from privgate.api.context import ApiContext

    return ApiContext(
        actor=actor,
        request_id="test-req-001",
        logger=logger.with_context(request_id="test-req-001"),
    )


def _make_subscription(
    plan_id: Optional[UUID] = None, status: str = "active", **overrides: Any
) -> Subscription:
    return Subscription(
        id=overrides.pop("id", uuid4()),
        plan_id=plan_id or uuid4(),
        status=status,
        **overrides,
    )


def _make_grant(
    plan_id: UUID,
    privilege_name: str = PRIVILEGE_NAME,
    allowed_value: int = 5,
    **overrides: Any,
) -> Grant:
    defaults = dict(
        id=uuid4(),
        plan_id=plan_id,
        privilege_id=uuid4(),
        privilege_name=privilege_name,
        allowed_value=allowed_value,
        period_months=1,
    )
    defaults.update(overrides)
    return Grant(**defaults)


def _make_privilege_model(
    name: str = PRIVILEGE_NAME, is_active: bool = True, **overrides: Any
) -> Privilege:
    defaults = dict(
        id=uuid4(),
        created_at=NOW,
        modified_at=NOW,
        name=name,
        description=f"{name} privilege",
        privilege_type="consultation",
        is_active=is_active,
        is_deleted=False,
    )
    defaults.update(overrides)
    return Privilege(**defaults)


def _make_plan_privilege_model(
    privilege: Optional[Privilege] = None, value: int = 5, **overrides: Any
) -> PlanPrivilege:
    privilege = privilege or _make_privilege_model()
    defaults = dict(
        id=uuid4(),
        created_at=NOW,
        modified_at=NOW,
        plan_id=uuid4(),
        privilege_id=privilege.id,
        value=value,
        period_months=1,
        is_active=True,
        daily_limit=None,
        weekly_limit=None,
        monthly_limit=None,
        privilege=privilege,
    )
    defaults.update(overrides)
    return PlanPrivilege(**defaults)


def _seed_plan(
    subscription_repo, plan_privilege_repo, status: str = "active", **grant_overrides: Any
) -> tuple[Subscription, Grant]:
    """Seed one subscription whose plan grants one privilege."""
    subscription = _make_subscription(status=status)
    grant = _make_grant(subscription.plan_id, **grant_overrides)
    subscription_repo.seed(subscription)
    plan_privilege_repo.seed_grant(grant)
    return subscription, grant


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db():
    """Stand-in session; fakes never touch it, the unit of work commits on it."""
    return AsyncMock()


@pytest.fixture
def ctx():
    return _make_ctx()


@pytest.fixture
def history_store(fake_usage_history_repo):
    return UsageHistoryStore(fake_usage_history_repo)


@pytest.fixture
def ledger(fake_usage_repo):
    return UsageLedger(fake_usage_repo)


@pytest.fixture
def limit_evaluator(fake_usage_repo, history_store):
    return LimitEvaluator(fake_usage_repo, history_store)


@pytest.fixture
def resolver(fake_subscription_repo, fake_plan_privilege_repo):
    return PlanPrivilegeResolver(fake_subscription_repo, fake_plan_privilege_repo)


@pytest.fixture
def usage_service(test_container):
    return test_container.privilege_usage_service


@pytest.fixture
def catalog_service(test_container):
    return test_container.privilege_catalog_service


@pytest.fixture
def limits_service(test_container):
    return test_container.plan_privilege_limits_service


@pytest.fixture
def reset_service(test_container):
    return test_container.usage_period_reset_service
