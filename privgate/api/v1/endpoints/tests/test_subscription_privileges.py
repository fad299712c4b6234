"""API tests for subscription privilege endpoints.

Real services run against in-memory fakes. Denials come back as 200 with
``allowed: false``; storage failures map to 503 through the middleware.
"""

from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from privgate.domains.privileges.tests.conftest import PRIVILEGE_NAME, _seed_plan


@pytest.fixture
def seed(fake_subscription_repo, fake_plan_privilege_repo):
    def _seed(**grant_overrides):
        return _seed_plan(fake_subscription_repo, fake_plan_privilege_repo, **grant_overrides)

    return _seed


def _url(subscription_id, action: str, name: str = PRIVILEGE_NAME) -> str:
    return f"/subscriptions/{subscription_id}/privileges/{name}/{action}"


class TestRemaining:
    @pytest.mark.asyncio
    async def test_finite(self, client, seed):
        subscription, _ = seed(allowed_value=5)

        response = await client.get(_url(subscription.id, "remaining"))

        assert response.status_code == 200
        assert response.json() == {
            "subscription_id": str(subscription.id),
            "privilege_name": PRIVILEGE_NAME,
            "remaining": 5,
            "unlimited": False,
        }

    @pytest.mark.asyncio
    async def test_unlimited(self, client, seed):
        subscription, _ = seed(allowed_value=-1)

        data = (await client.get(_url(subscription.id, "remaining"))).json()

        assert data["remaining"] == 2147483647
        assert data["unlimited"] is True

    @pytest.mark.asyncio
    async def test_unknown_subscription_is_zero(self, client):
        data = (await client.get(_url(uuid4(), "remaining"))).json()
        assert data["remaining"] == 0

    @pytest.mark.asyncio
    async def test_invalid_subscription_id(self, client):
        response = await client.get(_url("not-a-uuid", "remaining"))
        assert response.status_code == 422
        assert "errors" in response.json()


class TestCanUse:
    @pytest.mark.asyncio
    async def test_allowed(self, client, seed, fake_usage_history_repo):
        subscription, _ = seed(allowed_value=5)

        response = await client.get(_url(subscription.id, "can-use"), params={"amount": 2})

        assert response.status_code == 200
        assert response.json() == {
            "allowed": True,
            "reason": None,
            "message": None,
            "remaining": 5,
        }
        assert fake_usage_history_repo.records == []

    @pytest.mark.asyncio
    async def test_denied(self, client, seed):
        subscription, _ = seed(allowed_value=0)

        data = (await client.get(_url(subscription.id, "can-use"))).json()

        assert data["allowed"] is False
        assert data["reason"] == "grant_disabled"
        assert data["message"] == "Teleconsultation is not available in your plan"

    @pytest.mark.asyncio
    async def test_amount_above_int32_is_rejected(self, client, seed):
        subscription, _ = seed(allowed_value=-1)

        response = await client.get(
            _url(subscription.id, "can-use"), params={"amount": 2**31}
        )

        assert response.status_code == 422
        assert "errors" in response.json()


class TestUse:
    @pytest.mark.asyncio
    async def test_use_records_history(self, client, seed, fake_usage_history_repo):
        subscription, _ = seed(allowed_value=5)

        response = await client.post(
            _url(subscription.id, "use"), json={"amount": 2, "note": "follow-up"}
        )

        assert response.status_code == 200
        assert response.json()["allowed"] is True
        assert response.json()["remaining"] == 3
        [record] = fake_usage_history_repo.records
        assert record.amount == 2
        assert record.note == "follow-up"
        assert record.created_by == "test-actor"

    @pytest.mark.asyncio
    async def test_amount_defaults_to_one(self, client, seed):
        subscription, _ = seed(allowed_value=5)

        response = await client.post(_url(subscription.id, "use"), json={})

        assert response.json()["remaining"] == 4

    @pytest.mark.asyncio
    async def test_denial_is_200(self, client, seed):
        subscription, _ = seed(allowed_value=1)
        await client.post(_url(subscription.id, "use"), json={"amount": 1})

        response = await client.post(_url(subscription.id, "use"), json={"amount": 1})

        assert response.status_code == 200
        assert response.json() == {
            "allowed": False,
            "reason": "quota_exhausted",
            "message": "No Teleconsultation remaining in your plan",
            "remaining": 0,
        }

    @pytest.mark.asyncio
    async def test_daily_limit(self, client, seed):
        subscription, _ = seed(allowed_value=10, daily_limit=1)
        await client.post(_url(subscription.id, "use"), json={})

        data = (await client.post(_url(subscription.id, "use"), json={})).json()

        assert data["reason"] == "daily_limit_exceeded"
        assert data["message"] == "Daily limit reached for Teleconsultation"
        assert data["remaining"] == 9

    @pytest.mark.asyncio
    async def test_invalid_amount(self, client, seed):
        subscription, _ = seed()

        data = (await client.post(_url(subscription.id, "use"), json={"amount": 0})).json()

        assert data["reason"] == "invalid_amount"

    @pytest.mark.asyncio
    async def test_oversized_amount_is_422(self, client, seed, fake_usage_history_repo):
        subscription, _ = seed(allowed_value=-1)

        response = await client.post(_url(subscription.id, "use"), json={"amount": 2**63})

        assert response.status_code == 422
        assert fake_usage_history_repo.records == []

    @pytest.mark.asyncio
    async def test_storage_failure_is_503(self, client, seed, fake_subscription_repo):
        subscription, _ = seed()
        fake_subscription_repo.error = OperationalError(
            "SELECT", {}, ConnectionError("connection refused")
        )

        response = await client.post(_url(subscription.id, "use"), json={"amount": 1})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert "use" in response.json()["detail"]


class TestUsageHistory:
    @pytest.mark.asyncio
    async def test_paginated(self, client, seed):
        subscription, _ = seed(allowed_value=10)
        for amount in (1, 2, 3):
            await client.post(_url(subscription.id, "use"), json={"amount": amount})

        response = await client.get(
            f"/subscriptions/{subscription.id}/privileges/usage-history",
            params={"page": 1, "page_size": 2},
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["meta"] == {
            "total_records": 3,
            "current_page": 1,
            "page_size": 2,
            "total_pages": 2,
        }

    @pytest.mark.asyncio
    async def test_unknown_subscription_is_404(self, client):
        response = await client.get(f"/subscriptions/{uuid4()}/privileges/usage-history")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_page_size_is_bounded(self, client, seed):
        subscription, _ = seed()

        response = await client.get(
            f"/subscriptions/{subscription.id}/privileges/usage-history",
            params={"page_size": 101},
        )

        assert response.status_code == 422
        assert response.json()["errors"][0]["query.page_size"]
