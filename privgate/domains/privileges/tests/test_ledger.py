"""Unit tests for UsageLedger: remaining, conditional increment, period roll."""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from privgate.domains.privileges.tests.conftest import NOW, _make_grant
from privgate.domains.privileges.types import UNLIMITED


def _seed(fake_usage_repo, subscription_id, grant, used_value, **overrides):
    defaults = dict(
        subscription_id=subscription_id,
        plan_privilege_id=grant.id,
        used_value=used_value,
        allowed_value=grant.allowed_value,
        period_start=NOW - timedelta(days=10),
        period_end=NOW + timedelta(days=20),
    )
    defaults.update(overrides)
    return fake_usage_repo.seed_entry(**defaults)


class TestGetRemaining:
    @pytest.mark.asyncio
    async def test_disabled_is_zero(self, ledger, db, fake_usage_repo):
        grant = _make_grant(uuid4(), allowed_value=0)
        assert await ledger.get_remaining(db, uuid4(), grant, NOW) == 0
        assert fake_usage_repo.call_count("get_entry") == 0

    @pytest.mark.asyncio
    async def test_unlimited_is_sentinel(self, ledger, db):
        grant = _make_grant(uuid4(), allowed_value=-1)
        assert await ledger.get_remaining(db, uuid4(), grant, NOW) == UNLIMITED

    @pytest.mark.asyncio
    async def test_no_entry_is_full_quota(self, ledger, db):
        grant = _make_grant(uuid4(), allowed_value=5)
        assert await ledger.get_remaining(db, uuid4(), grant, NOW) == 5

    @pytest.mark.asyncio
    async def test_counts_used_units(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=5)
        _seed(fake_usage_repo, subscription_id, grant, used_value=2)

        assert await ledger.get_remaining(db, subscription_id, grant, NOW) == 3

    @pytest.mark.asyncio
    async def test_expired_period_is_full_quota_without_writing(
        self, ledger, db, fake_usage_repo
    ):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=5)
        _seed(
            fake_usage_repo,
            subscription_id,
            grant,
            used_value=5,
            period_start=NOW - timedelta(days=40),
            period_end=NOW - timedelta(days=10),
        )

        assert await ledger.get_remaining(db, subscription_id, grant, NOW) == 5
        assert fake_usage_repo.call_count("roll_period") == 0
        assert fake_usage_repo.entry(subscription_id, grant.id).used_value == 5

    @pytest.mark.asyncio
    async def test_snapshot_governs_the_current_period(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=10)
        _seed(fake_usage_repo, subscription_id, grant, used_value=1, allowed_value=3)

        assert await ledger.get_remaining(db, subscription_id, grant, NOW) == 2


class TestTryConsume:
    @pytest.mark.asyncio
    async def test_first_use_creates_entry(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=5, period_months=1)

        result = await ledger.try_consume(db, subscription_id, grant, 1, NOW)

        assert result.success
        assert result.remaining == 4
        entry = fake_usage_repo.entry(subscription_id, grant.id)
        assert result.ledger_entry_id == entry.id
        assert entry.used_value == 1
        assert entry.allowed_value == 5
        assert entry.period_start == NOW
        assert entry.period_end == datetime(2024, 4, 13, 10, 0, tzinfo=timezone.utc)
        assert entry.last_used_at == NOW

    @pytest.mark.asyncio
    async def test_refuses_partial_increment(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=5)
        _seed(fake_usage_repo, subscription_id, grant, used_value=4)

        result = await ledger.try_consume(db, subscription_id, grant, 2, NOW)

        assert not result.success
        assert result.remaining == 1
        assert fake_usage_repo.entry(subscription_id, grant.id).used_value == 4

    @pytest.mark.asyncio
    async def test_fills_exactly_to_the_cap(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=5)
        _seed(fake_usage_repo, subscription_id, grant, used_value=4)

        result = await ledger.try_consume(db, subscription_id, grant, 1, NOW)

        assert result.success
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_unlimited_increments_without_cap(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=-1)

        for _ in range(3):
            result = await ledger.try_consume(db, subscription_id, grant, 10, NOW)
            assert result.success
            assert result.remaining == UNLIMITED

        assert fake_usage_repo.entry(subscription_id, grant.id).used_value == 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize("allowed_value, amount", [(0, 1), (5, 0), (5, -1)])
    async def test_rejected_without_touching_storage(
        self, ledger, db, fake_usage_repo, allowed_value, amount
    ):
        grant = _make_grant(uuid4(), allowed_value=allowed_value)

        result = await ledger.try_consume(db, uuid4(), grant, amount, NOW)

        assert not result.success
        assert fake_usage_repo._calls == []

    @pytest.mark.asyncio
    async def test_rolls_expired_period_before_consuming(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=6)
        old_end = datetime(2024, 2, 1, tzinfo=timezone.utc)
        _seed(
            fake_usage_repo,
            subscription_id,
            grant,
            used_value=5,
            allowed_value=5,
            period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
            period_end=old_end,
        )

        result = await ledger.try_consume(db, subscription_id, grant, 1, NOW)

        assert result.success
        assert result.remaining == 5
        entry = fake_usage_repo.entry(subscription_id, grant.id)
        assert entry.used_value == 1
        assert entry.allowed_value == 6
        assert entry.period_start == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert entry.period_end == datetime(2024, 4, 1, tzinfo=timezone.utc)
        assert entry.reset_at == NOW

    @pytest.mark.asyncio
    async def test_snapshot_caps_consumption(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=10)
        _seed(fake_usage_repo, subscription_id, grant, used_value=3, allowed_value=3)

        result = await ledger.try_consume(db, subscription_id, grant, 1, NOW)

        assert not result.success
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_snapshot_taken_while_unlimited_uses_grant_value(
        self, ledger, db, fake_usage_repo
    ):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=4)
        _seed(fake_usage_repo, subscription_id, grant, used_value=3, allowed_value=-1)

        first = await ledger.try_consume(db, subscription_id, grant, 1, NOW)
        second = await ledger.try_consume(db, subscription_id, grant, 1, NOW)

        assert first.success
        assert first.remaining == 0
        assert not second.success

    @pytest.mark.asyncio
    async def test_concurrent_consumers_never_overdraw(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=1)

        results = await asyncio.gather(
            *(ledger.try_consume(db, subscription_id, grant, 1, NOW) for _ in range(10))
        )

        assert sum(1 for r in results if r.success) == 1
        assert all(r.remaining == 0 for r in results)
        assert fake_usage_repo.entry(subscription_id, grant.id).used_value == 1


class TestLockCurrentEntry:
    @pytest.mark.asyncio
    async def test_creates_then_locks_the_entry(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=5, daily_limit=1)

        await ledger.lock_current_entry(db, subscription_id, grant, NOW)

        entry = fake_usage_repo.entry(subscription_id, grant.id)
        assert entry.used_value == 0
        assert fake_usage_repo._calls[-1] == ("lock_entry", entry.id)

    @pytest.mark.asyncio
    async def test_locks_the_rolled_entry(self, ledger, db, fake_usage_repo):
        subscription_id = uuid4()
        grant = _make_grant(uuid4(), allowed_value=5, daily_limit=1)
        _seed(
            fake_usage_repo,
            subscription_id,
            grant,
            4,
            period_start=NOW - timedelta(days=40),
            period_end=NOW - timedelta(days=10),
        )

        await ledger.lock_current_entry(db, subscription_id, grant, NOW)

        entry = fake_usage_repo.entry(subscription_id, grant.id)
        assert entry.used_value == 0
        assert entry.period_end > NOW
        assert fake_usage_repo.call_count("lock_entry") == 1
