"""Unit tests for UsageHistoryStore."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from privgate.domains.privileges.tests.conftest import NOW
from privgate.domains.privileges.types import BucketKind


class TestAppend:
    @pytest.mark.asyncio
    async def test_stamps_bucket_keys(self, history_store, db, fake_usage_history_repo):
        record = await history_store.append(db, uuid4(), 2, NOW, note="video call", created_by="u1")

        assert record.amount == 2
        assert record.day_bucket == "2024-03-13"
        assert record.week_bucket == "2024-W11"
        assert record.month_bucket == "2024-03"
        assert record.note == "video call"
        assert record.created_by == "u1"
        assert fake_usage_history_repo.records == [record]

    @pytest.mark.asyncio
    async def test_buckets_are_computed_in_utc(self, history_store, db):
        # Monday 01:00 at UTC+2 is still Sunday in UTC
        local = datetime(2024, 3, 18, 1, 0, tzinfo=timezone(timedelta(hours=2)))

        record = await history_store.append(db, uuid4(), 1, local)

        assert record.used_at == datetime(2024, 3, 17, 23, 0, tzinfo=timezone.utc)
        assert record.day_bucket == "2024-03-17"
        assert record.week_bucket == "2024-W11"

    @pytest.mark.asyncio
    async def test_naive_timestamps_are_treated_as_utc(self, history_store, db):
        record = await history_store.append(db, uuid4(), 1, datetime(2024, 3, 18, 0, 0, 1))

        assert record.used_at.tzinfo == timezone.utc
        assert record.week_bucket == "2024-W12"


class TestSumForBucket:
    @pytest.mark.asyncio
    async def test_sums_only_the_requested_bucket(self, history_store, db):
        entry_id = uuid4()
        await history_store.append(db, entry_id, 2, NOW)
        await history_store.append(db, entry_id, 3, NOW - timedelta(days=1))
        await history_store.append(db, uuid4(), 7, NOW)

        day = await history_store.sum_for_bucket(db, entry_id, BucketKind.DAY, "2024-03-13")
        week = await history_store.sum_for_bucket(db, entry_id, BucketKind.WEEK, "2024-W11")

        assert day == 2
        assert week == 5


class TestListForSubscription:
    @pytest.mark.asyncio
    async def test_pages_newest_first(self, history_store, db, fake_usage_history_repo):
        subscription_id = uuid4()
        entry_id = uuid4()
        fake_usage_history_repo.link(entry_id, subscription_id)
        for hours in range(5):
            await history_store.append(db, entry_id, 1, NOW - timedelta(hours=hours))
        other_entry = uuid4()
        fake_usage_history_repo.link(other_entry, uuid4())
        await history_store.append(db, other_entry, 1, NOW)

        page = await history_store.list_for_subscription(db, subscription_id, page=1, page_size=2)

        assert [r.used_at for r in page.data] == [NOW, NOW - timedelta(hours=1)]
        assert page.meta.total_records == 5
        assert page.meta.total_pages == 3
        assert page.meta.current_page == 1

        last = await history_store.list_for_subscription(db, subscription_id, page=3, page_size=2)
        assert [r.used_at for r in last.data] == [NOW - timedelta(hours=4)]

    @pytest.mark.asyncio
    async def test_time_range_is_half_open(self, history_store, db, fake_usage_history_repo):
        subscription_id = uuid4()
        entry_id = uuid4()
        fake_usage_history_repo.link(entry_id, subscription_id)
        for days in range(3):
            await history_store.append(db, entry_id, 1, NOW - timedelta(days=days))

        page = await history_store.list_for_subscription(
            db,
            subscription_id,
            page=1,
            page_size=10,
            start=NOW - timedelta(days=1),
            end=NOW,
        )

        assert [r.used_at for r in page.data] == [NOW - timedelta(days=1)]
        assert page.meta.total_records == 1
