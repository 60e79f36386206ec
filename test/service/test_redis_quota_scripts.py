"""
Tests for the Redis quota store running its Lua scripts on an in-process Redis.
"""

import asyncio
from datetime import timedelta

import fakeredis
import pytest

from metered_paywall.service.quota_store.redis_quota_store import RedisQuotaStore

VISITOR = "7d0f6f0c-2a6e-4c1e-9d43-5b1a8e2f9c10"


@pytest.fixture
def redis_client() -> fakeredis.FakeAsyncRedis:
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture
def store(redis_client: fakeredis.FakeAsyncRedis, clock) -> RedisQuotaStore:
    return RedisQuotaStore(
        redis_client=redis_client,
        reset_period=lambda: timedelta(days=30),
        timeout_seconds=5.0,
        clock=clock,
    )


async def test_distinct_views_get_positions_and_rereads_are_deduplicated(
    store: RedisQuotaStore, clock
) -> None:
    # Act
    await store.record_view(VISITOR, "article-a")
    await store.record_view(VISITOR, "article-b")
    record = await store.record_view(VISITOR, "article-a")

    # Assert
    assert not record.degraded
    assert dict(record.viewed_content_ids) == {"article-a": 1, "article-b": 2}
    assert record.window_started_at == clock.now
    assert await store.current_count(VISITOR) == 2
    assert await store.has_viewed(VISITOR, "article-b")
    assert not await store.has_viewed(VISITOR, "article-c")


async def test_window_stays_open_until_reset_period(store: RedisQuotaStore, clock) -> None:
    await store.record_view(VISITOR, "article-a")

    clock.advance(days=29, hours=23)

    assert await store.current_count(VISITOR) == 1


async def test_expired_window_resets_views_and_blocked_count(
    store: RedisQuotaStore, clock
) -> None:
    # Arrange
    await store.record_view(VISITOR, "article-a")
    await store.record_view(VISITOR, "article-b")
    await store.record_blocked(VISITOR)
    before = await store.get_record(VISITOR)
    assert before is not None and before.blocked_count == 1

    # Act
    clock.advance(days=30)
    expired = await store.get_record(VISITOR)
    record = await store.record_view(VISITOR, "article-c")

    # Assert
    assert expired is None
    assert dict(record.viewed_content_ids) == {"article-c": 1}
    assert record.blocked_count == 0
    assert record.window_started_at == clock.now


async def test_record_blocked_outside_a_window_is_a_no_op(
    store: RedisQuotaStore, redis_client: fakeredis.FakeAsyncRedis
) -> None:
    await store.record_blocked(VISITOR)

    assert await store.get_record(VISITOR) is None
    assert await redis_client.exists(f"paywall:visitor:{VISITOR}:blocked") == 0


async def test_record_blocked_counts_inside_a_window(store: RedisQuotaStore) -> None:
    await store.record_view(VISITOR, "article-a")

    await store.record_blocked(VISITOR)
    await store.record_blocked(VISITOR)

    record = await store.get_record(VISITOR)
    assert record is not None
    assert record.blocked_count == 2


async def test_parallel_distinct_views_are_all_counted(store: RedisQuotaStore) -> None:
    views = 25

    await asyncio.gather(
        *(store.record_view(VISITOR, f"article-{i}") for i in range(views))
    )

    record = await store.get_record(VISITOR)
    assert record is not None
    assert record.count == views
    assert sorted(record.viewed_content_ids.values()) == list(range(1, views + 1))


async def test_visitors_do_not_share_windows(store: RedisQuotaStore) -> None:
    await store.record_view(VISITOR, "article-a")
    await store.record_view("another-visitor", "article-a")

    assert await store.current_count(VISITOR) == 1
    assert await store.current_count("another-visitor") == 1
