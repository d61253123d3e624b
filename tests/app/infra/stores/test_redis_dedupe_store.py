"""Testes do RedisDedupeStore com mock."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.infra.stores.redis_dedupe_store import RedisDedupeStore
from utils.errors import RedisConnectionError


def _pipeline(result: list[object]) -> MagicMock:
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(return_value=result)
    return pipeline


class TestRedisDedupeStore:
    @pytest.mark.asyncio
    async def test_is_duplicate_checks_processed_and_processing(self) -> None:
        redis = MagicMock()
        pipeline = _pipeline([0, 1])
        redis.pipeline.return_value = pipeline
        store = RedisDedupeStore(redis)

        assert await store.is_duplicate("invoice:estimate:42") is True
        pipeline.exists.assert_any_call("dedupe:invoice:estimate:42")
        pipeline.exists.assert_any_call("dedupe:processing:invoice:estimate:42")

    @pytest.mark.asyncio
    async def test_is_duplicate_false_when_no_keys(self) -> None:
        redis = MagicMock()
        redis.pipeline.return_value = _pipeline([0, 0])
        store = RedisDedupeStore(redis)

        assert await store.is_duplicate("invoice:estimate:1") is False

    @pytest.mark.asyncio
    async def test_is_processed_ignores_processing_lock(self) -> None:
        redis = MagicMock()
        redis.exists = AsyncMock(return_value=0)
        store = RedisDedupeStore(redis)

        assert await store.is_processed("invoice:estimate:42") is False
        redis.exists.assert_awaited_once_with("dedupe:invoice:estimate:42")

    @pytest.mark.asyncio
    async def test_is_processed_wraps_redis_errors(self) -> None:
        redis = MagicMock()
        redis.exists = AsyncMock(side_effect=ConnectionError("down"))
        store = RedisDedupeStore(redis)

        with pytest.raises(RedisConnectionError):
            await store.is_processed("k")

    @pytest.mark.asyncio
    async def test_mark_processing_uses_set_nx(self) -> None:
        redis = MagicMock()
        redis.set = AsyncMock(return_value=True)
        store = RedisDedupeStore(redis)

        assert await store.mark_processing("k", ttl=120) is True
        redis.set.assert_awaited_once_with("dedupe:processing:k", "1", nx=True, ex=120)

    @pytest.mark.asyncio
    async def test_mark_processing_busy(self) -> None:
        redis = MagicMock()
        redis.set = AsyncMock(return_value=None)
        store = RedisDedupeStore(redis)

        assert await store.mark_processing("k", ttl=120) is False

    @pytest.mark.asyncio
    async def test_mark_processed_sets_mark_and_releases_lock(self) -> None:
        redis = MagicMock()
        pipeline = _pipeline([True, 1])
        redis.pipeline.return_value = pipeline
        store = RedisDedupeStore(redis)

        await store.mark_processed("k", ttl=3600)

        pipeline.setex.assert_called_once_with("dedupe:k", 3600, "1")
        pipeline.delete.assert_called_once_with("dedupe:processing:k")
        redis.pipeline.assert_called_once_with(transaction=True)

    @pytest.mark.asyncio
    async def test_unmark_processing(self) -> None:
        redis = MagicMock()
        redis.delete = AsyncMock(return_value=1)
        store = RedisDedupeStore(redis)

        await store.unmark_processing("k")

        redis.delete.assert_awaited_once_with("dedupe:processing:k")

    @pytest.mark.asyncio
    async def test_redis_errors_are_wrapped(self) -> None:
        redis = MagicMock()
        redis.set = AsyncMock(side_effect=OSError("connection refused"))
        store = RedisDedupeStore(redis)

        with pytest.raises(RedisConnectionError):
            await store.mark_processing("k", ttl=10)
