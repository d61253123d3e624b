"""Testes da RedisJobQueue contra um Redis fake em memória.

O fake implementa os comandos usados pela fila e emula os dois scripts
Lua (claim e recover) com a mesma semântica.
"""

from __future__ import annotations

import json
import time
from collections import defaultdict
from typing import Any

import pytest

from app.infra.queue import RedisJobQueue
from app.infra.queue.redis_job_queue import CLAIM_SCRIPT, RECOVER_SCRIPT
from app.protocols.job_queue import JOB_NAME_SELLSY_EVENT, Job
from utils.errors import QueueUnavailableError


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._ops: list[tuple[str, tuple[Any, ...]]] = []

    def __getattr__(self, name: str) -> Any:
        def record(*args: Any) -> FakePipeline:
            self._ops.append((name, args))
            return self

        return record

    async def execute(self) -> list[Any]:
        return [getattr(self._redis, f"_{name}")(*args) for name, args in self._ops]


class FakeRedis:
    """Listas com índice 0 = esquerda; zsets como dict membro -> score."""

    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = defaultdict(list)
        self.zsets: dict[str, dict[str, float]] = defaultdict(dict)
        self.fail_scripts = False

    def register_script(self, script: str) -> Any:
        handler = {CLAIM_SCRIPT: self._claim, RECOVER_SCRIPT: self._recover}[script]

        async def run(keys: list[str], args: list[float]) -> Any:
            if self.fail_scripts:
                raise ConnectionError("redis down")
            return handler(keys, args)

        return run

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def ping(self) -> bool:
        return True

    async def lpush(self, key: str, value: str) -> int:
        return self._lpush(key, value)

    async def blmove(
        self, source: str, destination: str, timeout: float, src_side: str, dst_side: str
    ) -> str | None:
        # Sem bloqueio real: lista vazia equivale a timeout
        if not self.lists[source]:
            return None
        raw = self.lists[source].pop()
        self.lists[destination].append(raw)
        return raw

    def _claim(self, keys: list[str], args: list[float]) -> str | None:
        waiting, active, delayed, leases = keys
        now, lease_until = args
        for raw, score in sorted(self.zsets[delayed].items(), key=lambda item: item[1]):
            if score <= now:
                del self.zsets[delayed][raw]
                self._lpush(waiting, raw)
        if not self.lists[waiting]:
            return None
        raw = self.lists[waiting].pop()
        self._lpush(active, raw)
        self.zsets[leases][raw] = lease_until
        return raw

    def _recover(self, keys: list[str], args: list[float]) -> int:
        active, waiting, leases = keys
        recovered = 0
        for raw in list(self.lists[active]):
            expires_at = self.zsets[leases].get(raw)
            if expires_at is None or expires_at <= args[0]:
                self._lrem(active, 1, raw)
                self._rpush(waiting, raw)
                self._zrem(leases, raw)
                recovered += 1
        return recovered

    def _lpush(self, key: str, value: str) -> int:
        self.lists[key].insert(0, value)
        return len(self.lists[key])

    def _rpush(self, key: str, value: str) -> int:
        self.lists[key].append(value)
        return len(self.lists[key])

    def _lrem(self, key: str, count: int, value: str) -> int:
        if value in self.lists[key]:
            self.lists[key].remove(value)
            return 1
        return 0

    def _ltrim(self, key: str, start: int, end: int) -> bool:
        self.lists[key] = self.lists[key][start : end + 1]
        return True

    def _zadd(self, key: str, mapping: dict[str, float]) -> int:
        self.zsets[key].update(mapping)
        return len(mapping)

    def _zrem(self, key: str, member: str) -> int:
        return 1 if self.zsets[key].pop(member, None) is not None else 0


def _raw(job: Job) -> str:
    return json.dumps(job.to_dict())


@pytest.mark.asyncio
async def test_enqueue_pushes_serialized_job() -> None:
    redis = FakeRedis()
    queue = RedisJobQueue(redis, "sellsy-webhooks", max_attempts=4)

    job_id = await queue.enqueue(JOB_NAME_SELLSY_EVENT, {"x": 1}, correlation_id="c-1")

    (raw,) = redis.lists["sellsy-webhooks:waiting"]
    stored = json.loads(raw)
    assert stored["id"] == job_id
    assert stored["payload"] == {"x": 1}
    assert stored["max_attempts"] == 4
    assert stored["correlation_id"] == "c-1"


@pytest.mark.asyncio
async def test_enqueue_failure_raises_queue_unavailable() -> None:
    class DownRedis(FakeRedis):
        async def lpush(self, key: str, value: str) -> int:
            raise ConnectionError("down")

    queue = RedisJobQueue(DownRedis())

    with pytest.raises(QueueUnavailableError):
        await queue.enqueue(JOB_NAME_SELLSY_EVENT, {})


@pytest.mark.asyncio
async def test_dequeue_claims_job_with_lease_in_one_step() -> None:
    redis = FakeRedis()
    job = Job(name=JOB_NAME_SELLSY_EVENT, payload={"a": 1}, attempts=1)
    redis.lists["q:waiting"].append(_raw(job))
    queue = RedisJobQueue(redis, "q", lease_seconds=30)

    dequeued = await queue.dequeue(timeout_seconds=1)

    assert dequeued is not None
    assert dequeued.id == job.id
    assert dequeued.attempts == 2
    assert redis.lists["q:waiting"] == []
    assert redis.lists["q:active"] == [_raw(job)]
    assert redis.zsets["q:leases"][_raw(job)] > time.time() + 25


@pytest.mark.asyncio
async def test_dequeue_returns_none_when_empty() -> None:
    queue = RedisJobQueue(FakeRedis())
    assert await queue.dequeue(timeout_seconds=1) is None


@pytest.mark.asyncio
async def test_claim_failure_raises_queue_unavailable() -> None:
    redis = FakeRedis()
    redis.fail_scripts = True
    queue = RedisJobQueue(redis)

    with pytest.raises(QueueUnavailableError):
        await queue.dequeue(timeout_seconds=1)


@pytest.mark.asyncio
async def test_complete_removes_from_active_and_trims_history() -> None:
    redis = FakeRedis()
    redis.lists["q:completed"] = ["old-1", "old-2"]
    queue = RedisJobQueue(redis, "q", keep_completed=2)
    await queue.enqueue(JOB_NAME_SELLSY_EVENT, {})
    dequeued = await queue.dequeue(timeout_seconds=1)

    await queue.complete(dequeued)

    assert redis.lists["q:active"] == []
    assert redis.zsets["q:leases"] == {}
    assert len(redis.lists["q:completed"]) == 2
    assert json.loads(redis.lists["q:completed"][0])["id"] == dequeued.id


@pytest.mark.asyncio
async def test_retry_parks_job_and_next_dequeue_promotes_it() -> None:
    redis = FakeRedis()
    queue = RedisJobQueue(redis, "q")
    await queue.enqueue(JOB_NAME_SELLSY_EVENT, {"k": "v"})
    first = await queue.dequeue(timeout_seconds=1)

    await queue.retry(first, delay_seconds=0)

    assert redis.lists["q:active"] == []
    (parked,) = redis.zsets["q:delayed"]
    assert json.loads(parked)["attempts"] == 1

    second = await queue.dequeue(timeout_seconds=1)

    assert second is not None
    assert second.id == first.id
    assert second.attempts == 2
    assert redis.zsets["q:delayed"] == {}


@pytest.mark.asyncio
async def test_retry_not_due_stays_delayed() -> None:
    redis = FakeRedis()
    queue = RedisJobQueue(redis, "q")
    await queue.enqueue(JOB_NAME_SELLSY_EVENT, {})
    job = await queue.dequeue(timeout_seconds=1)

    await queue.retry(job, delay_seconds=60)

    assert await queue.dequeue(timeout_seconds=1) is None
    assert len(redis.zsets["q:delayed"]) == 1


@pytest.mark.asyncio
async def test_recover_stale_only_moves_expired_leases() -> None:
    redis = FakeRedis()
    expired = _raw(Job(name=JOB_NAME_SELLSY_EVENT, payload={}))
    running = _raw(Job(name=JOB_NAME_SELLSY_EVENT, payload={}))
    redis.lists["q:active"] = [expired, running]
    redis.zsets["q:leases"] = {expired: time.time() - 5, running: time.time() + 60}
    queue = RedisJobQueue(redis, "q")

    assert await queue.recover_stale() == 1

    assert redis.lists["q:waiting"] == [expired]
    assert redis.lists["q:active"] == [running]
    assert list(redis.zsets["q:leases"]) == [running]


@pytest.mark.asyncio
async def test_active_job_without_lease_is_recovered_after_crash() -> None:
    redis = FakeRedis()
    crashed = RedisJobQueue(redis, "q")
    job_id = await crashed.enqueue(JOB_NAME_SELLSY_EVENT, {"estimate": 42})
    await crashed.dequeue(timeout_seconds=1)
    # Lease perdido: entrada ativa sem score em leases
    redis.zsets["q:leases"].clear()

    restarted = RedisJobQueue(redis, "q")
    assert await restarted.recover_stale() == 1

    redelivered = await restarted.dequeue(timeout_seconds=1)
    assert redelivered is not None
    assert redelivered.id == job_id
    assert redelivered.payload == {"estimate": 42}


@pytest.mark.asyncio
async def test_unparseable_entry_goes_to_failed_instead_of_staying_active() -> None:
    redis = FakeRedis()
    valid = Job(name=JOB_NAME_SELLSY_EVENT, payload={})
    redis.lists["q:waiting"] = [_raw(valid), "{not json"]
    queue = RedisJobQueue(redis, "q")

    dequeued = await queue.dequeue(timeout_seconds=1)

    assert dequeued is not None
    assert dequeued.id == valid.id
    assert redis.lists["q:active"] == [_raw(valid)]
    assert "{not json" not in redis.zsets["q:leases"]
    (failed,) = redis.lists["q:failed"]
    assert json.loads(failed)["raw"] == "{not json"


@pytest.mark.asyncio
async def test_recover_failure_raises_queue_unavailable() -> None:
    redis = FakeRedis()
    redis.fail_scripts = True

    with pytest.raises(QueueUnavailableError):
        await RedisJobQueue(redis, "q").recover_stale()
