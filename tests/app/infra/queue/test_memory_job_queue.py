"""Testes da MemoryJobQueue."""

from __future__ import annotations

import pytest

from app.infra.queue import MemoryJobQueue
from app.protocols.job_queue import JOB_NAME_SELLSY_EVENT


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_enqueue_then_dequeue_counts_attempt() -> None:
    queue = MemoryJobQueue(max_attempts=5)

    job_id = await queue.enqueue(JOB_NAME_SELLSY_EVENT, {"a": 1}, correlation_id="corr")
    job = await queue.dequeue(timeout_seconds=0.1)

    assert job is not None
    assert job.id == job_id
    assert job.payload == {"a": 1}
    assert job.correlation_id == "corr"
    assert job.attempts == 1
    assert job.max_attempts == 5
    assert job_id in queue.active


@pytest.mark.asyncio
async def test_dequeue_times_out_on_empty_queue() -> None:
    queue = MemoryJobQueue()
    assert await queue.dequeue(timeout_seconds=0.01) is None


@pytest.mark.asyncio
async def test_retry_waits_for_delay() -> None:
    clock = FakeClock()
    queue = MemoryJobQueue(clock=clock)
    await queue.enqueue(JOB_NAME_SELLSY_EVENT, {})
    job = await queue.dequeue(timeout_seconds=0.1)
    assert job is not None

    await queue.retry(job, delay_seconds=5)

    assert await queue.dequeue(timeout_seconds=0.01) is None
    clock.now = 5
    retried = await queue.dequeue(timeout_seconds=0.1)
    assert retried is job
    assert retried.attempts == 2


@pytest.mark.asyncio
async def test_finished_buckets_are_bounded() -> None:
    queue = MemoryJobQueue(keep_completed=2, keep_failed=1)
    for _ in range(3):
        await queue.enqueue(JOB_NAME_SELLSY_EVENT, {})
    jobs = [await queue.dequeue(timeout_seconds=0.1) for _ in range(3)]

    for job in jobs:
        await queue.complete(job)
    await queue.fail(jobs[0])

    assert len(queue.completed) == 2
    assert len(queue.failed) == 1
    assert queue.active == {}


@pytest.mark.asyncio
async def test_recover_stale_requeues_active_jobs() -> None:
    queue = MemoryJobQueue()
    await queue.enqueue(JOB_NAME_SELLSY_EVENT, {})
    await queue.dequeue(timeout_seconds=0.1)

    assert await queue.recover_stale() == 1
    assert queue.waiting_count == 1
