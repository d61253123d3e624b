"""Fila em memória: apenas para desenvolvimento e testes.

Mesma semântica da fila Redis (retry com delay, buckets de inspeção),
sem durabilidade entre reinícios.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import TYPE_CHECKING, Any

from app.protocols.job_queue import Job

if TYPE_CHECKING:
    from collections.abc import Callable


class MemoryJobQueue:
    """Fila asyncio com buckets completed/failed limitados."""

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        keep_completed: int = 100,
        keep_failed: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_attempts = max_attempts
        self._clock = clock
        self._waiting: asyncio.Queue[Job] = asyncio.Queue()
        self._delayed: list[tuple[float, Job]] = []
        self.active: dict[str, Job] = {}
        self.completed: deque[Job] = deque(maxlen=keep_completed)
        self.failed: deque[Job] = deque(maxlen=keep_failed)

    @property
    def waiting_count(self) -> int:
        return self._waiting.qsize() + len(self._delayed)

    async def enqueue(
        self,
        job_name: str,
        payload: dict[str, Any],
        *,
        correlation_id: str = "",
    ) -> str:
        job = Job(
            name=job_name,
            payload=payload,
            correlation_id=correlation_id,
            max_attempts=self._max_attempts,
        )
        self._waiting.put_nowait(job)
        return job.id

    async def ping(self) -> bool:
        return True

    async def recover_stale(self) -> int:
        recovered = list(self.active.values())
        self.active.clear()
        for job in recovered:
            self._waiting.put_nowait(job)
        return len(recovered)

    async def dequeue(self, timeout_seconds: float) -> Job | None:
        self._promote_delayed()
        try:
            job = await asyncio.wait_for(self._waiting.get(), timeout=timeout_seconds)
        except TimeoutError:
            return None
        job.attempts += 1
        self.active[job.id] = job
        return job

    async def complete(self, job: Job) -> None:
        self.active.pop(job.id, None)
        self.completed.appendleft(job)

    async def fail(self, job: Job) -> None:
        self.active.pop(job.id, None)
        self.failed.appendleft(job)

    async def retry(self, job: Job, delay_seconds: float) -> None:
        self.active.pop(job.id, None)
        self._delayed.append((self._clock() + delay_seconds, job))

    def _promote_delayed(self) -> None:
        now = self._clock()
        still_delayed: list[tuple[float, Job]] = []
        for ready_at, job in self._delayed:
            if ready_at <= now:
                self._waiting.put_nowait(job)
            else:
                still_delayed.append((ready_at, job))
        self._delayed = still_delayed
