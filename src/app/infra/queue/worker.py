"""Pool de consumidores da fila de jobs.

Cada slot consome um job por vez; `concurrency` slots rodam em paralelo
no mesmo event loop. Desfechos:
- handler retorna          -> complete
- PermanentJobError        -> fail sem novo retry
- outra exceção / timeout  -> retry com delay linear até max_attempts, depois fail

Correlation id e job id do job ficam nos ContextVars durante a execução,
então todo log emitido pelo handler carrega os dois campos.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING, Any

from app.observability import (
    record_job_outcome,
    reset_correlation_id,
    reset_job_id,
    set_correlation_id,
    set_job_id,
)
from utils.errors import InfrastructureError, PermanentJobError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from app.protocols.job_queue import Job, JobConsumerProtocol

    JobHandler = Callable[[Job], Awaitable[Any]]

logger = logging.getLogger(__name__)


class JobWorker:
    """Executa jobs da fila com concorrência e timeout limitados.

    Args:
        consumer: Lado consumidor da fila
        handler: Coroutine que processa um job
        concurrency: Número de jobs em paralelo
        job_timeout_seconds: Tempo máximo por execução
        retry_delay_seconds: Base do delay linear entre tentativas
        poll_timeout_seconds: Espera máxima de cada dequeue bloqueante
    """

    def __init__(
        self,
        consumer: JobConsumerProtocol,
        handler: JobHandler,
        *,
        concurrency: int = 3,
        job_timeout_seconds: float = 60.0,
        retry_delay_seconds: float = 5.0,
        poll_timeout_seconds: float = 1.0,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._consumer = consumer
        self._handler = handler
        self._concurrency = concurrency
        self._job_timeout = job_timeout_seconds
        self._retry_delay = retry_delay_seconds
        self._poll_timeout = poll_timeout_seconds
        self._stopping = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        """Recupera jobs órfãos e inicia os slots de consumo."""
        recovered = await self._consumer.recover_stale()
        self._stopping.clear()
        self._tasks = [
            asyncio.create_task(self._consume_loop(slot), name=f"job-worker-{slot}")
            for slot in range(self._concurrency)
        ]
        logger.info(
            "job_worker_started",
            extra={"concurrency": self._concurrency, "recovered_jobs": recovered},
        )

    async def wait(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self, timeout_seconds: float = 30.0) -> None:
        """Para de consumir e aguarda jobs em andamento.

        Jobs cancelados por timeout de shutdown permanecem ativos na fila
        e são recuperados no próximo start.
        """
        self._stopping.set()
        if not self._tasks:
            return
        _, pending = await asyncio.wait(self._tasks, timeout=timeout_seconds)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("job_worker_shutdown_cancelled", extra={"cancelled_slots": len(pending)})
        self._tasks = []
        logger.info("job_worker_stopped")

    async def _consume_loop(self, slot: int) -> None:
        while not self._stopping.is_set():
            try:
                job = await self._consumer.dequeue(self._poll_timeout)
            except InfrastructureError as exc:
                logger.error(
                    "job_dequeue_failed",
                    extra={"slot": slot, "error_type": type(exc).__name__},
                )
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._stopping.wait(), timeout=self._poll_timeout)
                continue
            if job is None:
                continue
            await self.process(job)

    async def process(self, job: Job) -> str:
        """Executa um job e registra o desfecho na fila.

        Returns:
            completed | failed | retried
        """
        correlation_token = set_correlation_id(job.correlation_id or None)
        job_token = set_job_id(job.id)
        started_at = time.perf_counter()
        try:
            outcome = await self._run(job)
        finally:
            reset_job_id(job_token)
            reset_correlation_id(correlation_token)
        record_job_outcome(
            job.name,
            outcome,
            job.attempts,
            latency_ms=(time.perf_counter() - started_at) * 1000,
        )
        return outcome

    async def _run(self, job: Job) -> str:
        try:
            result = await asyncio.wait_for(self._handler(job), timeout=self._job_timeout)
        except PermanentJobError as exc:
            job.last_error = _describe(exc)
            logger.error(
                "job_failed",
                extra={
                    "job_name": job.name,
                    "attempts": job.attempts,
                    "permanent": True,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            await self._settle(self._consumer.fail, job)
            return "failed"
        except TimeoutError:
            job.last_error = f"TimeoutError: exceeded {self._job_timeout}s"
            return await self._retry_or_fail(job, "TimeoutError")
        except Exception as exc:
            job.last_error = _describe(exc)
            return await self._retry_or_fail(job, type(exc).__name__)

        logger.info(
            "job_completed",
            extra={"job_name": job.name, "attempts": job.attempts, "result": _summary(result)},
        )
        await self._settle(self._consumer.complete, job)
        return "completed"

    async def _retry_or_fail(self, job: Job, error_type: str) -> str:
        if job.exhausted:
            logger.error(
                "job_failed",
                extra={
                    "job_name": job.name,
                    "attempts": job.attempts,
                    "permanent": False,
                    "error_type": error_type,
                    "error": job.last_error,
                },
            )
            await self._settle(self._consumer.fail, job)
            return "failed"

        delay = self._retry_delay * job.attempts
        logger.warning(
            "job_retry_scheduled",
            extra={
                "job_name": job.name,
                "attempts": job.attempts,
                "max_attempts": job.max_attempts,
                "retry_delay_seconds": delay,
                "error_type": error_type,
            },
        )
        await self._settle(self._consumer.retry, job, delay)
        return "retried"

    async def _settle(self, action: Callable[..., Awaitable[None]], job: Job, *args: Any) -> None:
        # Falha aqui deixa o job ativo; recover_stale o devolve depois
        try:
            await action(job, *args)
        except InfrastructureError as exc:
            logger.error(
                "job_settle_failed",
                extra={
                    "job_name": job.name,
                    "action": getattr(action, "__name__", "unknown"),
                    "error_type": type(exc).__name__,
                },
            )


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {str(exc)[:500]}"


def _summary(result: Any) -> Any:
    if result is None or isinstance(result, (str, int, float, bool)):
        return result
    outcome = getattr(result, "outcome", None)
    if outcome is not None:
        return getattr(outcome, "value", str(outcome))
    return type(result).__name__
