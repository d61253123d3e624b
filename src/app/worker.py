"""Entrypoint do worker de eventos Sellsy.

Uso:
    python -m app.worker

Startup em duas fases explícitas:
1. Credenciais: monta SellsyHttpClient/TokenManager e aquece o token.
   Falha aqui é logada mas não derruba o processo; cada job tentará
   renovar de novo sob seu próprio retry.
2. Consumo: recupera jobs órfãos e inicia `WORKER_CONCURRENCY` slots.

SIGINT/SIGTERM param o consumo e aguardam os jobs em andamento.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import TYPE_CHECKING

from app.bootstrap import initialize_app, validate_runtime_settings
from app.bootstrap.clients import close_async_redis_client
from app.bootstrap.dependencies import (
    create_job_queue,
    create_process_webhook_event_use_case,
    create_sellsy_client,
)
from app.coordinators.sellsy.event_job import build_sellsy_event_handler
from app.infra.queue import JobWorker, MemoryJobQueue
from config.settings import get_queue_settings
from utils.errors import AuthError

if TYPE_CHECKING:
    from api.connectors.sellsy import SellsyHttpClient

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 30.0


async def warm_up_credentials(client: SellsyHttpClient) -> bool:
    """Fase 1: obtém o primeiro token antes de consumir jobs."""
    try:
        await client.token_manager.get_token()
    except AuthError as exc:
        logger.error(
            "worker_token_warmup_failed",
            extra={"error": str(exc), "status_code": exc.status_code},
        )
        return False
    logger.info("worker_token_ready")
    return True


async def run_worker(stop_event: asyncio.Event | None = None) -> None:
    """Executa o worker até `stop_event` ser sinalizado."""
    validate_runtime_settings()
    settings = get_queue_settings()
    stop_event = stop_event or asyncio.Event()

    client = create_sellsy_client()
    await warm_up_credentials(client)

    queue = create_job_queue()
    if isinstance(queue, MemoryJobQueue):
        logger.warning("worker_memory_queue_isolated", extra={"backend": "memory"})

    worker = JobWorker(
        queue,
        build_sellsy_event_handler(create_process_webhook_event_use_case(client)),
        concurrency=settings.concurrency,
        job_timeout_seconds=settings.job_timeout_seconds,
        retry_delay_seconds=settings.retry_delay_seconds,
    )
    try:
        await worker.start()
        await stop_event.wait()
    finally:
        await worker.stop(timeout_seconds=SHUTDOWN_TIMEOUT_SECONDS)
        await client.aclose()
        await close_async_redis_client()


async def _main() -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)
    await run_worker(stop_event)


def main() -> None:
    initialize_app(service_name="sellsy_invoicer_worker")
    logger.info("worker_starting")
    asyncio.run(_main())
    logger.info("worker_exited")


if __name__ == "__main__":
    main()
