"""Processamento de jobs `sellsy_event` vindos da fila.

Liga o JobWorker ao ProcessWebhookEventUseCase: um job carrega
exatamente um evento de webhook.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.protocols.job_queue import JOB_NAME_SELLSY_EVENT
from utils.errors import PermanentJobError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from app.protocols.job_queue import Job
    from app.use_cases.sellsy import ProcessingResult, ProcessWebhookEventUseCase

logger = logging.getLogger(__name__)


async def process_sellsy_event_job(
    job: Job,
    use_case: ProcessWebhookEventUseCase,
) -> ProcessingResult:
    """Executa o use case para o evento do job.

    Raises:
        PermanentJobError: Job com nome desconhecido (não adianta retry)
    """
    if job.name != JOB_NAME_SELLSY_EVENT:
        raise PermanentJobError(f"unknown job name: {job.name}")

    result = await use_case.execute(job.payload)

    logger.info(
        "sellsy_event_processed",
        extra={
            "outcome": result.outcome.value,
            "estimate_id": result.estimate_id,
            "estimate_status": result.estimate_status,
            "invoice_id": result.invoice_id,
            "linked": result.linked,
            "attempts": job.attempts,
        },
    )
    return result


def build_sellsy_event_handler(
    use_case: ProcessWebhookEventUseCase,
) -> Callable[[Job], Awaitable[ProcessingResult]]:
    """Handler do JobWorker com o use case já injetado."""

    async def handle(job: Job) -> ProcessingResult:
        return await process_sellsy_event_job(job, use_case)

    return handle
