"""Settings da fila durável de webhooks.

Fila Redis (produção) ou em memória (desenvolvimento/testes).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

QueueBackend = Literal["memory", "redis"]


@dataclass(frozen=True)
class QueueSettings:
    """Configurações da fila e do pool de workers.

    Attributes:
        backend: Backend da fila (memory|redis)
        queue_name: Nome lógico da fila (prefixo das chaves Redis)
        concurrency: Jobs processados em paralelo pelo worker
        max_attempts: Tentativas por job antes de mover para failed
        retry_delay_seconds: Delay base entre tentativas (linear)
        keep_completed: Jobs concluídos mantidos para inspeção
        keep_failed: Jobs falhos mantidos para inspeção
        job_timeout_seconds: Tempo máximo de um job no worker
        enqueue_timeout_seconds: Tempo máximo do enqueue no ingress
    """

    backend: QueueBackend = "memory"
    queue_name: str = "sellsy-webhooks"
    concurrency: int = 3
    max_attempts: int = 3
    retry_delay_seconds: float = 5.0
    keep_completed: int = 100
    keep_failed: int = 50
    job_timeout_seconds: float = 60.0
    enqueue_timeout_seconds: float = 2.0

    def validate(self, redis_url: str, is_development: bool) -> list[str]:
        """Valida configurações da fila.

        Args:
            redis_url: URL Redis configurada.
            is_development: Se está em ambiente de desenvolvimento.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.backend not in ("memory", "redis"):
            errors.append(f"QUEUE_BACKEND inválido: {self.backend}")

        if self.backend == "memory" and not is_development:
            errors.append(
                "QUEUE_BACKEND=memory proibido em staging/production. Use redis."
            )

        if self.backend == "redis" and not redis_url:
            errors.append("QUEUE_BACKEND=redis requer REDIS_URL configurado")

        if not self.queue_name:
            errors.append("QUEUE_NAME não pode ser vazio")

        if self.concurrency < 1:
            errors.append("WORKER_CONCURRENCY deve ser >= 1")

        if self.max_attempts < 1:
            errors.append("QUEUE_MAX_ATTEMPTS deve ser >= 1")

        if self.job_timeout_seconds <= 0:
            errors.append("QUEUE_JOB_TIMEOUT_SECONDS deve ser > 0")

        if self.enqueue_timeout_seconds <= 0:
            errors.append("QUEUE_ENQUEUE_TIMEOUT_SECONDS deve ser > 0")

        return errors


def _load_queue_from_env() -> QueueSettings:
    """Carrega QueueSettings de variáveis de ambiente."""
    backend_str = os.getenv("QUEUE_BACKEND", "memory").lower()
    backend: QueueBackend = "redis" if backend_str == "redis" else "memory"

    return QueueSettings(
        backend=backend,
        queue_name=os.getenv("QUEUE_NAME", "sellsy-webhooks"),
        concurrency=int(os.getenv("WORKER_CONCURRENCY", "3")),
        max_attempts=int(os.getenv("QUEUE_MAX_ATTEMPTS", "3")),
        retry_delay_seconds=float(os.getenv("QUEUE_RETRY_DELAY_SECONDS", "5")),
        keep_completed=int(os.getenv("QUEUE_KEEP_COMPLETED", "100")),
        keep_failed=int(os.getenv("QUEUE_KEEP_FAILED", "50")),
        job_timeout_seconds=float(os.getenv("QUEUE_JOB_TIMEOUT_SECONDS", "60")),
        enqueue_timeout_seconds=float(os.getenv("QUEUE_ENQUEUE_TIMEOUT_SECONDS", "2")),
    )


@lru_cache(maxsize=1)
def get_queue_settings() -> QueueSettings:
    """Retorna instância cacheada de QueueSettings."""
    return _load_queue_from_env()
