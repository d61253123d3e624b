"""Protocolos da fila durável (entrega at-least-once)."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

JOB_NAME_SELLSY_EVENT = "sellsy_event"


@dataclass
class Job:
    """Unidade de trabalho enfileirada: exatamente um evento de webhook.

    Attributes:
        id: Identificador único do job
        name: Nome do job (ex: "sellsy_event")
        payload: Evento estruturado recebido no ingress
        correlation_id: Correlation id do request de origem
        attempts: Tentativas já iniciadas
        max_attempts: Limite de tentativas antes de mover para failed
        enqueued_at: Epoch do primeiro enqueue
        last_error: Último erro observado (tipo e mensagem curta)
    """

    name: str
    payload: dict[str, Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    correlation_id: str = ""
    attempts: int = 0
    max_attempts: int = 3
    enqueued_at: float = field(default_factory=time.time)
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        return cls(
            name=str(data["name"]),
            payload=dict(data.get("payload") or {}),
            id=str(data["id"]),
            correlation_id=str(data.get("correlation_id") or ""),
            attempts=int(data.get("attempts", 0)),
            max_attempts=int(data.get("max_attempts", 3)),
            enqueued_at=float(data.get("enqueued_at", time.time())),
            last_error=data.get("last_error"),
        )

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


class JobQueueProtocol(Protocol):
    """Lado produtor: fire-and-forget do ponto de vista do ingress."""

    async def enqueue(
        self,
        job_name: str,
        payload: dict[str, Any],
        *,
        correlation_id: str = "",
    ) -> str: ...


class JobConsumerProtocol(Protocol):
    """Lado consumidor usado pelo JobWorker."""

    async def recover_stale(self) -> int: ...

    async def dequeue(self, timeout_seconds: float) -> Job | None: ...

    async def complete(self, job: Job) -> None: ...

    async def retry(self, job: Job, delay_seconds: float) -> None: ...

    async def fail(self, job: Job) -> None: ...
