"""Exceções compartilhadas entre api/, app/ e infra."""

from __future__ import annotations


class InfrastructureError(RuntimeError):
    """Base para falhas de infraestrutura transitórias."""


class RedisConnectionError(InfrastructureError):
    """Falha de conexão/timeout ao acessar Redis."""


class QueueUnavailableError(InfrastructureError):
    """Fila durável indisponível para enqueue/consumo."""


class SellsyApiError(Exception):
    """Erro de chamada à API Sellsy sem dados sensíveis.

    Carrega o último status/body observado para diagnóstico.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
        attempts: int = 0,
        is_retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.attempts = attempts
        self.is_retryable = is_retryable


class AuthError(SellsyApiError):
    """Falha na troca client-credentials por access token."""


class PermanentJobError(Exception):
    """Falha de negócio que retry não resolve; job falha sem novas tentativas."""


class MissingRequiredReferenceError(PermanentJobError):
    """Referência obrigatória ausente no recurso (ex.: cliente do devis)."""


class InvalidEventPayloadError(PermanentJobError):
    """Payload do job não representa um evento Sellsy interpretável."""


class InvalidSourceDocumentError(PermanentJobError):
    """Documento de origem inutilizável para gerar fatura (ex.: sem linhas)."""


class ConcurrentProcessingError(RuntimeError):
    """Outro worker está processando o mesmo documento; tentar mais tarde."""
