"""Política de retry e configuração HTTP compartilhadas pelos clientes Sellsy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

BackoffStrategy = Literal["linear", "exponential"]

# Limite do body capturado para diagnóstico (nunca logar payload completo)
MAX_ERROR_BODY_CHARS = 2048


@dataclass(frozen=True)
class RetryPolicy:
    """Política única de retry com backoff usada por toda chamada de saída.

    Attributes:
        max_attempts: Total de tentativas (inclui a primeira)
        base_delay_seconds: Delay base entre tentativas
        max_delay_seconds: Teto do delay
        strategy: linear (attempt * base) ou exponential (base * 2^(attempt-1))
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    strategy: BackoffStrategy = "linear"

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts deve ser >= 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds deve ser >= 0")

    def delay_for(self, attempt: int) -> float:
        """Delay após a tentativa `attempt` (1-based) ter falhado."""
        if attempt < 1:
            return 0.0
        if self.strategy == "exponential":
            delay = self.base_delay_seconds * (2 ** (attempt - 1))
        else:
            delay = self.base_delay_seconds * attempt
        return min(delay, self.max_delay_seconds)

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt < self.max_attempts


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP."""

    base_url: str
    timeout_seconds: float = 10.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    default_headers: dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True


def truncate_body(text: str, limit: int = MAX_ERROR_BODY_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "...[truncated]"
