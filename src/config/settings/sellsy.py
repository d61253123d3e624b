"""Settings específicas da integração Sellsy.

Webhook (assinatura), credenciais OAuth2 client-credentials e regras
de disparo da criação de fatura a partir de devis aceito.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

SELLSY_TOKEN_URL: str = "https://login.sellsy.com/oauth2/access-tokens"
SELLSY_API_BASE_URL: str = "https://api.sellsy.com/v2"

DEFAULT_TRIGGER_EVENT_TYPES: tuple[str, ...] = ("docslog", "modification")
DEFAULT_ACCEPTED_STATUSES: tuple[str, ...] = ("accepted", "won", "signed")


@dataclass(frozen=True)
class SellsySettings:
    """Configurações da integração Sellsy.

    Attributes:
        sign_key: Chave compartilhada para validar assinatura do webhook
        client_id: Client ID OAuth2 da API v2
        client_secret: Client secret OAuth2 da API v2
        token_url: Endpoint de troca client-credentials
        api_base_url: URL base da API v2
        request_timeout_seconds: Timeout por requisição HTTP
        max_retries: Tentativas por chamada à API
        backoff_base_seconds: Delay base do backoff linear
        token_safety_margin_seconds: Margem antes da expiração para renovar token
        trigger_related_type: relatedtype que dispara o processamento
        trigger_event_types: eventType aceitos para o relatedtype
        accepted_statuses: Status de devis considerados aceitos
        link_back_enabled: Grava referência da fatura no devis (best-effort)
    """

    sign_key: str = ""
    client_id: str = ""
    client_secret: str = ""
    token_url: str = SELLSY_TOKEN_URL
    api_base_url: str = SELLSY_API_BASE_URL
    request_timeout_seconds: float = 10.0
    max_retries: int = 3
    backoff_base_seconds: float = 1.0
    token_safety_margin_seconds: float = 60.0
    trigger_related_type: str = "estimate"
    trigger_event_types: tuple[str, ...] = DEFAULT_TRIGGER_EVENT_TYPES
    accepted_statuses: tuple[str, ...] = DEFAULT_ACCEPTED_STATUSES
    link_back_enabled: bool = True

    def validate(self) -> list[str]:
        """Valida configurações mínimas da integração.

        Returns:
            Lista de erros de validação (vazia = tudo OK).
        """
        errors: list[str] = []

        if not self.sign_key:
            errors.append("SELLSY_SIGN_KEY não configurado")

        if not self.client_id or not self.client_secret:
            errors.append("SELLSY_CLIENT_ID/SELLSY_CLIENT_SECRET não configurados")

        if self.request_timeout_seconds <= 0:
            errors.append("SELLSY_REQUEST_TIMEOUT_SECONDS deve ser > 0")

        if self.max_retries < 1:
            errors.append("SELLSY_MAX_RETRIES deve ser >= 1")

        if not self.trigger_event_types:
            errors.append("SELLSY_TRIGGER_EVENT_TYPES não pode ser vazio")

        if not self.accepted_statuses:
            errors.append("SELLSY_ACCEPTED_STATUSES não pode ser vazio")

        return errors


def _parse_csv(value: str, default: tuple[str, ...]) -> tuple[str, ...]:
    items = tuple(item.strip().lower() for item in value.split(",") if item.strip())
    return items or default


def _load_from_env() -> SellsySettings:
    """Carrega SellsySettings a partir de variáveis de ambiente."""
    return SellsySettings(
        sign_key=os.getenv("SELLSY_SIGN_KEY", ""),
        client_id=os.getenv("SELLSY_CLIENT_ID", ""),
        client_secret=os.getenv("SELLSY_CLIENT_SECRET", ""),
        token_url=os.getenv("SELLSY_TOKEN_URL", SELLSY_TOKEN_URL),
        api_base_url=os.getenv("SELLSY_API_BASE_URL", SELLSY_API_BASE_URL),
        request_timeout_seconds=float(os.getenv("SELLSY_REQUEST_TIMEOUT_SECONDS", "10")),
        max_retries=int(os.getenv("SELLSY_MAX_RETRIES", "3")),
        backoff_base_seconds=float(os.getenv("SELLSY_BACKOFF_BASE_SECONDS", "1")),
        token_safety_margin_seconds=float(
            os.getenv("SELLSY_TOKEN_SAFETY_MARGIN_SECONDS", "60")
        ),
        trigger_related_type=os.getenv("SELLSY_TRIGGER_RELATED_TYPE", "estimate").lower(),
        trigger_event_types=_parse_csv(
            os.getenv("SELLSY_TRIGGER_EVENT_TYPES", ""), DEFAULT_TRIGGER_EVENT_TYPES
        ),
        accepted_statuses=_parse_csv(
            os.getenv("SELLSY_ACCEPTED_STATUSES", ""), DEFAULT_ACCEPTED_STATUSES
        ),
        link_back_enabled=os.getenv("SELLSY_LINK_BACK_ENABLED", "true").lower()
        in ("true", "1", "yes"),
    )


@lru_cache(maxsize=1)
def get_sellsy_settings() -> SellsySettings:
    """Retorna instância cacheada de SellsySettings.

    A cache garante singleton para múltiplas injeções.
    """
    return _load_from_env()
