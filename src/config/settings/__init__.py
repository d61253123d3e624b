"""Agregador de settings do serviço.

Re-exporta todas as settings e funções de cada módulo.
Organização por domínio para isolamento de mudanças.
"""

from __future__ import annotations

from config.settings.base import (
    BaseSettings,
    DedupeBackend,
    DedupeSettings,
    Environment,
    LogFormat,
    get_base_settings,
    get_dedupe_settings,
)
from config.settings.infra import (
    QueueBackend,
    QueueSettings,
    get_queue_settings,
)
from config.settings.sellsy import (
    SELLSY_API_BASE_URL,
    SELLSY_TOKEN_URL,
    SellsySettings,
    get_sellsy_settings,
)

__all__ = [
    # Constants
    "SELLSY_API_BASE_URL",
    "SELLSY_TOKEN_URL",
    # Base
    "BaseSettings",
    "DedupeBackend",
    "DedupeSettings",
    "Environment",
    "LogFormat",
    # Infrastructure
    "QueueBackend",
    "QueueSettings",
    # Sellsy
    "SellsySettings",
    "get_base_settings",
    "get_dedupe_settings",
    "get_queue_settings",
    "get_sellsy_settings",
]
