"""Settings do processo: ambiente, logging e Redis.

Lidas tanto pelo ingress (app.app) quanto pelo worker (app.worker).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

Environment = Literal["development", "staging", "production"]
LogFormat = Literal["json", "text"]

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
_ENVIRONMENT_ALIASES: dict[str, Environment] = {
    "production": "production",
    "prod": "production",
    "staging": "staging",
    "stage": "staging",
}


@dataclass(frozen=True)
class BaseSettings:
    """Configurações comuns aos dois processos.

    Attributes:
        environment: development|staging|production (staging/production validam estrito)
        service_name: Nome exposto no health check
        debug: Modo debug ativo
        redis_url: Redis compartilhado por fila e dedupe
        log_level: Nível do logger raiz
        log_format: json (padrão) ou text para leitura local
    """

    environment: Environment = "development"
    service_name: str = "sellsy-invoicer"
    debug: bool = False
    redis_url: str = ""
    log_level: str = "INFO"
    log_format: LogFormat = "json"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def validate(self) -> list[str]:
        """Retorna a lista de erros (vazia = OK)."""
        errors: list[str] = []

        if not self.service_name:
            errors.append("SERVICE_NAME não pode ser vazio")

        if self.log_level.upper() not in _LOG_LEVELS:
            errors.append(f"LOG_LEVEL inválido: {self.log_level}")

        if self.redis_url and not self.redis_url.startswith(("redis://", "rediss://", "unix://")):
            errors.append("REDIS_URL deve usar redis://, rediss:// ou unix://")

        return errors


def _load_base_from_env() -> BaseSettings:
    environment = _ENVIRONMENT_ALIASES.get(
        os.getenv("ENVIRONMENT", "development").strip().lower(), "development"
    )
    log_format: LogFormat = "text" if os.getenv("LOG_FORMAT", "").lower() == "text" else "json"
    return BaseSettings(
        environment=environment,
        service_name=os.getenv("SERVICE_NAME", "sellsy-invoicer"),
        debug=os.getenv("DEBUG", "").lower() in ("true", "1", "yes"),
        redis_url=os.getenv("REDIS_URL", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=log_format,
    )


@lru_cache(maxsize=1)
def get_base_settings() -> BaseSettings:
    """Retorna instância cacheada de BaseSettings."""
    return _load_base_from_env()
