"""Bootstrap da aplicação: inicialização e validação de settings.

Este módulo é o composition root: configura logging e valida as
settings antes de qualquer dependência ser construída.

Uso:
    from app.bootstrap import initialize_app, validate_runtime_settings

    initialize_app()
    validate_runtime_settings()
"""

from __future__ import annotations

import logging

from app.observability import get_correlation_id, get_job_id
from config.logging import configure_logging
from config.settings import (
    get_base_settings,
    get_dedupe_settings,
    get_queue_settings,
    get_sellsy_settings,
)

# Nome do serviço para logs e métricas
SERVICE_NAME = "sellsy_invoicer"

STRICT_VALIDATION_ENVS = {"staging", "production"}

logger = logging.getLogger(__name__)


def initialize_app(service_name: str = SERVICE_NAME) -> None:
    """Configura logging estruturado JSON com correlation_id e job_id.

    Deve ser chamada uma vez no início de cada processo (API ou worker).
    """
    base = get_base_settings()
    configure_logging(
        level=base.log_level,
        service_name=service_name,
        correlation_id_getter=get_correlation_id,
        job_id_getter=get_job_id,
        json_output=base.log_format == "json",
    )


def collect_settings_errors() -> list[str]:
    """Reúne erros de validação de todas as settings."""
    base = get_base_settings()
    errors: list[str] = []
    errors.extend(f"base: {error}" for error in base.validate())
    errors.extend(f"sellsy: {error}" for error in get_sellsy_settings().validate())
    errors.extend(f"dedupe: {error}" for error in get_dedupe_settings().validate(base))
    errors.extend(
        f"queue: {error}"
        for error in get_queue_settings().validate(base.redis_url, base.is_development)
    )
    return errors


def validate_runtime_settings() -> None:
    """Valida settings obrigatórias no startup.

    Em `staging`/`production` falha rápido para impedir boot inválido.
    Em `development` mantém alerta sem bloquear execução local.
    """
    environment = get_base_settings().environment
    strict_mode = environment in STRICT_VALIDATION_ENVS
    errors = collect_settings_errors()

    if not errors:
        logger.info(
            "settings_validated",
            extra={"component": "bootstrap", "result": "ok", "environment": environment},
        )
        return

    logger.warning(
        "settings_validation_failed",
        extra={
            "component": "bootstrap",
            "result": "failed",
            "environment": environment,
            "error_count": len(errors),
            "errors": errors,
        },
    )
    if strict_mode:
        details = "\n".join(f"- {error}" for error in errors)
        raise RuntimeError(f"Configuração inválida para {environment}:\n{details}")
