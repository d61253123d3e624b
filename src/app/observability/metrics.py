"""Registro de métricas via structured logging.

As métricas são linhas de log com `metric_type` e podem ser agregadas
por Cloud Logging/Loki/etc. sem dependência de um backend de métricas.

Métricas suportadas:
- Latência por componente/operação (ingress, sellsy_api, worker)
- Resultado de job (completed, failed, retried, ignored)
- Erros engolidos pelo ingress após assinatura aceita
- Renovação de token (sucesso/falha)
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def record_latency(
    component: str,
    operation: str,
    latency_ms: float,
    correlation_id: str | None = None,
) -> None:
    """Registra latência de operação.

    Args:
        component: Nome do componente (ex: "ingress", "sellsy_api")
        operation: Nome da operação (ex: "enqueue", "get_estimate")
        latency_ms: Latência em milissegundos
        correlation_id: ID de correlação para rastreamento
    """
    extra: dict[str, object] = {
        "metric_type": "latency",
        "component": component,
        "operation": operation,
        "latency_ms": round(latency_ms, 2),
    }
    if correlation_id:
        extra["correlation_id"] = correlation_id
    logger.info("metric_latency", extra=extra)


def record_job_outcome(
    job_name: str,
    outcome: str,
    attempts: int,
    latency_ms: float | None = None,
) -> None:
    """Registra desfecho de um job do worker.

    Args:
        job_name: Nome do job (ex: "sellsy_event")
        outcome: completed | failed | retried | timeout
        attempts: Tentativa atual (1-based)
        latency_ms: Duração da execução
    """
    extra: dict[str, object] = {
        "metric_type": "job_outcome",
        "job_name": job_name,
        "outcome": outcome,
        "attempts": attempts,
    }
    if latency_ms is not None:
        extra["latency_ms"] = round(latency_ms, 2)
    logger.info("metric_job_outcome", extra=extra)


def record_ingress_swallowed_error(reason: str, correlation_id: str | None = None) -> None:
    """Registra erro interno escondido do remetente (resposta 200 mesmo assim).

    Cada ocorrência é um evento potencialmente perdido; deve alimentar alerta.
    """
    logger.error(
        "metric_ingress_swallowed_error",
        extra={
            "metric_type": "ingress_swallowed_error",
            "component": "ingress",
            "reason": reason,
            "correlation_id": correlation_id,
        },
    )


def record_token_refresh(success: bool, latency_ms: float) -> None:
    """Registra uma troca client-credentials."""
    logger.info(
        "metric_token_refresh",
        extra={
            "metric_type": "token_refresh",
            "component": "sellsy_auth",
            "result": "ok" if success else "failed",
            "latency_ms": round(latency_ms, 2),
        },
    )
