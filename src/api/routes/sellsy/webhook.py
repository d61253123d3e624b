"""Endpoint de webhook da Sellsy.

Endpoint:
- POST /webhook/sellsy: recebimento de eventos

Contrato com a Sellsy:
- assinatura inválida/ausente -> 401 {"ok": false}, nada é enfileirado
- assinatura aceita -> 200 {"ok": true} SEMPRE, mesmo que o enqueue falhe
  (qualquer não-2xx provocaria replays do remetente)

Erros engolidos após a assinatura aceita viram log de erro + métrica
`ingress_swallowed_error`: cada um é um evento potencialmente perdido.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from api.connectors.sellsy.webhook import (
    InvalidJsonError,
    InvalidSignatureError,
    parse_webhook_request,
)
from app.observability import (
    get_correlation_id,
    record_ingress_swallowed_error,
    record_latency,
    reset_correlation_id,
    set_correlation_id,
)
from app.protocols.job_queue import JOB_NAME_SELLSY_EVENT
from config.settings import get_queue_settings, get_sellsy_settings

logger = logging.getLogger(__name__)

router = APIRouter()

CORRELATION_HEADER = "x-correlation-id"


def _accepted() -> JSONResponse:
    return JSONResponse(content={"ok": True}, status_code=status.HTTP_200_OK)


@router.post("", response_model=None)
async def receive_webhook(request: Request) -> JSONResponse:
    """Recebe evento Sellsy, valida assinatura e enfileira um job.

    Não consulta a API Sellsy nem aplica regra de negócio: a resposta
    depende apenas da assinatura.
    """
    token = set_correlation_id(request.headers.get(CORRELATION_HEADER))
    try:
        raw_body = await request.body()

        try:
            payload, _signature = parse_webhook_request(
                raw_body=raw_body,
                headers=dict(request.headers),
                secret=get_sellsy_settings().sign_key or None,
            )
        except InvalidSignatureError as exc:
            logger.warning(
                "webhook_signature_invalid",
                extra={"channel": "sellsy", "error": str(exc), "payload_size": len(raw_body)},
            )
            return JSONResponse(
                content={"ok": False},
                status_code=status.HTTP_401_UNAUTHORIZED,
            )
        except InvalidJsonError as exc:
            logger.error(
                "webhook_json_invalid",
                extra={"channel": "sellsy", "error": str(exc), "payload_size": len(raw_body)},
            )
            record_ingress_swallowed_error("invalid_json", get_correlation_id())
            return _accepted()

        logger.info(
            "webhook_received",
            extra={"channel": "sellsy", "payload_size": len(raw_body)},
        )
        await _enqueue_safe(request, payload)
        return _accepted()
    finally:
        reset_correlation_id(token)


async def _enqueue_safe(request: Request, payload: dict[str, Any]) -> None:
    """Enfileira o evento com timeout; nunca propaga exceção."""
    correlation_id = get_correlation_id()
    queue = getattr(request.app.state, "job_queue", None)
    if queue is None:
        logger.error("webhook_queue_not_configured", extra={"channel": "sellsy"})
        record_ingress_swallowed_error("queue_not_configured", correlation_id)
        return

    started_at = time.perf_counter()
    try:
        job_id = await asyncio.wait_for(
            queue.enqueue(JOB_NAME_SELLSY_EVENT, payload, correlation_id=correlation_id),
            timeout=get_queue_settings().enqueue_timeout_seconds,
        )
    except TimeoutError:
        logger.error("webhook_enqueue_timeout", extra={"channel": "sellsy"})
        record_ingress_swallowed_error("enqueue_timeout", correlation_id)
        return
    except Exception as exc:
        logger.error(
            "webhook_enqueue_failed",
            extra={"channel": "sellsy", "error_type": type(exc).__name__},
        )
        record_ingress_swallowed_error("enqueue_failed", correlation_id)
        return

    record_latency("ingress", "enqueue", (time.perf_counter() - started_at) * 1000, correlation_id)
    logger.info("webhook_enqueued", extra={"channel": "sellsy", "queued_job_id": job_id})
