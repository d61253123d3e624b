"""Use case: evento de webhook Sellsy -> zero ou uma fatura criada.

Máquina de estados por job:

    Received -> Filtered(irrelevante, terminal)
             -> Filtered(relevante) -> Fetched -> Evaluated(status rejeitado, terminal)
                                               -> Evaluated(aceito) -> Transformed -> Created
    Qualquer passo com erro não classificado -> Failed (retry pela fila)

Idempotência: a fila entrega at-least-once, então a criação da fatura é
protegida por dedupe com chave `invoice:estimate:<id>` (lock curto durante
a criação + marca longa depois). A garantia vale dentro do TTL da marca.
Limite conhecido: se o timeout do worker cancelar o job durante o POST
da fatura, o lock é liberado sem marca e o retry pode criar outra fatura
caso o Sellsy já tenha aceitado a primeira.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from app.domain.sellsy import InboundEvent
from app.observability import record_latency
from app.services.invoice_mapper import build_invoice_draft
from utils.errors import ConcurrentProcessingError, InvalidEventPayloadError

if TYPE_CHECKING:
    from collections.abc import Callable

    from app.protocols.dedupe import AsyncDedupeProtocol
    from app.protocols.sellsy_api import SellsyApiProtocol

logger = logging.getLogger(__name__)

DEDUPE_KEY_PREFIX = "invoice:estimate:"


class ProcessingOutcome(Enum):
    IGNORED_IRRELEVANT = "ignored_irrelevant"
    IGNORED_STATUS = "ignored_status"
    ALREADY_INVOICED = "already_invoiced"
    INVOICE_CREATED = "invoice_created"


@dataclass(frozen=True, slots=True)
class ProcessingResult:
    """Resumo do processamento de um evento (sem PII)."""

    outcome: ProcessingOutcome
    estimate_id: str | None = None
    estimate_status: str | None = None
    invoice_id: str | None = None
    linked: bool = False


@dataclass(frozen=True)
class EventRoutingRules:
    """Regras de disparo: par (relatedtype, eventType) e status aceitos."""

    related_type: str = "estimate"
    event_types: tuple[str, ...] = ("docslog", "modification")
    accepted_statuses: tuple[str, ...] = ("accepted", "won", "signed")
    link_back_enabled: bool = True
    dedupe_ttl_seconds: int = 30 * 86400
    processing_ttl_seconds: int = 120


class ProcessWebhookEventUseCase:
    """Classifica o evento e cria a fatura de um devis aceito.

    Args:
        api: Cliente resiliente da API Sellsy
        dedupe: Store de idempotência
        rules: Regras de disparo/aceite
        today: Fonte da data da fatura (injetável em testes)
    """

    def __init__(
        self,
        api: SellsyApiProtocol,
        dedupe: AsyncDedupeProtocol,
        rules: EventRoutingRules | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._api = api
        self._dedupe = dedupe
        self._rules = rules or EventRoutingRules()
        self._today = today

    async def execute(self, payload: dict[str, Any]) -> ProcessingResult:
        """Processa um payload de webhook já aceito pelo ingress.

        Raises:
            InvalidEventPayloadError: Payload sem tipo/recurso interpretável
            MissingRequiredReferenceError: Devis aceito sem cliente
            ConcurrentProcessingError: Outro job está criando a mesma fatura
            SellsyApiError: Falha da API após esgotar o retry por chamada
        """
        event = _parse_event(payload)
        if not event.matches(self._rules.related_type, self._rules.event_types):
            logger.info(
                "sellsy_event_ignored",
                extra={"related_type": event.related_type, "event_type": event.event_type},
            )
            return ProcessingResult(outcome=ProcessingOutcome.IGNORED_IRRELEVANT)

        estimate_id = event.resource_id
        if not estimate_id:
            raise InvalidEventPayloadError("relevant event without related object id")

        dedupe_key = f"{DEDUPE_KEY_PREFIX}{estimate_id}"
        if await self._dedupe.is_duplicate(dedupe_key):
            logger.info("estimate_already_invoiced", extra={"estimate_id": estimate_id})
            return ProcessingResult(
                outcome=ProcessingOutcome.ALREADY_INVOICED,
                estimate_id=estimate_id,
            )

        # Payload do webhook é parcial/defasado: status autoritativo vem da API
        estimate = await self._api.get_estimate(estimate_id)
        status = str(estimate.get("status") or "").lower()
        if status not in self._rules.accepted_statuses:
            logger.info(
                "estimate_not_accepted",
                extra={"estimate_id": estimate_id, "estimate_status": status},
            )
            return ProcessingResult(
                outcome=ProcessingOutcome.IGNORED_STATUS,
                estimate_id=estimate_id,
                estimate_status=status,
            )

        draft = build_invoice_draft(estimate, today=self._today())
        if not await self._acquire_lock(dedupe_key, estimate_id):
            return ProcessingResult(
                outcome=ProcessingOutcome.ALREADY_INVOICED,
                estimate_id=estimate_id,
                estimate_status=status,
            )
        invoice_id = await self._create_invoice_locked(dedupe_key, estimate_id, draft.to_payload())

        linked = False
        if self._rules.link_back_enabled and invoice_id is not None:
            linked = await self._link_back(estimate_id, invoice_id)

        return ProcessingResult(
            outcome=ProcessingOutcome.INVOICE_CREATED,
            estimate_id=estimate_id,
            estimate_status=status,
            invoice_id=invoice_id,
            linked=linked,
        )

    async def _acquire_lock(self, dedupe_key: str, estimate_id: str) -> bool:
        """Adquire o lock de criação e revalida a marca de processado.

        Um job concorrente pode ter passado pelo primeiro is_duplicate e
        concluído a fatura enquanto este buscava o devis; mark_processed
        grava a marca antes de soltar o lock, então a revalidação aqui
        enxerga a fatura já criada.

        Returns:
            False se o devis já foi faturado (lock liberado)

        Raises:
            ConcurrentProcessingError: Outro job detém o lock
        """
        acquired = await self._dedupe.mark_processing(
            dedupe_key, self._rules.processing_ttl_seconds
        )
        if not acquired:
            raise ConcurrentProcessingError(f"estimate {estimate_id} is being invoiced")

        try:
            processed = await self._dedupe.is_processed(dedupe_key)
        except BaseException:
            await self._release_lock(dedupe_key)
            raise
        if processed:
            await self._release_lock(dedupe_key)
            logger.info(
                "estimate_already_invoiced",
                extra={"estimate_id": estimate_id, "checked_after_lock": True},
            )
            return False
        return True

    async def _create_invoice_locked(
        self,
        dedupe_key: str,
        estimate_id: str,
        invoice_payload: dict[str, Any],
    ) -> str | None:
        started_at = time.perf_counter()
        try:
            invoice = await self._api.create_invoice(invoice_payload)
        except BaseException:
            await self._release_lock(dedupe_key)
            raise
        record_latency("event_router", "create_invoice", (time.perf_counter() - started_at) * 1000)

        raw_invoice_id = invoice.get("id") if isinstance(invoice, dict) else None
        invoice_id = str(raw_invoice_id) if raw_invoice_id is not None else None
        logger.info(
            "invoice_created",
            extra={
                "estimate_id": estimate_id,
                "invoice_id": invoice_id,
                "row_count": len(invoice_payload.get("rows", ())),
            },
        )

        try:
            await self._dedupe.mark_processed(dedupe_key, self._rules.dedupe_ttl_seconds)
        except Exception as exc:
            # Fatura já existe: falhar o job agora causaria duplicata no retry
            logger.error(
                "invoice_dedupe_mark_failed",
                extra={"estimate_id": estimate_id, "error_type": type(exc).__name__},
            )
        return invoice_id

    async def _release_lock(self, dedupe_key: str) -> None:
        try:
            await self._dedupe.unmark_processing(dedupe_key)
        except Exception as exc:
            logger.warning(
                "invoice_dedupe_unlock_failed",
                extra={"dedupe_key": dedupe_key, "error_type": type(exc).__name__},
            )

    async def _link_back(self, estimate_id: str, invoice_id: str) -> bool:
        """Grava a fatura no devis. Best-effort: falha nunca falha o job."""
        try:
            await self._api.link_invoice_to_estimate(estimate_id, invoice_id)
        except Exception as exc:
            logger.warning(
                "invoice_backlink_failed",
                extra={
                    "estimate_id": estimate_id,
                    "invoice_id": invoice_id,
                    "error_type": type(exc).__name__,
                },
            )
            return False
        logger.info(
            "invoice_linked_to_estimate",
            extra={"estimate_id": estimate_id, "invoice_id": invoice_id},
        )
        return True


def _parse_event(payload: dict[str, Any]) -> InboundEvent:
    try:
        return InboundEvent.model_validate(payload)
    except ValidationError as exc:
        raise InvalidEventPayloadError("invalid_event_payload") from exc
