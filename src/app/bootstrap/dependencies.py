"""Factories: criação de implementações concretas a partir das settings.

Composition root compartilhado pelo ingress (app.app) e pelo worker
(app.worker): cada processo monta apenas o que usa.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from api.connectors.sellsy import create_sellsy_http_client
from app.bootstrap.clients import create_async_redis_client
from app.infra.queue import MemoryJobQueue, RedisJobQueue
from app.infra.stores import MemoryDedupeStore, RedisDedupeStore
from app.use_cases.sellsy import EventRoutingRules, ProcessWebhookEventUseCase
from config.settings import (
    get_base_settings,
    get_dedupe_settings,
    get_queue_settings,
    get_sellsy_settings,
)

if TYPE_CHECKING:
    from api.connectors.sellsy import SellsyHttpClient
    from app.protocols.dedupe import AsyncDedupeProtocol
    from app.protocols.sellsy_api import SellsyApiProtocol

logger = logging.getLogger(__name__)


def create_job_queue() -> MemoryJobQueue | RedisJobQueue:
    """Cria a fila conforme QUEUE_BACKEND.

    - "memory": MemoryJobQueue (dev only, worker roda no processo da API)
    - "redis": RedisJobQueue (staging/production)
    """
    settings = get_queue_settings()

    if settings.backend == "redis":
        queue = RedisJobQueue(
            create_async_redis_client(),
            settings.queue_name,
            max_attempts=settings.max_attempts,
            keep_completed=settings.keep_completed,
            keep_failed=settings.keep_failed,
            lease_seconds=settings.job_timeout_seconds * 2,
        )
        logger.info("job_queue_created", extra={"backend": "redis", "queue": settings.queue_name})
        return queue

    if not get_base_settings().is_development:
        logger.warning("memory_queue_in_non_dev", extra={"backend": "memory"})
    queue_memory = MemoryJobQueue(
        max_attempts=settings.max_attempts,
        keep_completed=settings.keep_completed,
        keep_failed=settings.keep_failed,
    )
    logger.info("job_queue_created", extra={"backend": "memory"})
    return queue_memory


def create_dedupe_store() -> AsyncDedupeProtocol:
    """Cria store de dedupe conforme DEDUPE_BACKEND."""
    settings = get_dedupe_settings()

    if settings.backend == "redis":
        store: AsyncDedupeProtocol = RedisDedupeStore(create_async_redis_client())
        logger.info("dedupe_store_created", extra={"backend": "redis"})
        return store

    if not get_base_settings().is_development:
        logger.warning("memory_dedupe_in_non_dev", extra={"backend": "memory"})
    store = MemoryDedupeStore()
    logger.info("dedupe_store_created", extra={"backend": "memory"})
    return store


def create_sellsy_client() -> SellsyHttpClient:
    return create_sellsy_http_client(get_sellsy_settings())


def create_event_routing_rules() -> EventRoutingRules:
    """Regras de roteamento a partir de SellsySettings e DedupeSettings."""
    sellsy = get_sellsy_settings()
    dedupe = get_dedupe_settings()
    return EventRoutingRules(
        related_type=sellsy.trigger_related_type,
        event_types=tuple(sellsy.trigger_event_types),
        accepted_statuses=tuple(sellsy.accepted_statuses),
        link_back_enabled=sellsy.link_back_enabled,
        dedupe_ttl_seconds=dedupe.ttl_seconds,
        processing_ttl_seconds=dedupe.processing_ttl_seconds,
    )


def create_process_webhook_event_use_case(
    api: SellsyApiProtocol,
    dedupe: AsyncDedupeProtocol | None = None,
) -> ProcessWebhookEventUseCase:
    return ProcessWebhookEventUseCase(
        api=api,
        dedupe=dedupe or create_dedupe_store(),
        rules=create_event_routing_rules(),
    )
