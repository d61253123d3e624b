"""Redis Dedupe Store: idempotência da criação de faturas.

Usa SET NX EX para o lock de processamento (atômico entre workers) e
SETEX para a marca definitiva de documento já processado.

Contrato de Keys:
    Keys são ids opacos (ex.: "invoice:estimate:42"), nunca PII.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.protocols.dedupe import AsyncDedupeProtocol
from utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

DEDUPE_PREFIX = "dedupe:"


class RedisDedupeStore(AsyncDedupeProtocol):
    """Store de dedupe usando Redis assíncrono.

    Args:
        redis_client: Cliente redis.asyncio
    """

    def __init__(self, redis_client: AsyncRedis) -> None:
        self._redis = redis_client

    def _key(self, key: str) -> str:
        return f"{DEDUPE_PREFIX}{key}"

    def _processing_key(self, key: str) -> str:
        return f"{DEDUPE_PREFIX}processing:{key}"

    async def is_duplicate(self, key: str) -> bool:
        try:
            # Verificação conjunta reduz janela de race entre check e mark
            pipeline = self._redis.pipeline()
            pipeline.exists(self._key(key))
            pipeline.exists(self._processing_key(key))
            exists_processed, exists_processing = await pipeline.execute()
        except Exception as exc:
            raise RedisConnectionError("Falha ao consultar dedupe no Redis") from exc
        return bool(exists_processed or exists_processing)

    async def is_processed(self, key: str) -> bool:
        try:
            exists = await self._redis.exists(self._key(key))
        except Exception as exc:
            raise RedisConnectionError("Falha ao consultar dedupe no Redis") from exc
        return bool(exists)

    async def mark_processing(self, key: str, ttl: int) -> bool:
        try:
            acquired = await self._redis.set(self._processing_key(key), "1", nx=True, ex=ttl)
        except Exception as exc:
            raise RedisConnectionError("Falha ao marcar processamento no Redis") from exc
        if not acquired:
            logger.debug("dedupe_processing_lock_busy", extra={"key": key})
        return bool(acquired)

    async def mark_processed(self, key: str, ttl: int) -> None:
        try:
            # MULTI: a marca existe antes de o lock sumir
            pipeline = self._redis.pipeline(transaction=True)
            pipeline.setex(self._key(key), ttl, "1")
            pipeline.delete(self._processing_key(key))
            await pipeline.execute()
        except Exception as exc:
            raise RedisConnectionError("Falha ao concluir dedupe no Redis") from exc
        logger.debug("dedupe_marked", extra={"key": key, "ttl": ttl})

    async def unmark_processing(self, key: str) -> None:
        try:
            await self._redis.delete(self._processing_key(key))
        except Exception as exc:
            raise RedisConnectionError("Falha ao remover lock de dedupe no Redis") from exc
