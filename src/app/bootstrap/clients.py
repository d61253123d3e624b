"""Factories de clientes externos: Redis e HTTP da Sellsy."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from config.settings import get_base_settings

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def create_async_redis_client() -> AsyncRedis:
    """Cria cliente Redis assíncrono (singleton por processo).

    Respostas decodificadas como str: fila e dedupe guardam JSON/texto.

    Raises:
        ValueError: Se REDIS_URL não configurado
    """
    from redis.asyncio import Redis as AsyncRedis

    redis_url = get_base_settings().redis_url
    if not redis_url:
        msg = "REDIS_URL não configurado"
        raise ValueError(msg)

    # socket_timeout acima do BLMOVE do worker (poll de 1s)
    client: AsyncRedis = AsyncRedis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=10.0,
        socket_connect_timeout=5.0,
        health_check_interval=30,
    )

    host = client.connection_pool.connection_kwargs.get("host", "unknown")
    logger.info("async_redis_client_created", extra={"host": host})
    return client


async def close_async_redis_client() -> None:
    """Fecha o cliente Redis se ele chegou a ser criado."""
    if create_async_redis_client.cache_info().currsize == 0:
        return
    client = create_async_redis_client()
    await client.aclose()
    create_async_redis_client.cache_clear()
    logger.info("async_redis_client_closed")
