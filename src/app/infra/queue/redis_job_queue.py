"""Fila durável de jobs sobre Redis (padrão reliable queue).

Chaves (prefixo = nome da fila):
    <fila>:waiting    LIST  jobs prontos (LPUSH no enqueue, consumo pela direita)
    <fila>:active     LIST  jobs em execução
    <fila>:leases     ZSET  entrada ativa -> expiração da execução
    <fila>:delayed    ZSET  job serializado -> instante do retry
    <fila>:completed  LIST  últimos N concluídos (inspeção)
    <fila>:failed     LIST  últimos N falhos (inspeção)

Entrega at-least-once: o claim (promoção de retries vencidos, move
waiting -> active e lease) roda num único script Lua, então toda entrada
em `active` nasce com lease. Um job só sai de `active` depois de
concluído, reagendado ou falho; entradas com lease vencido (worker morto)
ou sem lease voltam para `waiting` em recover_stale().
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from app.protocols.job_queue import Job
from utils.errors import QueueUnavailableError

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

# KEYS: waiting, active, delayed, leases | ARGV: agora, expiração do lease
CLAIM_SCRIPT = """
local due = redis.call('ZRANGEBYSCORE', KEYS[3], '-inf', ARGV[1])
for _, raw in ipairs(due) do
    redis.call('ZREM', KEYS[3], raw)
    redis.call('LPUSH', KEYS[1], raw)
end
local raw = redis.call('RPOPLPUSH', KEYS[1], KEYS[2])
if raw then
    redis.call('ZADD', KEYS[4], ARGV[2], raw)
end
return raw
"""

# KEYS: active, waiting, leases | ARGV: agora
RECOVER_SCRIPT = """
local now = tonumber(ARGV[1])
local recovered = 0
for _, raw in ipairs(redis.call('LRANGE', KEYS[1], 0, -1)) do
    local expires_at = redis.call('ZSCORE', KEYS[3], raw)
    if (not expires_at) or tonumber(expires_at) <= now then
        redis.call('LREM', KEYS[1], 1, raw)
        redis.call('RPUSH', KEYS[2], raw)
        redis.call('ZREM', KEYS[3], raw)
        recovered = recovered + 1
    end
end
return recovered
"""


class RedisJobQueue:
    """Produtor e consumidor da fila Redis.

    Args:
        redis_client: Cliente redis.asyncio com decode_responses=True
        queue_name: Prefixo das chaves
        max_attempts: Tentativas gravadas em cada job enfileirado
        keep_completed: Jobs concluídos mantidos para inspeção
        keep_failed: Jobs falhos mantidos para inspeção
        lease_seconds: Tempo após o qual um job ativo é considerado órfão
    """

    def __init__(
        self,
        redis_client: AsyncRedis,
        queue_name: str = "sellsy-webhooks",
        *,
        max_attempts: int = 3,
        keep_completed: int = 100,
        keep_failed: int = 50,
        lease_seconds: float = 120.0,
    ) -> None:
        self._redis = redis_client
        self._name = queue_name
        self._max_attempts = max_attempts
        self._keep_completed = keep_completed
        self._keep_failed = keep_failed
        self._lease_seconds = lease_seconds
        self._claim = redis_client.register_script(CLAIM_SCRIPT)
        self._recover = redis_client.register_script(RECOVER_SCRIPT)
        self._raw_by_id: dict[str, str] = {}

    def key(self, suffix: str) -> str:
        return f"{self._name}:{suffix}"

    async def enqueue(
        self,
        job_name: str,
        payload: dict[str, Any],
        *,
        correlation_id: str = "",
    ) -> str:
        """Enfileira um job. Levanta QueueUnavailableError se o Redis falhar."""
        job = Job(
            name=job_name,
            payload=payload,
            correlation_id=correlation_id,
            max_attempts=self._max_attempts,
        )
        try:
            await self._redis.lpush(self.key("waiting"), _dumps(job))
        except Exception as exc:
            raise QueueUnavailableError("Falha ao enfileirar job no Redis") from exc
        return job.id

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def recover_stale(self) -> int:
        """Devolve para `waiting` jobs ativos com lease vencido ou ausente.

        Como o claim grava o lease atomicamente, uma entrada ativa sem
        lease só existe se o lease foi perdido; ela é tratada como órfã.
        A varredura é um script: um job concluído durante a varredura
        não volta para a fila.
        """
        try:
            recovered = int(
                await self._recover(
                    keys=[self.key("active"), self.key("waiting"), self.key("leases")],
                    args=[time.time()],
                )
            )
        except Exception as exc:
            raise QueueUnavailableError("Falha ao recuperar jobs órfãos") from exc
        if recovered:
            logger.warning("queue_stale_jobs_recovered", extra={"recovered": recovered})
        return recovered

    async def dequeue(self, timeout_seconds: float) -> Job | None:
        """Faz o claim do próximo job, esperando até `timeout_seconds`.

        A espera usa BLMOVE de `waiting` para ela mesma (rotação sem efeito)
        só para acordar quando houver job; o claim em si é o script.
        """
        deadline = time.monotonic() + timeout_seconds
        while True:
            raw = await self._claim_next()
            if raw is not None:
                job = await self._parse_claimed(raw)
                if job is not None:
                    return job
                continue

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                woke = await self._redis.blmove(
                    self.key("waiting"),
                    self.key("waiting"),
                    remaining,
                    "RIGHT",
                    "RIGHT",
                )
            except Exception as exc:
                raise QueueUnavailableError("Falha ao aguardar jobs no Redis") from exc
            if woke is None:
                return None

    async def complete(self, job: Job) -> None:
        await self._finish(job, "completed", self._keep_completed)

    async def fail(self, job: Job) -> None:
        await self._finish(job, "failed", self._keep_failed)

    async def retry(self, job: Job, delay_seconds: float) -> None:
        raw = self._raw_by_id.pop(job.id, None)
        try:
            pipeline = self._redis.pipeline(transaction=True)
            if raw is not None:
                pipeline.lrem(self.key("active"), 1, raw)
                pipeline.zrem(self.key("leases"), raw)
            pipeline.zadd(self.key("delayed"), {_dumps(job): time.time() + delay_seconds})
            await pipeline.execute()
        except Exception as exc:
            raise QueueUnavailableError("Falha ao reagendar job no Redis") from exc

    async def _claim_next(self) -> str | None:
        now = time.time()
        try:
            return await self._claim(
                keys=[
                    self.key("waiting"),
                    self.key("active"),
                    self.key("delayed"),
                    self.key("leases"),
                ],
                args=[now, now + self._lease_seconds],
            )
        except Exception as exc:
            raise QueueUnavailableError("Falha ao consumir job do Redis") from exc

    async def _parse_claimed(self, raw: str) -> Job | None:
        try:
            job = Job.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error(
                "queue_job_unparseable",
                extra={"queue": self._name, "error_type": type(exc).__name__},
            )
            record = {"raw": raw[:500], "last_error": f"{type(exc).__name__}: unparseable job"}
            await self._move_out(raw, "failed", self._keep_failed, record)
            return None

        job.attempts += 1
        self._raw_by_id[job.id] = raw
        return job

    async def _finish(self, job: Job, bucket: str, keep: int) -> None:
        record = {
            "id": job.id,
            "name": job.name,
            "attempts": job.attempts,
            "correlation_id": job.correlation_id,
            "last_error": job.last_error,
        }
        await self._move_out(self._raw_by_id.pop(job.id, None), bucket, keep, record)

    async def _move_out(
        self,
        raw: str | None,
        bucket: str,
        keep: int,
        record: dict[str, Any],
    ) -> None:
        record["finished_at"] = time.time()
        try:
            pipeline = self._redis.pipeline(transaction=True)
            if raw is not None:
                pipeline.lrem(self.key("active"), 1, raw)
                pipeline.zrem(self.key("leases"), raw)
            pipeline.lpush(self.key(bucket), json.dumps(record))
            pipeline.ltrim(self.key(bucket), 0, max(keep, 1) - 1)
            await pipeline.execute()
        except Exception as exc:
            raise QueueUnavailableError(f"Falha ao mover job para {bucket}") from exc


def _dumps(job: Job) -> str:
    return json.dumps(job.to_dict(), separators=(",", ":"), default=str)
