"""Stores em memória: apenas para desenvolvimento e testes.

ATENÇÃO: Não usar em staging/production. Sem persistência entre reinícios
e sem compartilhamento entre processos.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from app.protocols.dedupe import AsyncDedupeProtocol

if TYPE_CHECKING:
    from collections.abc import Callable


class MemoryDedupeStore(AsyncDedupeProtocol):
    """Store de dedupe em memória com TTL: apenas para dev/test."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._processed: dict[str, float] = {}
        self._processing: dict[str, float] = {}

    def _alive(self, entries: dict[str, float], key: str) -> bool:
        expires_at = entries.get(key)
        if expires_at is None:
            return False
        if self._clock() >= expires_at:
            del entries[key]
            return False
        return True

    async def is_duplicate(self, key: str) -> bool:
        return self._alive(self._processed, key) or self._alive(self._processing, key)

    async def is_processed(self, key: str) -> bool:
        return self._alive(self._processed, key)

    async def mark_processing(self, key: str, ttl: int) -> bool:
        if self._alive(self._processing, key):
            return False
        self._processing[key] = self._clock() + ttl
        return True

    async def mark_processed(self, key: str, ttl: int) -> None:
        self._processed[key] = self._clock() + ttl
        self._processing.pop(key, None)

    async def unmark_processing(self, key: str) -> None:
        self._processing.pop(key, None)
