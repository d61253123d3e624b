"""Protocolo de deduplicação usado pela criação idempotente de faturas."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AsyncDedupeProtocol(ABC):
    """Contrato assíncrono para stores de deduplicação.

    Ciclo por chave:
    - is_duplicate(): já processada ou em processamento?
    - mark_processing(): lock curto enquanto o efeito colateral acontece
    - is_processed(): revalidação depois do lock (outro job pode ter concluído)
    - mark_processed(): marca definitiva com TTL longo
    - unmark_processing(): libera o lock se o processamento falhar
    """

    @abstractmethod
    async def is_duplicate(self, key: str) -> bool:
        """Retorna True se a chave já foi processada ou está em processamento."""

    @abstractmethod
    async def is_processed(self, key: str) -> bool:
        """Retorna True apenas se a marca definitiva existir (ignora o lock)."""

    @abstractmethod
    async def mark_processing(self, key: str, ttl: int) -> bool:
        """Tenta adquirir o lock de processamento.

        Returns:
            True se adquiriu; False se outro worker já detém o lock.
        """

    @abstractmethod
    async def mark_processed(self, key: str, ttl: int) -> None:
        """Marca a chave como processada e libera o lock."""

    @abstractmethod
    async def unmark_processing(self, key: str) -> None:
        """Remove o lock de processamento após falha."""
