"""Stores de infraestrutura (dedupe)."""

from .memory_stores import MemoryDedupeStore
from .redis_dedupe_store import RedisDedupeStore

__all__ = ["MemoryDedupeStore", "RedisDedupeStore"]
