"""Adapters da fila durável de jobs e pool de consumidores."""

from .memory_job_queue import MemoryJobQueue
from .redis_job_queue import RedisJobQueue
from .worker import JobWorker

__all__ = ["JobWorker", "MemoryJobQueue", "RedisJobQueue"]
