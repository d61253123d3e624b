"""Agregador de settings de infraestrutura."""

from __future__ import annotations

from config.settings.infra.queue import (
    QueueBackend,
    QueueSettings,
    get_queue_settings,
)

__all__ = [
    "QueueBackend",
    "QueueSettings",
    "get_queue_settings",
]
