"""Exceções utilitárias compartilhadas."""

from .exceptions import (
    AuthError,
    ConcurrentProcessingError,
    InfrastructureError,
    InvalidEventPayloadError,
    InvalidSourceDocumentError,
    MissingRequiredReferenceError,
    PermanentJobError,
    QueueUnavailableError,
    RedisConnectionError,
    SellsyApiError,
)

__all__ = [
    "AuthError",
    "ConcurrentProcessingError",
    "InfrastructureError",
    "InvalidEventPayloadError",
    "InvalidSourceDocumentError",
    "MissingRequiredReferenceError",
    "PermanentJobError",
    "QueueUnavailableError",
    "RedisConnectionError",
    "SellsyApiError",
]
