"""Use cases da integração Sellsy."""

from .process_webhook_event import (
    EventRoutingRules,
    ProcessingOutcome,
    ProcessingResult,
    ProcessWebhookEventUseCase,
)

__all__ = [
    "EventRoutingRules",
    "ProcessWebhookEventUseCase",
    "ProcessingOutcome",
    "ProcessingResult",
]
