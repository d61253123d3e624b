"""Testes dos modelos de domínio Sellsy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.domain.sellsy import InboundEvent


def test_sellsy_webhook_format() -> None:
    event = InboundEvent.model_validate(
        {"eventType": "DocsLog", "relatedtype": "Estimate", "relatedid": 42}
    )

    assert event.event_type == "docslog"
    assert event.related_type == "estimate"
    assert event.resource_id == "42"
    assert event.matches("estimate", ("docslog", "modification"))


def test_generic_format_with_embedded_object() -> None:
    event = InboundEvent.model_validate(
        {"type": "modification", "resource": "estimate", "data": {"id": 9, "status": "won"}}
    )

    assert event.resource_id == "9"
    assert event.related_object["status"] == "won"


def test_other_resource_does_not_match() -> None:
    event = InboundEvent.model_validate({"eventType": "docslog", "relatedtype": "invoice"})

    assert event.matches("estimate", ("docslog",)) is False
    assert event.resource_id is None


def test_missing_event_type_is_invalid() -> None:
    with pytest.raises(ValidationError):
        InboundEvent.model_validate({"relatedtype": "estimate"})


def test_event_is_immutable() -> None:
    event = InboundEvent.model_validate({"eventType": "docslog", "relatedtype": "estimate"})
    with pytest.raises(ValidationError):
        event.event_type = "other"  # type: ignore[misc]
