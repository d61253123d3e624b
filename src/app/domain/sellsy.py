"""Modelos de domínio da integração Sellsy: evento de webhook e fatura.

InboundEvent é imutável depois de recebido e não carrega material de
assinatura (verificada no ingress sobre os bytes brutos).
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class InboundEvent(BaseModel):
    """Notificação Sellsy já aceita pelo ingress.

    Aceita o formato do webhook Sellsy (`eventType`, `relatedtype`,
    `relatedobject`/`relatedid`) e o formato `type`/`resource`/`data`.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    event_type: str = Field(
        ...,
        validation_alias=AliasChoices("eventType", "event_type", "type", "event"),
    )
    related_type: str = Field(
        ...,
        validation_alias=AliasChoices("relatedtype", "relatedType", "related_type", "resource"),
    )
    related_object: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("relatedobject", "relatedObject", "related_object", "data"),
    )
    related_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("relatedid", "relatedId", "related_id"),
    )

    @field_validator("event_type", "related_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        return str(value or "").strip().lower()

    @field_validator("related_id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("related_object", mode="before")
    @classmethod
    def _default_object(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def resource_id(self) -> str | None:
        """Id do recurso relacionado (objeto embutido ou `relatedid`)."""
        object_id = self.related_object.get("id")
        if object_id not in (None, ""):
            return str(object_id)
        return self.related_id

    def matches(self, related_type: str, event_types: tuple[str, ...]) -> bool:
        return self.related_type == related_type and self.event_type in event_types


class InvoiceRow(BaseModel):
    """Linha da fatura. Campos ausentes na origem ficam fora do payload."""

    model_config = ConfigDict(extra="forbid")

    type: str = "single"
    description: str | None = None
    quantity: str | float | int | None = None
    unit_amount: str | float | int | None = None
    tax_id: int | str | None = None
    related: dict[str, Any] | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class InvoiceDraft(BaseModel):
    """Payload de criação de fatura derivado de um devis aceito.

    Nunca reutilizado entre devis: cada devis aceito gera o seu.
    """

    model_config = ConfigDict(extra="forbid")

    related: list[dict[str, Any]]
    rows: list[InvoiceRow]
    subject: str
    date: str
    currency: str | None = None
    note: str | None = None
    conditions: str | None = None
    custom_fields: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, mode="json")


__all__ = ["InboundEvent", "InvoiceDraft", "InvoiceRow"]
