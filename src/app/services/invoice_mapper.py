"""Transformação devis aceito -> payload de criação de fatura.

Regras:
- linhas vêm de `rows` (API v2) ou `items` (formato legado);
- cada campo opcional só entra no payload se existir na origem;
- o cliente (company/individual) é obrigatório: sem ele a fatura não é criada;
- a referência do devis de origem segue em `custom_fields`.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import ValidationError

from app.domain.sellsy import InvoiceDraft, InvoiceRow
from utils.errors import InvalidSourceDocumentError, MissingRequiredReferenceError

CUSTOMER_TYPES = ("company", "individual")
DEFAULT_SUBJECT = "Sans objet"
SOURCE_ESTIMATE_FIELD = "source_estimate"


def build_invoice_draft(estimate: dict[str, Any], today: date | None = None) -> InvoiceDraft:
    """Monta o InvoiceDraft a partir do devis completo.

    Args:
        estimate: Devis lido da API (fresco, nunca do webhook)
        today: Data da fatura (injetável em testes)

    Raises:
        MissingRequiredReferenceError: Devis sem cliente resolvível
        InvalidSourceDocumentError: Devis sem linhas faturáveis ou com campos inválidos
    """
    estimate_id = estimate.get("id")
    customer = resolve_customer(estimate)
    rows = map_rows(estimate)
    if not rows:
        raise InvalidSourceDocumentError(f"estimate {estimate_id} has no rows")

    custom_fields: dict[str, Any] = {SOURCE_ESTIMATE_FIELD: estimate_id}
    number = estimate.get("number")
    if number:
        custom_fields["source_estimate_number"] = number

    subject = _non_empty(estimate.get("subject")) or DEFAULT_SUBJECT
    try:
        return InvoiceDraft(
            related=[customer],
            rows=rows,
            subject=f"Facture - {subject}",
            date=(today or date.today()).isoformat(),
            currency=_non_empty(estimate.get("currency")),
            note=_non_empty(estimate.get("note")),
            conditions=_non_empty(estimate.get("conditions")),
            custom_fields=custom_fields,
        )
    except ValidationError as exc:
        raise InvalidSourceDocumentError(
            f"estimate {estimate_id} produced an invalid invoice: {exc.error_count()} error(s)"
        ) from exc


def resolve_customer(estimate: dict[str, Any]) -> dict[str, Any]:
    """Encontra a referência do cliente na lista `related` do devis.

    Aceita também o formato legado `third.id` / `company_id`.
    """
    for relation in estimate.get("related") or ():
        if not isinstance(relation, dict):
            continue
        relation_type = str(relation.get("type") or "").lower()
        relation_id = relation.get("id")
        if relation_type in CUSTOMER_TYPES and relation_id not in (None, ""):
            return {"id": relation_id, "type": relation_type}

    third = estimate.get("third")
    if isinstance(third, dict) and third.get("id") not in (None, ""):
        return {"id": third["id"], "type": str(third.get("type") or "company").lower()}

    company_id = estimate.get("company_id")
    if company_id not in (None, ""):
        return {"id": company_id, "type": "company"}

    raise MissingRequiredReferenceError(
        f"estimate {estimate.get('id')} has no customer reference"
    )


def map_rows(estimate: dict[str, Any]) -> list[InvoiceRow]:
    source_rows = estimate.get("rows")
    if source_rows is None:
        source_rows = estimate.get("items")
    return [map_row(row) for row in source_rows or () if isinstance(row, dict)]


def map_row(row: dict[str, Any]) -> InvoiceRow:
    """Converte uma linha do devis. Campos ausentes não viram null.

    Raises:
        InvalidSourceDocumentError: Campo com tipo inaceitável (sem retry)
    """
    fields: dict[str, Any] = {}

    row_type = _non_empty(row.get("type"))
    if row_type:
        fields["type"] = row_type

    description = row.get("description")
    if description not in (None, ""):
        fields["description"] = description

    quantity = row.get("quantity")
    if quantity not in (None, ""):
        fields["quantity"] = quantity

    unit_amount = _first_present(row, "unit_amount", "unitAmount")
    if unit_amount is not None:
        fields["unit_amount"] = unit_amount

    tax_id = _resolve_tax_id(row)
    if tax_id is not None:
        fields["tax_id"] = tax_id

    related = _resolve_product(row)
    if related is not None:
        fields["related"] = related
        fields.setdefault("type", "catalog")

    try:
        return InvoiceRow(**fields)
    except ValidationError as exc:
        fields_in_error = sorted({str(error["loc"][0]) for error in exc.errors() if error["loc"]})
        raise InvalidSourceDocumentError(
            f"invalid estimate row fields: {', '.join(fields_in_error)}"
        ) from exc


def _resolve_tax_id(row: dict[str, Any]) -> Any:
    tax_id = _first_present(row, "tax_id", "taxId")
    if tax_id is not None:
        return tax_id
    tax = row.get("tax")
    if isinstance(tax, dict) and tax.get("id") not in (None, ""):
        return tax["id"]
    tax1 = row.get("tax1")
    if isinstance(tax1, dict):
        return tax1.get("id")
    return tax1 if tax1 not in (None, "") else None


def _resolve_product(row: dict[str, Any]) -> dict[str, Any] | None:
    related = row.get("related")
    if isinstance(related, dict) and related.get("id") not in (None, ""):
        return {"id": related["id"], "type": related.get("type") or "product"}
    product = row.get("product")
    if isinstance(product, dict) and product.get("id") not in (None, ""):
        return {"id": product["id"], "type": "product"}
    return None


def _first_present(row: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def _non_empty(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
