"""Serviços de aplicação.

Transformações puras, sem IO. Implementações de IO ficam em app/infra/.
"""

from app.services.invoice_mapper import build_invoice_draft, map_row, resolve_customer

__all__ = [
    "build_invoice_draft",
    "map_row",
    "resolve_customer",
]
