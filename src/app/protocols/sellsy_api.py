"""Protocolo da API Sellsy usado pelo app.

Evita dependência direta da camada api.
"""

from __future__ import annotations

from typing import Any, Protocol


class SellsyApiProtocol(Protocol):
    """Contrato mínimo do cliente resiliente da API Sellsy."""

    async def get_estimate(self, estimate_id: int | str) -> dict[str, Any]: ...

    async def create_invoice(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def link_invoice_to_estimate(
        self,
        estimate_id: int | str,
        invoice_id: int | str,
    ) -> dict[str, Any]: ...
