"""Connectors: adapters de borda para APIs externas.

Estrutura:
- sellsy/: assinatura de webhook, OAuth2 client-credentials e API v2
"""

__all__: list[str] = []
