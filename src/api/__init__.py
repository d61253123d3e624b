"""API: camada de borda.

Responsabilidades:
- Receber webhooks da Sellsy e validar assinatura sobre o corpo bruto
- Falar com a API Sellsy v2 (OAuth2, retry, backoff)

Subpastas:
- connectors/: adapters HTTP (Sellsy)
- routes/: endpoints HTTP (webhook, health)

NÃO PODE conter: regras de negócio do devis/fatura nem acesso à fila
além do enqueue do ingress.
"""
