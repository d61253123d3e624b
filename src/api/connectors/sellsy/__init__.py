"""Conector Sellsy: assinatura de webhook, OAuth2 e cliente da API v2."""

from .http_base import HttpClientConfig, RetryPolicy
from .http_client import SellsyHttpClient, create_sellsy_http_client
from .signature import SignatureResult, sign_sellsy_payload, verify_sellsy_signature
from .token_manager import AccessToken, ClientCredentialsExchange, TokenManager, TokenState

__all__ = [
    "AccessToken",
    "ClientCredentialsExchange",
    "HttpClientConfig",
    "RetryPolicy",
    "SellsyHttpClient",
    "SignatureResult",
    "TokenManager",
    "TokenState",
    "create_sellsy_http_client",
    "sign_sellsy_payload",
    "verify_sellsy_signature",
]
