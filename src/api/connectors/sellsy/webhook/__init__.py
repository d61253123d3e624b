"""Webhook Sellsy: assinatura e parsing seguro."""

from ..signature import SignatureResult, check_sellsy_signature, verify_sellsy_signature
from .receive import (
    InvalidJsonError,
    InvalidSignatureError,
    WebhookRequestError,
    parse_webhook_request,
)

__all__ = [
    "InvalidJsonError",
    "InvalidSignatureError",
    "SignatureResult",
    "WebhookRequestError",
    "check_sellsy_signature",
    "parse_webhook_request",
    "verify_sellsy_signature",
]
