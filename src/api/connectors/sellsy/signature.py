"""Validação de assinatura dos webhooks Sellsy.

A Sellsy assina cada notificação com SHA-1 hex de `sign_key + corpo bruto`
e envia o resultado no header `X-Webhook-Signature`. O digest é sempre
calculado sobre os bytes recebidos, nunca sobre o JSON re-serializado.
"""

from __future__ import annotations

import hashlib
import hmac
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

SIGNATURE_HEADER = "x-webhook-signature"

_DIGEST_HEX_LENGTH = hashlib.sha1().digest_size * 2
_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass(frozen=True, slots=True)
class SignatureResult:
    """Resultado da checagem de assinatura (sem expor o digest)."""

    valid: bool
    error: str | None = None


def sign_sellsy_payload(raw_body: bytes, secret: str) -> str:
    """Calcula a assinatura esperada para um corpo bruto."""
    return hashlib.sha1(secret.encode("utf-8") + raw_body).hexdigest()


def verify_sellsy_signature(
    raw_body: bytes,
    signature: str | None,
    secret: str | None,
) -> bool:
    """Valida assinatura em tempo constante.

    Args:
        raw_body: Corpo bruto da requisição
        signature: Valor do header X-Webhook-Signature
        secret: Chave compartilhada (SELLSY_SIGN_KEY)

    Returns:
        True se assinatura válida. Qualquer entrada ausente ou mal formada
        resulta em False, nunca em exceção.
    """
    if not secret or not signature:
        return False

    provided = signature.strip().lower()
    if len(provided) != _DIGEST_HEX_LENGTH or not _HEX_DIGITS.issuperset(provided):
        return False

    expected = sign_sellsy_payload(raw_body or b"", secret)
    return hmac.compare_digest(expected.encode("ascii"), provided.encode("ascii"))


def check_sellsy_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    secret: str | None,
) -> SignatureResult:
    """Extrai o header (case-insensitive) e classifica a falha para logs."""
    if not secret:
        return SignatureResult(valid=False, error="missing_secret")

    signature = _get_header(headers, SIGNATURE_HEADER)
    if not signature:
        return SignatureResult(valid=False, error="missing_signature")

    if not verify_sellsy_signature(raw_body, signature, secret):
        return SignatureResult(valid=False, error="signature_mismatch")

    return SignatureResult(valid=True)


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None
