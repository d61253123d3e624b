"""Filters de logging: contexto do request/job e redação de segredos."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)
_SECRET_KEYS = frozenset({"client_secret", "access_token", "authorization", "sign_key"})
_REDACTED = "***"


class ContextFilter(logging.Filter):
    """Injeta correlation_id, job_id e service em cada record.

    Valores passados explicitamente via `extra` são preservados.
    """

    def __init__(
        self,
        service_name: str,
        correlation_id_getter: Callable[[], str] | None = None,
        job_id_getter: Callable[[], str] | None = None,
    ) -> None:
        super().__init__()
        self._service_name = service_name
        self._get_correlation_id = correlation_id_getter or (lambda: "")
        self._get_job_id = job_id_getter or (lambda: "")

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = self._get_correlation_id()
        if not getattr(record, "job_id", None):
            record.job_id = self._get_job_id()
        record.service = self._service_name
        return True


class SecretRedactionFilter(logging.Filter):
    """Mascara bearer tokens e campos sensíveis passados via `extra`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str) and "earer" in record.msg:
            record.msg = _BEARER_RE.sub(rf"\1{_REDACTED}", record.msg)
        for key in _SECRET_KEYS:
            if getattr(record, key, None):
                setattr(record, key, _REDACTED)
        return True
