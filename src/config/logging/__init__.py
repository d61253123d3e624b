"""Configuração de logging estruturado.

Uso:
    from config.logging import configure_logging, get_logger

    configure_logging(level="INFO", service_name="sellsy_invoicer")
    logger = get_logger(__name__)
    logger.info("invoice_created", extra={"estimate_id": 42})

Campos obrigatórios em todo log JSON:
correlation_id, job_id, service, level, logger, message, asctime.
Segredos (bearer tokens, client_secret) nunca chegam ao output.
"""

from config.logging.config import configure_logging, get_logger
from config.logging.filters import ContextFilter, SecretRedactionFilter
from config.logging.formatters import (
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    create_json_formatter,
    create_text_formatter,
)

__all__ = [
    "FIELD_RENAME_MAP",
    "REQUIRED_LOG_FIELDS",
    "ContextFilter",
    "SecretRedactionFilter",
    "configure_logging",
    "create_json_formatter",
    "create_text_formatter",
    "get_logger",
]
