"""Formatters de logging estruturado (JSON) e texto."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

REQUIRED_LOG_FIELDS = (
    "asctime",
    "levelname",
    "name",
    "message",
    "correlation_id",
    "job_id",
    "service",
)

FIELD_RENAME_MAP = {
    "levelname": "level",
    "name": "logger",
}


def create_json_formatter() -> JsonFormatter:
    """Cria formatter JSON com campos padronizados.

    Exemplo de output:
        {"asctime": "...", "level": "INFO", "logger": "app.worker",
         "message": "job_completed", "correlation_id": "abc-123",
         "job_id": "7f3c...", "service": "sellsy_invoicer_worker"}
    """
    format_string = " ".join(f"%({field})s" for field in REQUIRED_LOG_FIELDS)
    return JsonFormatter(format_string, rename_fields=FIELD_RENAME_MAP)


def create_text_formatter() -> logging.Formatter:
    """Formatter legível para desenvolvimento local."""
    return logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s|%(job_id)s] %(message)s"
    )
