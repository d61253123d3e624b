"""Testes para config.logging.

Cobre: configure_logging, get_logger, ContextFilter,
SecretRedactionFilter e o formato JSON.
"""

from __future__ import annotations

import json
import logging

import pytest

from config.logging import (
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    ContextFilter,
    SecretRedactionFilter,
    configure_logging,
    create_json_formatter,
    get_logger,
)
from config.logging.config import DEFAULT_SERVICE_NAME, VALID_LOG_LEVELS


def _record(msg: str = "event", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestConfigureLogging:
    """Testes para configure_logging."""

    def test_configure_logging_default_level(self) -> None:
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_level_is_case_insensitive(self) -> None:
        configure_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Nível de log inválido"):
            configure_logging(level="INVALID")

    def test_replaces_handlers(self) -> None:
        root = logging.getLogger()
        root.handlers = [logging.NullHandler(), logging.NullHandler()]
        configure_logging()
        assert len(root.handlers) == 1

    def test_handler_has_context_and_redaction_filters(self) -> None:
        configure_logging(correlation_id_getter=lambda: "corr")
        filters = logging.getLogger().handlers[0].filters
        assert any(isinstance(f, ContextFilter) for f in filters)
        assert any(isinstance(f, SecretRedactionFilter) for f in filters)

    def test_http_client_loggers_are_quieted(self) -> None:
        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_json_output_carries_required_fields(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(
            service_name="svc",
            correlation_id_getter=lambda: "corr-1",
            job_id_getter=lambda: "job-1",
        )

        get_logger("app.test").info("job_completed", extra={"attempts": 2})

        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["message"] == "job_completed"
        assert payload["correlation_id"] == "corr-1"
        assert payload["job_id"] == "job-1"
        assert payload["service"] == "svc"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "app.test"
        assert payload["attempts"] == 2

    def test_secrets_never_reach_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging()

        get_logger("app.test").warning(
            "calling with Bearer abc.def-123",
            extra={"client_secret": "s3cr3t"},
        )

        output = capsys.readouterr().err
        assert "abc.def-123" not in output
        assert "s3cr3t" not in output


class TestContextFilter:
    def test_injects_context(self) -> None:
        record = _record()
        ContextFilter("svc", lambda: "corr", lambda: "job").filter(record)
        assert (record.correlation_id, record.job_id, record.service) == ("corr", "job", "svc")

    def test_explicit_extra_wins(self) -> None:
        record = _record(correlation_id="explicit")
        ContextFilter("svc", lambda: "ctx").filter(record)
        assert record.correlation_id == "explicit"

    def test_without_getters_uses_empty_strings(self) -> None:
        record = _record()
        ContextFilter("svc").filter(record)
        assert record.correlation_id == ""
        assert record.job_id == ""


class TestSecretRedactionFilter:
    def test_masks_bearer_in_message(self) -> None:
        record = _record("Authorization: Bearer eyJhbGciOi.xyz")
        SecretRedactionFilter().filter(record)
        assert record.msg == "Authorization: Bearer ***"

    def test_masks_sensitive_extra_keys(self) -> None:
        record = _record(access_token="tok", sign_key="key")
        SecretRedactionFilter().filter(record)
        assert record.access_token == "***"
        assert record.sign_key == "***"


def test_json_formatter_renames_fields() -> None:
    record = _record("hello", correlation_id="c", job_id="j", service="s")
    payload = json.loads(create_json_formatter().format(record))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "test"


def test_constants() -> None:
    assert "job_id" in REQUIRED_LOG_FIELDS
    assert FIELD_RENAME_MAP["levelname"] == "level"
    assert DEFAULT_SERVICE_NAME == "sellsy_invoicer"
    assert "DEBUG" in VALID_LOG_LEVELS
