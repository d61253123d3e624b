"""Testes das settings (env -> dataclass + validate)."""

from __future__ import annotations

import pytest

from config.settings import (
    BaseSettings,
    DedupeSettings,
    QueueSettings,
    SellsySettings,
    get_base_settings,
    get_queue_settings,
    get_sellsy_settings,
)


@pytest.fixture(autouse=True)
def _clear_caches():
    for getter in (get_base_settings, get_queue_settings, get_sellsy_settings):
        getter.cache_clear()
    yield
    for getter in (get_base_settings, get_queue_settings, get_sellsy_settings):
        getter.cache_clear()


class TestSellsySettings:
    def test_defaults(self) -> None:
        settings = SellsySettings()
        assert settings.token_url == "https://login.sellsy.com/oauth2/access-tokens"
        assert settings.api_base_url == "https://api.sellsy.com/v2"
        assert settings.accepted_statuses == ("accepted", "won", "signed")
        assert settings.token_safety_margin_seconds == 60.0

    def test_missing_credentials_are_reported(self) -> None:
        errors = SellsySettings().validate()
        assert "SELLSY_SIGN_KEY não configurado" in errors
        assert any("SELLSY_CLIENT_ID" in error for error in errors)

    def test_complete_settings_validate(self) -> None:
        settings = SellsySettings(sign_key="k", client_id="id", client_secret="secret")
        assert settings.validate() == []

    def test_loads_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SELLSY_SIGN_KEY", "key")
        monkeypatch.setenv("SELLSY_ACCEPTED_STATUSES", "Accepted, Signed")
        monkeypatch.setenv("SELLSY_LINK_BACK_ENABLED", "false")
        monkeypatch.setenv("SELLSY_MAX_RETRIES", "5")

        settings = get_sellsy_settings()

        assert settings.sign_key == "key"
        assert settings.accepted_statuses == ("accepted", "signed")
        assert settings.link_back_enabled is False
        assert settings.max_retries == 5


class TestQueueSettings:
    def test_defaults(self) -> None:
        settings = QueueSettings()
        assert settings.queue_name == "sellsy-webhooks"
        assert settings.concurrency == 3
        assert (settings.keep_completed, settings.keep_failed) == (100, 50)

    def test_memory_backend_rejected_outside_development(self) -> None:
        errors = QueueSettings(backend="memory").validate("", is_development=False)
        assert any("QUEUE_BACKEND=memory" in error for error in errors)

    def test_redis_backend_requires_url(self) -> None:
        errors = QueueSettings(backend="redis").validate("", is_development=True)
        assert any("REDIS_URL" in error for error in errors)

    def test_loads_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUEUE_BACKEND", "REDIS")
        monkeypatch.setenv("WORKER_CONCURRENCY", "8")

        settings = get_queue_settings()

        assert settings.backend == "redis"
        assert settings.concurrency == 8


class TestDedupeSettings:
    def test_memory_rejected_in_production(self) -> None:
        errors = DedupeSettings(backend="memory").validate(BaseSettings(environment="production"))
        assert any("DEDUPE_BACKEND=memory" in error for error in errors)

    def test_redis_ok_with_url(self) -> None:
        base = BaseSettings(environment="production", redis_url="redis://localhost:6379/0")
        assert DedupeSettings(backend="redis").validate(base) == []

    def test_processing_lock_must_be_shorter_than_mark(self) -> None:
        errors = DedupeSettings(ttl_seconds=60, processing_ttl_seconds=120).validate(BaseSettings())
        assert any("menor que DEDUPE_TTL_SECONDS" in error for error in errors)


def test_environment_aliases(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "prod")
    assert get_base_settings().environment == "production"


class TestBaseSettings:
    def test_defaults_validate(self) -> None:
        settings = BaseSettings()
        assert settings.is_development
        assert settings.log_format == "json"
        assert settings.validate() == []

    def test_invalid_log_level_and_redis_scheme(self) -> None:
        errors = BaseSettings(log_level="VERBOSE", redis_url="http://cache").validate()
        assert "LOG_LEVEL inválido: VERBOSE" in errors
        assert any("REDIS_URL" in error for error in errors)

    def test_logging_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FORMAT", "TEXT")

        settings = get_base_settings()

        assert settings.log_level == "DEBUG"
        assert settings.log_format == "text"

    def test_unknown_environment_falls_back_to_development(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ENVIRONMENT", "qa")
        assert get_base_settings().environment == "development"
