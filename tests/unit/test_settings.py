"""Tests for application settings and logging setup."""

from __future__ import annotations

import logging

import pytest
from pydantic import SecretStr, ValidationError
import structlog
from structlog.testing import capture_logs

from config.settings import DEFAULT_DATABASE_URL, Settings, get_settings
from src.core.logging import get_logger, setup_logging


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)
        assert settings.orbit_env == "dev"
        assert settings.plugin_update_max_retries == 3
        assert settings.invite_expiry_days == 7
        assert settings.database_url.get_secret_value() == DEFAULT_DATABASE_URL

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLUGIN_HTTP_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        settings = Settings(_env_file=None)
        assert settings.plugin_http_timeout_seconds == 2.5
        assert settings.log_level == "DEBUG"

    def test_retries_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, plugin_update_max_retries=0)

    def test_prod_rejects_default_database(self) -> None:
        with pytest.raises(ValidationError, match="DATABASE_URL"):
            Settings(_env_file=None, orbit_env="prod")

    def test_prod_with_real_database(self) -> None:
        settings = Settings(
            _env_file=None,
            orbit_env="prod",
            database_url=SecretStr("postgresql+asyncpg://svc:pw@db.internal:5432/orbit"),
        )
        assert settings.orbit_env == "prod"

    def test_get_settings_is_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLUGIN_UPDATE_MAX_RETRIES", "5")
        first = get_settings()
        monkeypatch.setenv("PLUGIN_UPDATE_MAX_RETRIES", "9")
        assert first.plugin_update_max_retries == 5
        assert get_settings() is first


class TestLogging:
    def test_setup_sets_root_level(self) -> None:
        try:
            setup_logging(level="warning", json=True)
            assert logging.getLogger().level == logging.WARNING
        finally:
            structlog.reset_defaults()

    def test_get_logger_binds_context(self) -> None:
        log = get_logger("orbit.test")
        with capture_logs() as logs:
            log.info("plugin_updated", tenant_id="t1")
        assert logs == [{"event": "plugin_updated", "tenant_id": "t1", "log_level": "info"}]
