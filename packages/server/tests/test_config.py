"""
Configuration and logging setup tests.
"""

import pytest
import structlog
from structlog.testing import capture_logs

from app.core.config import Settings
from app.core.logging_config import configure_logging
from app.core.redis import redis_key


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TASKPAD_LOCK_TIMEOUT_MS", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert settings.lock_timeout_ms == 5000
        assert settings.password_reset_ttl_seconds == 3600
        assert settings.default_categories == ["Work", "Personal", "Shopping", "Errands"]

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TASKPAD_LOCK_TIMEOUT_MS", "250")
        monkeypatch.setenv("TASKPAD_LOG_FORMAT", "console")
        monkeypatch.setenv("TASKPAD_DEFAULT_CATEGORIES", '["Inbox"]')
        settings = Settings(_env_file=None)
        assert settings.lock_timeout_ms == 250
        assert settings.log_format == "console"
        assert settings.default_categories == ["Inbox"]

    def test_rejects_unknown_log_format(self, monkeypatch):
        monkeypatch.setenv("TASKPAD_LOG_FORMAT", "xml")
        with pytest.raises(ValueError):
            Settings(_env_file=None)


def test_redis_key_namespacing():
    assert redis_key("jwt", "revoked", "abc") == "taskpad:jwt:revoked:abc"


@pytest.mark.parametrize("fmt", ["json", "console"])
def test_configure_logging(fmt):
    configure_logging("debug", fmt)
    log = structlog.get_logger()
    log.info("config.test", fmt=fmt)
    configure_logging("info", "json")


@pytest.mark.parametrize("level", ["warning", "WARNING"])
def test_configure_logging_filters_below_level(level):
    configure_logging(level, "console")
    try:
        with capture_logs() as logs:
            log = structlog.get_logger()
            log.debug("config.quiet")
            log.info("config.quiet")
            log.warning("config.loud")
        assert [entry["event"] for entry in logs] == ["config.loud"]
    finally:
        configure_logging("info", "json")
