import logging

import pytest

from media_audit.core.config import (
    DEFAULT_MESSAGE_SERVICE_URL,
    DEFAULT_REFRESH_INTERVAL_MS,
    DEFAULT_REQUEST_TIMEOUT_MS,
    DEFAULT_STORAGE_KEY,
    AppConfig,
)
from media_audit.core.database import DatabaseManager
from media_audit.core.http_client import create_http_client_from_settings
from media_audit.utils.logging_config import (
    LoggerCategory,
    LoggingManager,
    level_setting_key,
    read_category_levels,
)


class TestDatabaseManager:

    def test_defaults_seeded_on_first_connect(self, db):
        assert db.get_config("message_service_url") == DEFAULT_MESSAGE_SERVICE_URL
        assert db.get_config("refresh_interval_ms") == str(DEFAULT_REFRESH_INTERVAL_MS)
        assert db.get_config("app_version") == DatabaseManager.VERSION

    def test_existing_values_survive_reconnect(self, tmp_path):
        first = DatabaseManager(tmp_path / "data.db")
        first.connect()
        first.set_config("refresh_interval_ms", "60000")
        first.close()

        second = DatabaseManager(tmp_path / "data.db")
        second.connect()
        try:
            assert second.get_config("refresh_interval_ms") == "60000"
        finally:
            second.close()

    def test_values_are_stored_as_text(self, db):
        db.set_config("custom", 5)
        assert db.get_config("custom") == "5"
        assert db.get_config("missing", "fallback") == "fallback"


class TestAppConfig:

    def test_defaults_from_fresh_database(self, db):
        config = AppConfig.from_db(db)
        assert config == AppConfig()
        assert config.storage_key == DEFAULT_STORAGE_KEY
        assert config.request_timeout_seconds == DEFAULT_REQUEST_TIMEOUT_MS / 1000.0

    def test_no_database(self):
        assert AppConfig.from_db(None) == AppConfig()

    @pytest.mark.parametrize("raw", ["soon", "0", "-5", ""])
    def test_invalid_interval_falls_back(self, db, raw):
        db.set_config("refresh_interval_ms", raw)
        assert AppConfig.from_db(db).refresh_interval_ms == DEFAULT_REFRESH_INTERVAL_MS

    def test_overrides(self, db):
        db.set_config("request_timeout_ms", "2500")
        db.set_config("allow_overlapping_fetches", "TRUE")
        db.set_config("proxy_url", "  http://127.0.0.1:8080 ")
        db.set_config("storage_key", "")

        config = AppConfig.from_db(db)

        assert config.request_timeout_seconds == 2.5
        assert config.allow_overlapping_fetches is True
        assert config.proxy_url == "http://127.0.0.1:8080"
        assert config.storage_key == DEFAULT_STORAGE_KEY


class TestHttpClient:

    def test_session_from_settings(self, db):
        db.set_config("user_agent", "AuditBot/1.0")
        db.set_config("proxy_url", "http://127.0.0.1:8080")
        client = create_http_client_from_settings(db)

        session = client.get_sync_session()

        assert session.headers["User-Agent"] == "AuditBot/1.0"
        assert session.headers["Accept"].startswith("application/json")
        assert session.proxies["https"] == "http://127.0.0.1:8080"
        assert client.get_sync_session() is session
        client.close()

    def test_close_writes_nothing_to_disk(self, db):
        before = sorted(p.name for p in db.db_path.parent.iterdir())
        client = create_http_client_from_settings(db)
        client.get_sync_session()

        client.close()

        assert sorted(p.name for p in db.db_path.parent.iterdir()) == before


class TestLoggingLevels:

    def test_defaults_without_database(self):
        levels = read_category_levels()
        assert levels[LoggerCategory.STORAGE] == logging.WARNING
        assert levels[LoggerCategory.NETWORK] == logging.INFO

    def test_stored_level_names_are_used(self, db):
        db.set_config(level_setting_key(LoggerCategory.NETWORK), "debug")
        assert read_category_levels(db)[LoggerCategory.NETWORK] == logging.DEBUG

    def test_unknown_level_name_falls_back(self, db):
        db.set_config(level_setting_key(LoggerCategory.SCANNER), "LOUD")
        assert read_category_levels(db)[LoggerCategory.SCANNER] == logging.INFO

    def test_attach_database_applies_stored_levels(self, db, tmp_path):
        db.set_config(level_setting_key(LoggerCategory.OBSERVER), "ERROR")
        manager = LoggingManager(log_dir=tmp_path / "logs")
        assert (tmp_path / "logs").is_dir()

        try:
            manager.attach_database(db)
            assert logging.getLogger("media_audit.core.observer").level == logging.ERROR
        finally:
            LoggingManager(log_dir=tmp_path / "logs").apply_levels()
        assert logging.getLogger("media_audit.core.observer").level == logging.INFO
