"""
Application settings.

Settings are stored as strings in the database ``config`` table and seeded
from DEFAULT_SETTINGS on first run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


DEFAULT_MESSAGE_SERVICE_URL = "https://your-server.com/api/announcements.json"
DEFAULT_REFRESH_INTERVAL_MS = 300000  # 5 minutes
DEFAULT_REQUEST_TIMEOUT_MS = 10000
DEFAULT_STORAGE_KEY = "mediaAuditSuite_state"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

DEFAULT_SETTINGS = {
    'message_service_url': DEFAULT_MESSAGE_SERVICE_URL,
    'refresh_interval_ms': str(DEFAULT_REFRESH_INTERVAL_MS),
    'request_timeout_ms': str(DEFAULT_REQUEST_TIMEOUT_MS),
    'storage_key': DEFAULT_STORAGE_KEY,
    'allow_overlapping_fetches': 'false',
    'user_agent': DEFAULT_USER_AGENT,
    'proxy_url': '',
    'document_path': '',
}


@dataclass(frozen=True)
class AppConfig:
    message_service_url: str = DEFAULT_MESSAGE_SERVICE_URL
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    storage_key: str = DEFAULT_STORAGE_KEY
    allow_overlapping_fetches: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    proxy_url: str = ""
    document_path: str = ""

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000.0

    @classmethod
    def from_db(cls, db_manager) -> "AppConfig":
        """Read settings, falling back to defaults for missing or malformed values."""
        if db_manager is None:
            return cls()

        def _int(key: str, default: int) -> int:
            try:
                value = int(db_manager.get_config(key, str(default)))
            except (TypeError, ValueError):
                logger.warning(f"Invalid value for setting '{key}', using default {default}")
                return default
            if value <= 0:
                logger.warning(f"Non-positive value for setting '{key}', using default {default}")
                return default
            return value

        def _str(key: str, default: str) -> str:
            value = db_manager.get_config(key, default)
            return default if value is None else str(value)

        return cls(
            message_service_url=_str('message_service_url', DEFAULT_MESSAGE_SERVICE_URL),
            refresh_interval_ms=_int('refresh_interval_ms', DEFAULT_REFRESH_INTERVAL_MS),
            request_timeout_ms=_int('request_timeout_ms', DEFAULT_REQUEST_TIMEOUT_MS),
            storage_key=_str('storage_key', DEFAULT_STORAGE_KEY) or DEFAULT_STORAGE_KEY,
            allow_overlapping_fetches=_str('allow_overlapping_fetches', 'false').lower() == 'true',
            user_agent=_str('user_agent', DEFAULT_USER_AGENT) or DEFAULT_USER_AGENT,
            proxy_url=_str('proxy_url', '').strip(),
            document_path=_str('document_path', '').strip(),
        )
