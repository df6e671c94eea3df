"""
Centralized HTTP client configuration.

Provides the requests.Session used for the announcement feed with:
- JSON-oriented request headers and a configurable User-Agent
- Optional single proxy

Nothing is persisted; the session lives for the lifetime of the context.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import requests

from media_audit.core.config import AppConfig, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


# Headers for feed requests (JSON expected)
API_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Cache-Control": "no-cache",
}


class HttpClientConfig:
    """Central HTTP client configuration."""

    def __init__(self, proxy_url: Optional[str] = None, user_agent: str = DEFAULT_USER_AGENT):
        self.proxy_url = proxy_url or None
        self.user_agent = user_agent

    def get_requests_proxies(self) -> Optional[Dict[str, str]]:
        if not self.proxy_url:
            return None
        return {"http": self.proxy_url, "https": self.proxy_url}


class HttpClient:
    """
    Owns the shared requests.Session.

    requests.Session is not documented as thread-safe; the poller keeps at
    most one request in flight unless overlapping fetches are enabled.
    """

    def __init__(self, config: Optional[HttpClientConfig] = None):
        self.config = config or HttpClientConfig()
        self._sync_session: Optional[requests.Session] = None

    def create_sync_session(self, headers: Optional[Dict[str, str]] = None) -> requests.Session:
        """
        Create a configured requests.Session for synchronous HTTP.

        Args:
            headers: Optional headers to use (defaults to API_HEADERS)

        Returns:
            Configured requests.Session
        """
        session = requests.Session()

        # Set headers
        session.headers.update(headers or API_HEADERS)
        session.headers["User-Agent"] = self.config.user_agent

        # Set proxy if configured
        proxies = self.config.get_requests_proxies()
        if proxies:
            session.proxies.update(proxies)
            logger.info(f"Sync session using proxy: {proxies['https']}")

        self._sync_session = session
        return session

    def get_sync_session(self) -> requests.Session:
        """Get existing session or create new one."""
        if self._sync_session is None:
            return self.create_sync_session()
        return self._sync_session

    def close(self):
        """Close the session."""
        if self._sync_session is not None:
            self._sync_session.close()
            self._sync_session = None


def create_http_client_from_settings(db_manager, app_config: Optional[AppConfig] = None) -> HttpClient:
    """
    Create HttpClient configured from database settings.

    Args:
        db_manager: DatabaseManager instance to read settings from
        app_config: Already-parsed settings, read from ``db_manager`` when omitted

    Returns:
        Configured HttpClient instance
    """
    app_config = app_config or AppConfig.from_db(db_manager)

    config = HttpClientConfig(
        proxy_url=app_config.proxy_url,
        user_agent=app_config.user_agent,
    )

    return HttpClient(config)
