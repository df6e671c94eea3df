from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import requests

from media_audit.core.config import AppConfig
from media_audit.core.database import DatabaseManager
from media_audit.core.document import MediaDocument, parse_html
from media_audit.core.dto import AssetSnapshot
from media_audit.core.http_client import HttpClient, create_http_client_from_settings
from media_audit.core.observer import ChangeObserver
from media_audit.core.poller import AnnouncementPoller, FixedIntervalSchedule, PollSchedule
from media_audit.core.scanner import AssetScanner
from media_audit.core.state_store import StateStore
from media_audit.ui.reporter import ConsoleReporter, Presenter

logger = logging.getLogger(__name__)


def open_document(location: str, http_client: Optional[HttpClient] = None, timeout: float = 10.0) -> MediaDocument:
    """
    Load the document to audit from a local HTML file or an http(s) URL.

    An empty location gives an empty document.
    """
    if not location:
        return MediaDocument()
    if location.startswith(("http://", "https://")):
        session = http_client.get_sync_session() if http_client else requests.Session()
        resp = session.get(location, timeout=timeout)
        resp.raise_for_status()
        return parse_html(resp.text, base_url=resp.url or location)
    path = Path(location).expanduser()
    return parse_html(path.read_text(encoding="utf-8", errors="replace"), base_url=path.resolve().as_uri())


class CoreContext:
    """
    Shared core components (DB + state + scanner + observer + poller).

    Use a single instance for app lifetime and hand it to whatever needs it.
    Inbound requests from the presentation surface go through
    ``toggle_minimized`` and ``refresh_assets``.
    """

    def __init__(
        self,
        *,
        document: MediaDocument,
        presenter: Optional[Presenter] = None,
        db: Optional[DatabaseManager] = None,
        session_provider: Optional[Callable[[], requests.Session]] = None,
        schedule: Optional[PollSchedule] = None,
    ):
        self.db = db or DatabaseManager()
        if self.db.conn is None:
            self.db.connect()

        self.config = AppConfig.from_db(self.db)
        self._http_client = create_http_client_from_settings(self.db, self.config)

        self.document = document
        self.presenter: Presenter = presenter or ConsoleReporter()

        self.state = StateStore(self.db, storage_key=self.config.storage_key)
        self.scanner = AssetScanner(document)
        self.observer = ChangeObserver(document)
        self.poller = AnnouncementPoller(
            self.state,
            session_provider or self._http_client.get_sync_session,
            url=self.config.message_service_url,
            timeout_ms=self.config.request_timeout_ms,
            schedule=schedule or FixedIntervalSchedule(self.config.refresh_interval_ms),
            allow_overlap=self.config.allow_overlapping_fetches,
        )

        self.observer.rescan_requested.connect(self.refresh_assets)
        self.poller.announcements_updated.connect(self.presenter.show_announcements)

        self.last_snapshot: Optional[AssetSnapshot] = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Seed the presentation from stored state, scan, then begin polling and observing."""
        if self._started:
            return
        self._started = True
        logger.info("Initializing Media Audit Suite...")

        self.presenter.set_minimized(self.state.is_minimized)
        stored = self.state.announcements
        if stored:
            self.presenter.show_announcements(stored)

        self.refresh_assets()
        self.poller.start()
        self.observer.observe()
        logger.info("Media Audit Suite initialized successfully")

    def refresh_assets(self) -> AssetSnapshot:
        snapshot = self.scanner.scan()
        self.last_snapshot = snapshot
        self.presenter.show_assets(snapshot)
        return snapshot

    def toggle_minimized(self) -> bool:
        minimized = self.state.toggle_minimized()
        self.presenter.set_minimized(minimized)
        return minimized

    def close(self) -> None:
        self.poller.stop()
        self.observer.stop()
        self.poller.wait_for_idle()

        # Close HTTP client
        self._http_client.close()
        self.db.close()
        self._started = False
