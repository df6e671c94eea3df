"""
Announcement feed poller.

Fetches ``{"announcements": [...]}`` from the configured URL on a fixed
interval. Every attempt ends in exactly one tagged FetchResult; failures are
logged and leave stored announcements untouched until the next tick. There is
no retry or backoff beyond the schedule itself.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import requests
from PyQt6.QtCore import QObject, QThread, QTimer, pyqtSignal, pyqtSlot

from media_audit.core.config import DEFAULT_REFRESH_INTERVAL_MS, DEFAULT_REQUEST_TIMEOUT_MS
from media_audit.core.dto import Announcement
from media_audit.core.errors import FeedError, FeedTimeoutError, NetworkError, ParseError
from media_audit.core.state_store import StateStore, coerce_announcements
from media_audit.core.subscriptions import Subscription

logger = logging.getLogger(__name__)


class FetchStatus(Enum):
    """Terminal outcome of one fetch attempt."""
    SUCCESS = "success"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    NETWORK_ERROR = "network_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class FetchResult:
    """
    Result of a fetch attempt (success or failure).

    Failed fetches are first-class outputs, not exceptions.
    """
    url: str
    status: FetchStatus
    attempted_at: datetime
    completed_at: datetime

    # On success
    announcements: Tuple[Announcement, ...] = field(default_factory=tuple)

    # On failure
    error_message: Optional[str] = None
    http_status: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status == FetchStatus.SUCCESS


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_announcements(body: str) -> List[Announcement]:
    """
    Decode a feed body.

    A missing ``announcements`` key is an empty list; anything that is not an
    object with a list of objects under that key raises ParseError.
    """
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise ParseError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("feed payload is not a JSON object")
    items = data.get("announcements")
    if items is None:
        return []
    if not isinstance(items, list):
        raise ParseError("'announcements' is not a list")
    return coerce_announcements(items)


def _request_feed(session: requests.Session, url: str, timeout: float) -> str:
    try:
        resp = session.get(url, timeout=timeout)
    except requests.Timeout as e:
        raise FeedTimeoutError(f"no response within {timeout:g}s") from e
    except requests.RequestException as e:
        raise NetworkError(str(e)) from e
    if not resp.ok:
        raise FeedError(f"HTTP {resp.status_code}", http_status=resp.status_code)
    return resp.text


def fetch_announcements(session: requests.Session, url: str, timeout: float) -> FetchResult:
    """Run one GET against the feed and classify the outcome. Never raises."""
    attempted = _now()
    logger.info(f"Feed Request: GET {url}")
    try:
        announcements = parse_announcements(_request_feed(session, url, timeout))
    except FeedTimeoutError as e:
        return FetchResult(url, FetchStatus.TIMEOUT, attempted, _now(), error_message=str(e))
    except NetworkError as e:
        return FetchResult(url, FetchStatus.NETWORK_ERROR, attempted, _now(), error_message=str(e))
    except FeedError as e:
        return FetchResult(
            url, FetchStatus.HTTP_ERROR, attempted, _now(),
            error_message=str(e), http_status=e.http_status,
        )
    except ParseError as e:
        return FetchResult(url, FetchStatus.PARSE_ERROR, attempted, _now(), error_message=str(e))
    return FetchResult(url, FetchStatus.SUCCESS, attempted, _now(), announcements=tuple(announcements))


class AnnouncementFetchWorker(QThread):
    """
    Background worker for one feed request.

    Signals:
        completed(token, result): Emitted once with the FetchResult
    """
    completed = pyqtSignal(int, object)  # token, FetchResult

    def __init__(self, *, token: int, session: requests.Session, url: str, timeout: float):
        super().__init__()
        self._token = token
        self._session = session
        self._url = url
        self._timeout = timeout

    @property
    def token(self) -> int:
        """Get the worker's token for identifying responses."""
        return self._token

    def run(self) -> None:
        """Execute the feed request. Always emits exactly one result."""
        attempted = _now()
        try:
            result = fetch_announcements(self._session, self._url, self._timeout)
        except Exception as e:
            logger.exception(f"Unexpected error in fetch worker {self._token}")
            result = FetchResult(
                self._url, FetchStatus.INTERNAL_ERROR, attempted, _now(), error_message=str(e)
            )
        self.completed.emit(self._token, result)


class PollSchedule(QObject):
    """
    When to poll. Subclasses decide the cadence; the poller only listens to ``tick``.

    Signals:
        tick(): time to fetch
    """
    tick = pyqtSignal()

    def start(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    @property
    def active(self) -> bool:
        raise NotImplementedError


class FixedIntervalSchedule(PollSchedule):
    """Repeats every ``interval_ms`` until stopped."""

    def __init__(self, interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_ms))
        self._timer.timeout.connect(self.tick)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    @property
    def active(self) -> bool:
        return self._timer.isActive()


class AnnouncementPoller(QObject):
    """
    Polls the announcement feed and writes results through StateStore.

    By default at most one request is outstanding: a tick that finds one
    still in flight is skipped. ``allow_overlap=True`` lets ticks fire
    regardless, in which case the last completion wins.

    Signals:
        fetch_completed(result): every FetchResult, success or not
        announcements_updated(list): list of Announcement after a successful fetch
    """
    fetch_completed = pyqtSignal(object)
    announcements_updated = pyqtSignal(list)

    def __init__(
        self,
        state_store: StateStore,
        session_provider: Callable[[], requests.Session],
        *,
        url: str,
        timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS,
        schedule: Optional[PollSchedule] = None,
        allow_overlap: bool = False,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._store = state_store
        self._session_provider = session_provider
        self._url = url
        self._timeout = timeout_ms / 1000.0
        self._schedule = schedule or FixedIntervalSchedule(parent=self)
        self._schedule.tick.connect(self.fetch)
        self._allow_overlap = allow_overlap
        self._workers: Dict[int, AnnouncementFetchWorker] = {}
        self._next_token = 0
        self._running = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def schedule(self) -> PollSchedule:
        return self._schedule

    @property
    def running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> int:
        return len(self._workers)

    def start(self) -> None:
        """Fetch now, then on every schedule tick until stop()."""
        if self._running:
            return
        self._running = True
        logger.info(f"Announcement polling started: {self._url}")
        self.fetch()
        self._schedule.start()

    def stop(self) -> None:
        """Cancel future ticks. A fetch already in flight still completes."""
        if not self._running:
            return
        self._running = False
        self._schedule.stop()
        logger.info("Announcement polling stopped")

    def subscribe(self, callback: Callable[[FetchResult], None]) -> Subscription:
        return Subscription(self.fetch_completed, callback, parent=self)

    def fetch(self) -> bool:
        """Start one request. Returns False when skipped because one is outstanding."""
        if self._workers and not self._allow_overlap:
            logger.warning("Previous announcement fetch still in flight, skipping this tick")
            return False

        self._next_token += 1
        worker = AnnouncementFetchWorker(
            token=self._next_token,
            session=self._session_provider(),
            url=self._url,
            timeout=self._timeout,
        )
        worker.completed.connect(self._on_worker_completed)
        worker.finished.connect(worker.deleteLater)
        self._workers[worker.token] = worker
        self._launch(worker)
        return True

    def _launch(self, worker: AnnouncementFetchWorker) -> None:
        worker.start()

    @pyqtSlot(int, object)
    def _on_worker_completed(self, token: int, result: FetchResult) -> None:
        self._workers.pop(token, None)
        self.handle_result(result)

    def handle_result(self, result: FetchResult) -> None:
        """Apply one outcome: store and announce on success, log otherwise."""
        if result.status == FetchStatus.SUCCESS:
            announcements = list(result.announcements)
            self._store.update_announcements(announcements)
            self.announcements_updated.emit(announcements)
        elif result.status == FetchStatus.TIMEOUT:
            logger.warning(f"Announcement fetch timeout: {result.error_message}")
        elif result.status == FetchStatus.PARSE_ERROR:
            logger.error(f"Failed to parse announcements: {result.error_message}")
        else:
            logger.error(f"Failed to fetch announcements: {result.error_message}")
        self.fetch_completed.emit(result)

    def wait_for_idle(self, timeout_ms: int = 5000) -> bool:
        """Block until running workers finish (used on shutdown)."""
        idle = True
        for worker in list(self._workers.values()):
            if worker.isRunning() and not worker.wait(timeout_ms):
                logger.warning(f"Fetch worker {worker.token} did not finish within {timeout_ms} ms")
                idle = False
        return idle
