"""
Durable UI/session state.

One JSON entry under a fixed key, merged over hard-coded defaults on load.
StateStore is the only writer of that entry. Failures never propagate: a bad
read yields defaults, a bad write is logged and dropped.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from media_audit.core.config import DEFAULT_STORAGE_KEY
from media_audit.core.dto import Announcement, PersistedState
from media_audit.core.errors import ParseError, StorageError

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def coerce_announcements(items: Iterable[Any]) -> List[Announcement]:
    """Normalize a sequence of dicts/Announcements, raising ParseError on anything else."""
    result: List[Announcement] = []
    for item in items:
        if isinstance(item, Announcement):
            result.append(item)
        elif isinstance(item, dict):
            result.append(Announcement.from_payload(item))
        else:
            raise ParseError(f"announcement entry is not an object: {item!r}")
    return result


def merge_state(stored: Dict[str, Any]) -> PersistedState:
    """
    Shallow-merge a decoded entry over the defaults.

    Known fields of the wrong shape keep their default, unknown keys are
    carried in ``extra``.
    """
    state = PersistedState()
    known = {"isMinimized", "lastUpdate", "announcements"}
    state.extra = {k: v for k, v in stored.items() if k not in known}

    if "isMinimized" in stored:
        if isinstance(stored["isMinimized"], bool):
            state.is_minimized = stored["isMinimized"]
        else:
            logger.warning(f"Ignoring stored isMinimized of type {type(stored['isMinimized']).__name__}")

    if "lastUpdate" in stored:
        value = stored["lastUpdate"]
        if value is None or isinstance(value, str):
            state.last_update = value
        else:
            logger.warning(f"Ignoring stored lastUpdate of type {type(value).__name__}")

    if "announcements" in stored:
        value = stored["announcements"]
        try:
            if not isinstance(value, list):
                raise ParseError("announcements is not a list")
            state.announcements = coerce_announcements(value)
        except ParseError as e:
            logger.warning(f"Ignoring stored announcements: {e}")

    return state


class StateStore(QObject):
    """
    Owner of PersistedState.

    Each mutator rewrites the whole entry synchronously, not a diff.

    Signals:
        minimized_changed(bool): after toggle_minimized
        announcements_changed(list): after update_announcements (list of Announcement)
    """
    minimized_changed = pyqtSignal(bool)
    announcements_changed = pyqtSignal(list)

    def __init__(
        self,
        db_manager,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] = _utc_now,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._db = db_manager
        self._key = storage_key
        self._clock = clock
        self._state = self.load_state()

    @property
    def state(self) -> PersistedState:
        return self._state

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def is_minimized(self) -> bool:
        return self._state.is_minimized

    @property
    def announcements(self) -> List[Announcement]:
        return list(self._state.announcements)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read_entry(self) -> Optional[str]:
        try:
            return self._db.get_config(self._key)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"read of '{self._key}' failed: {e}") from e

    def _write_entry(self, payload: str) -> None:
        try:
            self._db.set_config(self._key, payload)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"write of '{self._key}' failed: {e}") from e

    def load_state(self) -> PersistedState:
        """Read and merge the stored entry. Returns defaults on any failure."""
        try:
            raw = self._read_entry()
            if not raw:
                logger.debug("No stored state, using defaults")
                return PersistedState()
            try:
                decoded = json.loads(raw)
            except (ValueError, RecursionError) as e:
                raise ParseError(f"stored state is not valid JSON: {e}") from e
            if not isinstance(decoded, dict):
                raise ParseError("stored state is not a JSON object")
            return merge_state(decoded)
        except (StorageError, ParseError) as e:
            logger.warning(f"Failed to load state: {e}")
            return PersistedState()

    def save_state(self) -> bool:
        """Write the full state. Returns False (after logging) when the write failed."""
        try:
            self._write_entry(json.dumps(self._state.to_dict()))
            return True
        except (StorageError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save state: {e}")
            return False

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def toggle_minimized(self) -> bool:
        self._state.is_minimized = not self._state.is_minimized
        self.save_state()
        self.minimized_changed.emit(self._state.is_minimized)
        return self._state.is_minimized

    def update_announcements(self, announcements: Iterable[Any]) -> None:
        self._state.announcements = coerce_announcements(announcements)
        self._state.last_update = format_timestamp(self._clock())
        self.save_state()
        logger.info(f"Stored {len(self._state.announcements)} announcement(s)")
        self.announcements_changed.emit(list(self._state.announcements))
