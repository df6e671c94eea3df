from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Announcement:
    title: str = ""
    message: str = ""
    timestamp: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Announcement":
        """Build from a feed/storage object; absent or null fields become ""."""
        def text(key: str) -> str:
            value = payload.get(key)
            return "" if value is None else str(value)

        return cls(title=text("title"), message=text("message"), timestamp=text("timestamp"))

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "message": self.message, "timestamp": self.timestamp}


@dataclass
class PersistedState:
    """
    UI/session state kept across runs.

    Serialized with the camelCase keys used in storage. Keys the current
    schema does not know are kept in ``extra`` and written back unchanged.
    """
    is_minimized: bool = False
    last_update: Optional[str] = None
    announcements: List[Announcement] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "isMinimized": self.is_minimized,
            "lastUpdate": self.last_update,
            "announcements": [a.to_dict() for a in self.announcements],
        })
        return data
