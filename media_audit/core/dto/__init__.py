from media_audit.core.dto.asset import (
    NOT_AVAILABLE,
    TRACKED_TAGS,
    UNKNOWN,
    AssetSnapshot,
    MediaAsset,
    MediaType,
    SourceDescriptor,
)
from media_audit.core.dto.announcement import Announcement, PersistedState

__all__ = [
    # Assets
    "AssetSnapshot",
    "MediaAsset",
    "MediaType",
    "SourceDescriptor",
    "TRACKED_TAGS",
    "NOT_AVAILABLE",
    "UNKNOWN",

    # Announcements / state
    "Announcement",
    "PersistedState",
]
