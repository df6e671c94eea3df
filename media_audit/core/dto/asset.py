from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, List, Literal, Optional, Tuple


MediaType = Literal["video", "audio"]

TRACKED_TAGS: Tuple[str, ...] = ("video", "audio")

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    url: str
    mime_type: str = UNKNOWN


@dataclass(frozen=True, slots=True)
class MediaAsset:
    id: str                     # "<type>_<ordinal>", only unique within one snapshot
    type: MediaType
    primary_source: str         # URL or "N/A"
    alternate_sources: Tuple[SourceDescriptor, ...]

    duration: str               # "m:ss" or "Unknown"
    ready_state: str
    network_state: str

    # video-only
    dimensions: Optional[Tuple[int, int]] = None

    @property
    def dimensions_text(self) -> str:
        if self.dimensions is None:
            return NOT_AVAILABLE
        return f"{self.dimensions[0]}x{self.dimensions[1]}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "src": self.primary_source,
            "sources": [{"src": s.url, "type": s.mime_type} for s in self.alternate_sources],
            "dimensions": self.dimensions_text,
            "duration": self.duration,
            "readyState": self.ready_state,
            "networkState": self.network_state,
        }


@dataclass(frozen=True)
class AssetSnapshot:
    """
    One complete, point-in-time scan result.

    Videos come first in document order, then audios in document order.
    """
    assets: Tuple[MediaAsset, ...] = ()
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __iter__(self) -> Iterator[MediaAsset]:
        return iter(self.assets)

    def __len__(self) -> int:
        return len(self.assets)

    @property
    def videos(self) -> List[MediaAsset]:
        return [a for a in self.assets if a.type == "video"]

    @property
    def audios(self) -> List[MediaAsset]:
        return [a for a in self.assets if a.type == "audio"]

    @property
    def ids(self) -> List[str]:
        return [a.id for a in self.assets]

    def get(self, asset_id: str) -> Optional[MediaAsset]:
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        return None

    @property
    def is_empty(self) -> bool:
        return not self.assets
