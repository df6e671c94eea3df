"""
Media asset scanner.

Reads every ``video`` and ``audio`` element of a document and turns it into a
MediaAsset. Elements are only read, never modified.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

from media_audit.core.document import DocumentQuery, Element
from media_audit.core.dto import (
    NOT_AVAILABLE,
    TRACKED_TAGS,
    UNKNOWN,
    AssetSnapshot,
    MediaAsset,
    SourceDescriptor,
)

logger = logging.getLogger(__name__)


READY_STATES: Tuple[str, ...] = (
    "HAVE_NOTHING",
    "HAVE_METADATA",
    "HAVE_CURRENT_DATA",
    "HAVE_FUTURE_DATA",
    "HAVE_ENOUGH_DATA",
)

NETWORK_STATES: Tuple[str, ...] = (
    "NETWORK_EMPTY",
    "NETWORK_IDLE",
    "NETWORK_LOADING",
    "NETWORK_NO_SOURCE",
)

UNKNOWN_STATE = "UNKNOWN"


def format_duration(seconds) -> str:
    """Format seconds as ``m:ss``; anything non-finite is "Unknown"."""
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return UNKNOWN
    if not math.isfinite(value):
        return UNKNOWN
    minutes = math.floor(value / 60)
    secs = math.floor(math.fmod(value, 60))
    return f"{minutes}:{secs:02d}"


def _lookup(table: Tuple[str, ...], code) -> str:
    if isinstance(code, bool) or not isinstance(code, int):
        return UNKNOWN_STATE
    if 0 <= code < len(table):
        return table[code]
    return UNKNOWN_STATE


def ready_state_text(code) -> str:
    return _lookup(READY_STATES, code)


def network_state_text(code) -> str:
    return _lookup(NETWORK_STATES, code)


class AssetScanner:
    """
    Produces an AssetSnapshot of the document's media elements.

    Re-entrant and side-effect free on the document. Two scans of an unchanged
    tree agree on ids, types and sources; duration and the two state fields
    are live and may differ.
    """

    def __init__(self, document: DocumentQuery):
        self._document = document

    @property
    def document(self) -> DocumentQuery:
        return self._document

    def scan(self) -> AssetSnapshot:
        assets: List[MediaAsset] = []
        for media_type in TRACKED_TAGS:
            for ordinal, element in enumerate(self._document.query_all(media_type)):
                assets.append(self.extract_asset(element, media_type, ordinal))

        snapshot = AssetSnapshot(assets=tuple(assets))
        logger.info(
            "Asset scan: %d total (%d video, %d audio)",
            len(snapshot), len(snapshot.videos), len(snapshot.audios),
        )
        for asset in snapshot:
            logger.debug(f"  {asset.to_dict()}")
        return snapshot

    def extract_asset(self, element: Element, media_type: str, ordinal: int) -> MediaAsset:
        duration = getattr(element, "duration", None)
        return MediaAsset(
            id=f"{media_type}_{ordinal}",
            type=media_type,
            primary_source=self._primary_source(element),
            alternate_sources=tuple(self._alternate_sources(element)),
            # 0 and NaN both mean "no metadata yet"
            duration=format_duration(duration) if duration else UNKNOWN,
            ready_state=ready_state_text(getattr(element, "ready_state", None)),
            network_state=network_state_text(getattr(element, "network_state", None)),
            dimensions=self._dimensions(element) if media_type == "video" else None,
        )

    @staticmethod
    def _primary_source(element: Element) -> str:
        return getattr(element, "src", "") or getattr(element, "current_src", "") or NOT_AVAILABLE

    @staticmethod
    def _alternate_sources(element: Element) -> List[SourceDescriptor]:
        return [
            SourceDescriptor(
                url=source.resolve_url("src"),
                mime_type=source.get_attribute("type") or UNKNOWN,
            )
            for source in element.query_all("source")
        ]

    @staticmethod
    def _dimensions(element: Element) -> Optional[Tuple[int, int]]:
        return (int(getattr(element, "video_width", 0) or 0), int(getattr(element, "video_height", 0) or 0))
