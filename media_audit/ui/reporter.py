"""
Presentation boundary.

The core pushes snapshots, announcements and the minimized flag to any object
implementing Presenter. ConsoleReporter writes them to the log the way a
developer console would show them.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from media_audit.core.dto import Announcement, AssetSnapshot

logger = logging.getLogger(__name__)


class Presenter(Protocol):
    def show_assets(self, snapshot: AssetSnapshot) -> None: ...

    def show_announcements(self, announcements: List[Announcement]) -> None: ...

    def set_minimized(self, minimized: bool) -> None: ...


class ConsoleReporter:
    """Presenter that logs instead of drawing a panel."""

    def __init__(self):
        self.last_snapshot: Optional[AssetSnapshot] = None
        self.announcements: List[Announcement] = []
        self.minimized = False

    def show_assets(self, snapshot: AssetSnapshot) -> None:
        self.last_snapshot = snapshot
        if snapshot.is_empty:
            logger.info("No media assets found on this page")
            return

        logger.info("Asset Scan Results")
        logger.info(f"  Total Assets: {len(snapshot)}")
        for asset in snapshot:
            logger.info(
                f"  [{asset.type}] {asset.id} {asset.primary_source} "
                f"duration={asset.duration} ready={asset.ready_state} "
                f"network={asset.network_state}"
                + (f" size={asset.dimensions_text}" if asset.type == "video" else "")
            )
            for source in asset.alternate_sources:
                logger.info(f"      source: {source.url} ({source.mime_type})")

    def show_announcements(self, announcements: List[Announcement]) -> None:
        self.announcements = list(announcements)
        if not announcements:
            logger.info("No announcements available")
            return
        for announcement in announcements:
            title = announcement.title or "Announcement"
            suffix = f" ({announcement.timestamp})" if announcement.timestamp else ""
            logger.info(f"Announcement: {title}: {announcement.message}{suffix}")

    def set_minimized(self, minimized: bool) -> None:
        self.minimized = minimized
        logger.info(f"Panel {'minimized' if minimized else 'expanded'}")
