from __future__ import annotations

import logging
from typing import List, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from media_audit.core.document import DocumentQuery, Element, MutationRecord
from media_audit.core.dto import TRACKED_TAGS
from media_audit.core.subscriptions import Subscription

logger = logging.getLogger(__name__)


def introduces_media(node: Element) -> bool:
    """True when ``node`` is a media element or has one among its descendants."""
    if node.tag in TRACKED_TAGS:
        return True
    return bool(node.query_all(*TRACKED_TAGS))


class ChangeObserver(QObject):
    """
    Watches a subtree for inserted media and asks for a rescan.

    Emits ``rescan_requested`` at most once per mutation batch. Removed
    nodes are ignored, so assets of removed elements stay in the last
    snapshot until some later insertion triggers a rescan. Batches are not
    debounced.

    Signals:
        rescan_requested(): a relevant batch was delivered
    """
    rescan_requested = pyqtSignal()

    def __init__(self, document: DocumentQuery, root: Optional[Element] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._document = document
        self._root = root
        self._subscription: Optional[Subscription] = None

    @property
    def observing(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def observe(self) -> Subscription:
        if self.observing:
            return self._subscription
        root = self._root if self._root is not None else self._document.body
        self._subscription = self._document.observe_insertions(root, self.handle_batch)
        logger.info(f"Observing structural changes under <{root.tag}>")
        return self._subscription

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
            logger.info("Stopped observing structural changes")

    def handle_batch(self, records: List[MutationRecord]) -> None:
        relevant = any(
            introduces_media(node)
            for record in records
            for node in record.added_nodes
        )
        if not relevant:
            return
        logger.info("New media elements detected, requesting rescan")
        self.rescan_requested.emit()
