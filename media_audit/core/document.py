"""
Live document model queried by the scanner and the change observer.

The scanner and observer only rely on two capabilities:

- ``query_all(*tags)``: elements in document order
- ``observe_insertions(root, callback)``: batched structural insertions

``MediaDocument`` provides both on top of a small element tree. Insertions are
queued and delivered as one batch on the next event loop turn, the same way a
browser mutation observer batches records per task.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Callable, Dict, Iterator, List, Optional, Protocol
from urllib.parse import urljoin

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from media_audit.core.dto import TRACKED_TAGS
from media_audit.core.subscriptions import Subscription

logger = logging.getLogger(__name__)

# Elements that never have children in HTML markup
VOID_TAGS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}


class Element:
    """Generic element node."""

    def __init__(self, tag: str, attributes: Optional[Dict[str, str]] = None):
        self.tag = tag.lower()
        self.attributes: Dict[str, str] = dict(attributes or {})
        self.children: List[Element] = []
        self.parent: Optional[Element] = None
        self.owner_document: Optional[MediaDocument] = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.tag} children={len(self.children)}>"

    def get_attribute(self, name: str, default: str = "") -> str:
        value = self.attributes.get(name)
        return default if value is None else value

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    def resolve_url(self, name: str) -> str:
        """Attribute value resolved against the document base URL ("" when absent)."""
        value = self.get_attribute(name).strip()
        if not value:
            return ""
        base = self.owner_document.base_url if self.owner_document else ""
        return urljoin(base, value) if base else value

    # ------------------------------------------------------------------
    # Tree mutation
    # ------------------------------------------------------------------

    def append_child(self, child: "Element") -> "Element":
        return self.insert_child(len(self.children), child)

    def insert_child(self, index: int, child: "Element") -> "Element":
        if child is self or child.contains(self):
            raise ValueError("cannot insert an element into its own subtree")
        if child.parent is not None:
            child.parent.remove_child(child)
        self.children.insert(index, child)
        child.parent = self
        child._set_owner(self.owner_document)
        if self.owner_document is not None:
            self.owner_document._record(MutationRecord(target=self, added_nodes=[child]))
        return child

    def remove_child(self, child: "Element") -> "Element":
        self.children.remove(child)
        child.parent = None
        document = self.owner_document
        child._set_owner(None)
        if document is not None:
            document._record(MutationRecord(target=self, removed_nodes=[child]))
        return child

    def _set_owner(self, document: Optional["MediaDocument"]) -> None:
        self.owner_document = document
        for child in self.children:
            child._set_owner(document)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def iter_descendants(self) -> Iterator["Element"]:
        """Descendants in document (pre-)order, excluding self."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def query_all(self, *tags: str) -> List["Element"]:
        wanted = {t.lower() for t in tags}
        return [node for node in self.iter_descendants() if node.tag in wanted]

    def contains(self, other: "Element") -> bool:
        """True when ``other`` is this element or one of its descendants."""
        node: Optional[Element] = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False


class MediaElement(Element):
    """
    A ``video`` or ``audio`` element.

    The playback fields are live: a player updates them as the resource loads,
    so two reads may disagree even when the tree has not changed.
    """

    def __init__(self, tag: str, attributes: Optional[Dict[str, str]] = None):
        super().__init__(tag, attributes)
        if self.tag not in TRACKED_TAGS:
            raise ValueError(f"not a media tag: {tag}")
        self.duration: float = math.nan
        self.ready_state: int = 0
        self.network_state: int = 0
        self.current_src: str = ""
        self.video_width: int = 0
        self.video_height: int = 0

    @property
    def src(self) -> str:
        return self.resolve_url("src")


def create_element(tag: str, attributes: Optional[Dict[str, str]] = None) -> Element:
    if tag.lower() in TRACKED_TAGS:
        return MediaElement(tag, attributes)
    return Element(tag, attributes)


@dataclass
class MutationRecord:
    target: Element
    added_nodes: List[Element] = field(default_factory=list)
    removed_nodes: List[Element] = field(default_factory=list)


class DocumentQuery(Protocol):
    """What the scanner and observer need from a document."""

    def query_all(self, *tags: str) -> List[Element]: ...

    def observe_insertions(
        self, root: Element, callback: Callable[[List[MutationRecord]], None]
    ) -> Subscription: ...


class MediaDocument(QObject):
    """
    Live element tree with batched mutation delivery.

    Signals:
        mutations(records): one batch of MutationRecord per event loop turn
    """
    mutations = pyqtSignal(list)

    def __init__(self, base_url: str = "", parent: Optional[QObject] = None):
        super().__init__(parent)
        self.base_url = base_url
        self._pending: List[MutationRecord] = []
        self._delivery_scheduled = False
        self._observer_count = 0
        self.root = Element("html")
        self.root._set_owner(self)
        self.head = self.root.append_child(Element("head"))
        self.body = self.root.append_child(Element("body"))

    def query_all(self, *tags: str) -> List[Element]:
        return self.root.query_all(*tags)

    def create_element(self, tag: str, attributes: Optional[Dict[str, str]] = None) -> Element:
        return create_element(tag, attributes)

    def observe_insertions(
        self, root: Element, callback: Callable[[List[MutationRecord]], None]
    ) -> Subscription:
        """
        Deliver batches that touch ``root``'s subtree to ``callback``.

        Only mutations made after this call are delivered.
        """
        def _filter(records: List[MutationRecord]) -> None:
            relevant = [r for r in records if root.contains(r.target)]
            if relevant:
                callback(relevant)

        subscription = Subscription(self.mutations, _filter, parent=self)
        self._observer_count += 1
        subscription.cancelled.connect(self._on_observer_cancelled)
        return subscription

    def _on_observer_cancelled(self) -> None:
        self._observer_count = max(0, self._observer_count - 1)

    def _record(self, record: MutationRecord) -> None:
        if self._observer_count == 0:
            return
        self._pending.append(record)
        if not self._delivery_scheduled:
            self._delivery_scheduled = True
            QTimer.singleShot(0, self.deliver_pending)

    def deliver_pending(self) -> None:
        """Flush queued records as a single batch. No-op when nothing is queued."""
        self._delivery_scheduled = False
        if not self._pending:
            return
        batch, self._pending = self._pending, []
        logger.debug(f"Delivering mutation batch with {len(batch)} record(s)")
        self.mutations.emit(batch)


class _DocumentBuilder(HTMLParser):
    """Builds a MediaDocument from markup."""

    def __init__(self, document: MediaDocument):
        super().__init__(convert_charrefs=True)
        self.document = document
        self._stack: List[Element] = [document.body]

    def handle_starttag(self, tag, attrs):
        tag = tag.lower()
        if tag == "html":
            return
        if tag in ("head", "body"):
            self._stack = [getattr(self.document, tag)]
            self._copy_attrs(tag, attrs)
            return
        attributes = {name: (value or "") for name, value in attrs}
        if tag == "base" and attributes.get("href") and not self.document.base_url:
            self.document.base_url = attributes["href"]
        element = create_element(tag, attributes)
        self._stack[-1].append_child(element)
        if tag not in VOID_TAGS:
            self._stack.append(element)

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)
        if tag.lower() not in VOID_TAGS and len(self._stack) > 1 and self._stack[-1].tag == tag.lower():
            self._stack.pop()

    def handle_endtag(self, tag):
        tag = tag.lower()
        if tag in ("html", "head", "body") or tag in VOID_TAGS:
            return
        # Pop to the matching open element; stray end tags are ignored
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def _copy_attrs(self, tag, attrs):
        element = getattr(self.document, tag)
        for name, value in attrs:
            element.set_attribute(name, value or "")


def parse_html(markup: str, base_url: str = "", parent: Optional[QObject] = None) -> MediaDocument:
    """
    Build a MediaDocument from HTML markup.

    Media elements come out with their initial live state (no metadata
    loaded, NaN duration); ``src`` attributes resolve against ``base_url`` or
    the first ``<base href>`` in the markup.
    """
    document = MediaDocument(base_url=base_url, parent=parent)
    builder = _DocumentBuilder(document)
    builder.feed(markup)
    builder.close()
    logger.info(
        "Parsed document: %d media element(s)", len(document.query_all(*TRACKED_TAGS))
    )
    return document
