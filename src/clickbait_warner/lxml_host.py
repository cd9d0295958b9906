# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""lxml-backed host: tree queries, visual indicator, in-process mutation feed.

Structural queries are XPath expressions evaluated with the subtree root as
context node.  All queries of one call are joined into a single union so the
result comes back de-duplicated and in document order.  Queries that fail to
compile are dropped with a warning instead of failing the scan.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import AsyncIterator, Sequence

import lxml.html
from lxml import etree

from clickbait_warner.tree import MutationBatch, NodeKind

logger = logging.getLogger(__name__)

INDICATOR_CLASS = "potential-clickbait-flagged"
INDICATOR_TEXT_CLASS = "clickbait-indicator-text"
INDICATOR_TEXT = "[Potential Clickbait] "

_LINKS_XPATH = etree.XPath("descendant-or-self::a")
_LINKED_IMAGES_XPATH = etree.XPath("descendant-or-self::img[@alt][ancestor::a]")
_STRING_VALUE_XPATH = etree.XPath("string()")


# ---------------------------------------------------------------------------
# Query compilation
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=32)
def _compile_union(queries: tuple[str, ...]) -> etree.XPath | None:
    """Compile *queries* into one union expression, dropping invalid members."""
    if not queries:
        return None
    try:
        return etree.XPath(" | ".join(f"({q})" for q in queries))
    except etree.XPathSyntaxError:
        pass

    valid: list[str] = []
    for q in queries:
        try:
            etree.XPath(q)
        except etree.XPathSyntaxError as e:
            logger.warning("Dropping invalid structural query %r: %s", q, e)
            continue
        valid.append(q)
    if not valid:
        return None
    return etree.XPath(" | ".join(f"({q})" for q in valid))


def _is_element(node: object) -> bool:
    # Comments and processing instructions are _Element subclasses with a non-str tag
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


class LxmlTree:
    """``ContentTree`` over an lxml document."""

    def __init__(self, root: etree._Element | None) -> None:
        self._root = root

    @classmethod
    def from_html(cls, html: str) -> LxmlTree:
        """Parse a full HTML document and root the tree at ``<body>``.

        Input is parsed as UTF-8 bytes so an XML declaration naming an
        encoding is accepted.  A document without any element (blank, or
        only comments) gives a tree with no root.
        """
        if not html.strip():
            return cls(None)
        parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
        try:
            doc = lxml.html.document_fromstring(html.encode("utf-8"), parser=parser)
        except etree.ParserError as e:
            logger.debug("No document element: %s", e)
            return cls(None)
        body = doc.find("body")
        return cls(body if body is not None else doc)

    @property
    def root(self) -> etree._Element | None:
        return self._root

    def query(self, root: etree._Element, queries: Sequence[str]) -> list[etree._Element]:
        compiled = _compile_union(tuple(queries))
        if compiled is None:
            return []
        try:
            result = compiled(root)
        except etree.XPathEvalError as e:
            logger.warning("Structural query evaluation failed: %s", e)
            return []
        return [el for el in result if _is_element(el)]

    def links(self, root: etree._Element) -> list[etree._Element]:
        return _LINKS_XPATH(root)

    def linked_images(self, root: etree._Element) -> list[etree._Element]:
        return [img for img in _LINKED_IMAGES_XPATH(root) if (img.get("alt") or "").strip()]

    def is_link(self, element: etree._Element) -> bool:
        return element.tag == "a"

    def closest_link(self, element: etree._Element) -> etree._Element | None:
        if element.tag == "a":
            return element
        return next(element.iterancestors("a"), None)

    def attribute(self, element: etree._Element, name: str) -> str | None:
        return element.get(name)

    def text_content(self, element: etree._Element) -> str:
        return str(_STRING_VALUE_XPATH(element))

    def node_kind(self, node: object) -> NodeKind:
        if isinstance(node, str):
            return NodeKind.TEXT
        if isinstance(node, etree._Comment):
            return NodeKind.COMMENT
        if _is_element(node):
            return NodeKind.ELEMENT
        return NodeKind.OTHER

    def describe(self, element: etree._Element) -> str:
        return element.getroottree().getpath(element)

    def serialize(self) -> str:
        if self._root is None:
            return ""
        return lxml.html.tostring(self._root.getroottree(), encoding="unicode")


# ---------------------------------------------------------------------------
# Marker
# ---------------------------------------------------------------------------


class LxmlIndicatorMarker:
    """Adds the indicator class and prepends the warning label span."""

    def __init__(self, label: str = INDICATOR_TEXT) -> None:
        self.label = label

    def mark(self, element: etree._Element) -> None:
        classes = (element.get("class") or "").split()
        if INDICATOR_CLASS not in classes:
            classes.append(INDICATOR_CLASS)
            element.set("class", " ".join(classes))

        span = element.makeelement("span", {"class": INDICATOR_TEXT_CLASS})
        span.text = self.label
        span.tail = element.text
        element.text = None
        element.insert(0, span)


# ---------------------------------------------------------------------------
# Mutation feed
# ---------------------------------------------------------------------------

_CLOSED = object()


class _Subscription:
    """Async iterator over batches for one subscriber.

    Registered with the feed at creation so no batch published between
    ``subscribe()`` and the first ``__anext__`` is lost.
    """

    __slots__ = ("_feed", "_root", "_queue")

    def __init__(self, feed: LxmlMutationFeed, root: etree._Element) -> None:
        self._feed = feed
        self._root = root
        self._queue: asyncio.Queue[object] = asyncio.Queue()

    def covers(self, parent: etree._Element) -> bool:
        return parent is self._root or any(a is self._root for a in parent.iterancestors())

    def put(self, item: object) -> None:
        self._queue.put_nowait(item)

    def __aiter__(self) -> _Subscription:
        return self

    async def __anext__(self) -> MutationBatch:
        item = await self._queue.get()
        if item is _CLOSED:
            self._feed._unsubscribe(self)
            raise StopAsyncIteration
        return item


class LxmlMutationFeed:
    """In-process ``MutationSource``: performs insertions and reports them.

    Plays the role a browser MutationObserver plays for a live page.  Only
    insertions are reported; attribute changes are not.
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []
        self._closed = False

    def subscribe(self, root: etree._Element) -> AsyncIterator[MutationBatch]:
        sub = _Subscription(self, root)
        if self._closed:
            sub.put(_CLOSED)
        else:
            self._subscriptions.append(sub)
        return sub

    def _unsubscribe(self, sub: _Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def publish(self, parent: etree._Element, added: Sequence[object]) -> None:
        if not added or self._closed:
            return
        batch = MutationBatch(added=tuple(added))
        for sub in self._subscriptions:
            if sub.covers(parent):
                sub.put(batch)

    def insert(self, parent: etree._Element, node: etree._Element, index: int | None = None) -> None:
        if index is None:
            parent.append(node)
        else:
            parent.insert(index, node)
        self.publish(parent, [node])

    def append_html(self, parent: etree._Element, fragment: str) -> list[object]:
        """Parse *fragment*, append it under *parent* and report the new nodes.

        A leading text run is appended as text and reported as a plain string.
        """
        nodes = lxml.html.fragments_fromstring(fragment) if fragment.strip() else []
        added: list[object] = []
        for node in nodes:
            if isinstance(node, str):
                if len(parent):
                    last = parent[-1]
                    last.tail = (last.tail or "") + node
                else:
                    parent.text = (parent.text or "") + node
            else:
                parent.append(node)
            added.append(node)
        self.publish(parent, added)
        return added

    def close(self) -> None:
        """End every open subscription stream."""
        self._closed = True
        for sub in self._subscriptions:
            sub.put(_CLOSED)
