# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Scan session — owns one content tree, its scanner and its mutation subscription.

Lifecycle per tree::

    INIT ──start()──▶ SCANNING (one synchronous full-tree pass) ──▶ OBSERVING

OBSERVING has no terminal state of its own; it lasts until the mutation
stream ends (the host tears the subscription down).  A tree without a root
stays in INIT and nothing is scanned.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from enum import StrEnum

import structlog

from clickbait_warner.catalog import DEFAULT_CATALOG, PatternCatalog
from clickbait_warner.classifier import TextClassifier
from clickbait_warner.flag_state import AttributeFlagState, FlagState, SetFlagState
from clickbait_warner.lxml_host import LxmlIndicatorMarker, LxmlMutationFeed, LxmlTree
from clickbait_warner.queries import DEFAULT_QUERIES
from clickbait_warner.scanner import FlagRecord, ScanStats, TreeScanner
from clickbait_warner.tree import ContentTree, Marker, MutationSource
from clickbait_warner.watcher import MutationWatcher

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    INIT = "init"
    SCANNING = "scanning"
    OBSERVING = "observing"


class ScanSession:
    """Bootstrap scan + mutation-driven incremental scanning for one tree."""

    def __init__(
        self,
        tree: ContentTree,
        marker: Marker,
        *,
        source: MutationSource | None = None,
        catalog: PatternCatalog = DEFAULT_CATALOG,
        flags: FlagState | None = None,
        queries: Sequence[str] = DEFAULT_QUERIES,
        on_flag: Callable[[FlagRecord], None] | None = None,
    ) -> None:
        self.session_id = uuid.uuid4().hex[:12]
        self.tree = tree
        self.source = source
        self.flags = flags if flags is not None else SetFlagState()
        self.scanner = TreeScanner(tree, TextClassifier(catalog), self.flags, marker, queries, on_flag=on_flag)
        self.watcher = MutationWatcher(self.scanner, tree)
        self.state = SessionState.INIT
        self.initial_stats = ScanStats()

    @classmethod
    def for_html(
        cls,
        html: str,
        *,
        feed: LxmlMutationFeed | None = None,
        catalog: PatternCatalog = DEFAULT_CATALOG,
        queries: Sequence[str] = DEFAULT_QUERIES,
        on_flag: Callable[[FlagRecord], None] | None = None,
    ) -> ScanSession:
        """Session over a parsed HTML document, flags stored on the elements."""
        return cls(
            LxmlTree.from_html(html),
            LxmlIndicatorMarker(),
            source=feed,
            catalog=catalog,
            flags=AttributeFlagState(),
            queries=queries,
            on_flag=on_flag,
        )

    def start(self) -> ScanStats:
        """Run the bootstrap pass over the whole tree and enter OBSERVING."""
        if self.state is not SessionState.INIT:
            logger.debug("Session %s already started (%s)", self.session_id, self.state)
            return self.initial_stats
        root = self.tree.root
        if root is None:
            logger.debug("Session %s has no tree root; nothing to scan", self.session_id)
            return self.initial_stats

        self.state = SessionState.SCANNING
        logger.info("Initial scan starting")
        self.initial_stats = self.scanner.scan(root)
        self.state = SessionState.OBSERVING
        logger.info("Initial scan complete, %d flagged", len(self.initial_stats.flagged))
        return self.initial_stats

    async def run(self) -> None:
        """Bootstrap, then consume mutation batches until the stream ends."""
        with structlog.contextvars.bound_contextvars(session_id=self.session_id):
            self.start()
            if self.state is not SessionState.OBSERVING or self.source is None:
                return

            consumer = asyncio.get_running_loop().create_task(
                self.watcher.run(), name=f"clickbait-watcher-{self.session_id}"
            )
            logger.info("Observing mutations")
            try:
                async for batch in self.source.subscribe(self.tree.root):
                    if consumer.done():
                        # Consumer died; stop pumping so its error surfaces below
                        break
                    self.watcher.push(batch)
            finally:
                self.watcher.close()
                await consumer
            logger.info(
                "Mutation stream ended: %d batch(es), %d flagged",
                self.watcher.meta.batches,
                self.watcher.meta.flagged,
            )
