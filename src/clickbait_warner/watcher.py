# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Mutation watcher — single consumer that turns insertions into subtree scans.

Batches are pushed onto an asyncio queue and drained by one ``run()`` task,
so subtrees are scanned strictly one at a time, in delivery order.  Only
element nodes are scanned; text, comment and other node kinds are ignored.
Attribute changes on existing elements are never observed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from clickbait_warner.errors import WatcherClosedError
from clickbait_warner.scanner import ScanStats, TreeScanner
from clickbait_warner.tree import ContentTree, MutationBatch, NodeKind

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass
class WatcherMeta:
    """Running counters for one watcher."""

    batches: int = 0
    scanned: int = 0
    ignored: int = 0
    flagged: int = 0


class MutationWatcher:
    """Queue consumer forwarding inserted elements to a TreeScanner."""

    def __init__(self, scanner: TreeScanner, tree: ContentTree) -> None:
        self.scanner = scanner
        self.tree = tree
        self.meta = WatcherMeta()
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def push(self, batch: MutationBatch) -> None:
        """Enqueue a batch without blocking."""
        if self._closed:
            raise WatcherClosedError("mutation watcher is closed")
        self._queue.put_nowait(batch)

    def close(self) -> None:
        """Stop ``run()`` once every batch pushed so far has been processed."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_STOP)

    async def run(self) -> None:
        """Drain the queue until closed."""
        while True:
            item = await self._queue.get()
            if item is _STOP:
                break
            self.process(item)
            # Let producers interleave between batches
            await asyncio.sleep(0)
        logger.debug(
            "Mutation watcher stopped after %d batch(es), %d subtree scan(s)",
            self.meta.batches,
            self.meta.scanned,
        )

    def process(self, batch: MutationBatch) -> ScanStats:
        """Scan every element of *batch* synchronously."""
        total = ScanStats()
        self.meta.batches += 1
        for node in batch.added:
            if self.tree.node_kind(node) is not NodeKind.ELEMENT:
                self.meta.ignored += 1
                continue
            stats = self.scanner.scan(node)
            self.meta.scanned += 1
            self.meta.flagged += len(stats.flagged)
            total.merge(stats)
        return total
