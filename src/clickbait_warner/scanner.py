# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Subtree scanner — candidate extraction, classification, exactly-once marking.

Three passes over one subtree, always in this order:
  A. structural – elements matched by the structural query list
  B. links      – every remaining link with a usable label
  C. images     – alt text of images inside links

All passes share one FlagState.  A target that is already marked is skipped
before classification, so re-scanning a subtree (or an ancestor of it) never
re-evaluates or re-marks anything.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from clickbait_warner.classifier import Rule, TextClassifier
from clickbait_warner.flag_state import FlagState
from clickbait_warner.queries import DEFAULT_QUERIES
from clickbait_warner.tree import ContentTree, Marker

logger = logging.getLogger(__name__)

TITLE_ATTRIBUTE = "title"
ALT_ATTRIBUTE = "alt"
_MIN_LINK_TEXT_LEN = 10  # link labels this short or shorter are skipped
_URL_PREFIX = "http"


class ScanPass(StrEnum):
    STRUCTURAL = "structural"
    LINKS = "links"
    IMAGES = "images"


@dataclass(frozen=True, slots=True)
class FlagRecord:
    """An element newly marked by a scan."""

    target: Any
    text: str
    rule: Rule | None
    matched: str | None
    scan_pass: ScanPass


@dataclass
class ScanStats:
    """Statistics from one ``TreeScanner.scan`` call."""

    candidates: dict[str, int] = field(default_factory=dict)
    classified: int = 0
    skipped_marked: int = 0
    skipped_short: int = 0
    flagged: list[FlagRecord] = field(default_factory=list)

    def count(self, scan_pass: ScanPass) -> None:
        self.candidates[scan_pass] = self.candidates.get(scan_pass, 0) + 1

    def merge(self, other: ScanStats) -> None:
        for key, n in other.candidates.items():
            self.candidates[key] = self.candidates.get(key, 0) + n
        self.classified += other.classified
        self.skipped_marked += other.skipped_marked
        self.skipped_short += other.skipped_short
        self.flagged.extend(other.flagged)


@dataclass(frozen=True, slots=True)
class Candidate:
    element: Any
    text: str
    target: Any


class TreeScanner:
    """Scans subtrees of one content tree and marks clickbait exactly once."""

    def __init__(
        self,
        tree: ContentTree,
        classifier: TextClassifier,
        flags: FlagState,
        marker: Marker,
        queries: Sequence[str] = DEFAULT_QUERIES,
        *,
        on_flag: Callable[[FlagRecord], None] | None = None,
    ) -> None:
        self.tree = tree
        self.classifier = classifier
        self.flags = flags
        self.marker = marker
        self.queries = tuple(queries)
        self.on_flag = on_flag

    def scan(self, root: Any) -> ScanStats:
        """Run passes A → B → C over the subtree at *root*. ``None`` is a no-op."""
        stats = ScanStats()
        if root is None:
            return stats

        for candidate in self._structural_candidates(root):
            stats.count(ScanPass.STRUCTURAL)
            self._consider(candidate, ScanPass.STRUCTURAL, stats)
        for candidate in self._link_candidates(root, stats):
            stats.count(ScanPass.LINKS)
            self._consider(candidate, ScanPass.LINKS, stats)
        for candidate in self._image_candidates(root):
            stats.count(ScanPass.IMAGES)
            self._consider(candidate, ScanPass.IMAGES, stats)

        if stats.flagged:
            logger.info(
                "Flagged %d element(s) under %s (%d classified)",
                len(stats.flagged),
                self.tree.describe(root),
                stats.classified,
            )
        return stats

    # ------------------------------------------------------------------
    # Candidate extraction
    # ------------------------------------------------------------------

    def _structural_candidates(self, root: Any) -> Iterator[Candidate]:
        tree = self.tree
        for el in tree.query(root, self.queries):
            title = tree.attribute(el, TITLE_ATTRIBUTE)
            if tree.is_link(el) and title is not None:
                yield Candidate(el, title, el)
                continue
            link = tree.closest_link(el)
            yield Candidate(el, tree.text_content(el), link if link is not None else el)

    def _link_candidates(self, root: Any, stats: ScanStats) -> Iterator[Candidate]:
        tree = self.tree
        for link in tree.links(root):
            if self.flags.is_marked(link):
                stats.skipped_marked += 1
                continue
            title = tree.attribute(link, TITLE_ATTRIBUTE)
            text = title if title and title.strip() else tree.text_content(link)
            label = text.strip()
            if len(label) <= _MIN_LINK_TEXT_LEN or label.startswith(_URL_PREFIX):
                stats.skipped_short += 1
                continue
            yield Candidate(link, text, link)

    def _image_candidates(self, root: Any) -> Iterator[Candidate]:
        tree = self.tree
        for img in tree.linked_images(root):
            link = tree.closest_link(img)
            yield Candidate(img, tree.attribute(img, ALT_ATTRIBUTE) or "", link if link is not None else img)

    # ------------------------------------------------------------------
    # Decision + marking
    # ------------------------------------------------------------------

    def _consider(self, candidate: Candidate, scan_pass: ScanPass, stats: ScanStats) -> None:
        target = candidate.target
        if self.flags.is_marked(target):
            stats.skipped_marked += 1
            return

        stats.classified += 1
        result = self.classifier.evaluate(candidate.text)
        if not result or not self.flags.claim(target):
            return

        try:
            self.marker.mark(target)
        except Exception:
            # The flag stays set: a target is attempted once, never re-marked
            logger.warning("Marking %s failed", self.tree.describe(target), exc_info=True)
            return
        record = FlagRecord(
            target=target,
            text=candidate.text.strip(),
            rule=result.rule,
            matched=result.matched,
            scan_pass=scan_pass,
        )
        stats.flagged.append(record)
        logger.debug("Marked %s (%s: %r)", self.tree.describe(target), result.rule, result.matched)
        if self.on_flag is not None:
            try:
                self.on_flag(record)
            except Exception:
                logger.warning("on_flag callback failed for %s", self.tree.describe(target), exc_info=True)
