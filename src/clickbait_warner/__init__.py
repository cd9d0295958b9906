# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Clickbait Warner: flag clickbait headlines in a growing content tree.

- classifier: heuristic text → bool decision over an immutable PatternCatalog
- scanner: three-pass subtree scan with exactly-once marking
- watcher/session: incremental scanning driven by insertion notifications
"""

from __future__ import annotations

from clickbait_warner.catalog import DEFAULT_CATALOG, GapPattern, PatternCatalog, PatternKind
from clickbait_warner.classifier import ClassificationResult, Rule, TextClassifier, is_clickbait
from clickbait_warner.scanner import FlagRecord, ScanStats, TreeScanner
from clickbait_warner.session import ScanSession, SessionState
from clickbait_warner.tree import MutationBatch, NodeKind
from clickbait_warner.watcher import MutationWatcher

__all__ = [
    "DEFAULT_CATALOG",
    "ClassificationResult",
    "FlagRecord",
    "GapPattern",
    "MutationBatch",
    "MutationWatcher",
    "NodeKind",
    "PatternCatalog",
    "PatternKind",
    "Rule",
    "ScanSession",
    "ScanStats",
    "SessionState",
    "TextClassifier",
    "TreeScanner",
    "is_clickbait",
]
