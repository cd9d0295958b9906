# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Heuristic clickbait text classifier — boolean OR over four rule checks.

Checks run in a fixed order and stop at the first hit:
  1. lexical          – catalog phrase contained in the text
  2. punctuation      – repeated ?/!, mixed ?!, rhetorical trailing "?"
  3. information_gap  – literal or regex "curiosity gap" entries
  4. caps_heavy       – too many fully upper-cased words

The checks are pure, so the order only decides which rule gets reported in
``ClassificationResult.rule``; the boolean outcome is that of a full OR.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum

from clickbait_warner.catalog import (
    DEFAULT_CATALOG,
    CapsHeavyRule,
    GapPattern,
    PatternCatalog,
    PatternKind,
    PunctuationRules,
)

logger = logging.getLogger(__name__)

_ASCII_LETTER_RE = re.compile(r"[A-Za-z]")


class Rule(StrEnum):
    """Rule group that triggered a positive decision."""

    LEXICAL = "lexical"
    PUNCTUATION = "punctuation"
    INFORMATION_GAP = "information_gap"
    CAPS_HEAVY = "caps_heavy"


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Outcome of classifying one text fragment."""

    is_clickbait: bool
    rule: Rule | None = None
    matched: str | None = None  # phrase, pattern source or short reason

    def __bool__(self) -> bool:
        return self.is_clickbait


_NOT_CLICKBAIT = ClassificationResult(is_clickbait=False)


# ---------------------------------------------------------------------------
# Rule checks (pure functions, return the matched detail or None)
# ---------------------------------------------------------------------------


def match_lexical(text: str, lowered_phrases: tuple[str, ...]) -> str | None:
    lower = text.lower()
    return next((p for p in lowered_phrases if p in lower), None)


def match_punctuation(text: str, rules: PunctuationRules) -> str | None:
    if text.count("?") >= rules.min_question_marks:
        return "question marks"
    if text.count("!") >= rules.min_exclamation_marks:
        return "exclamation marks"
    m = rules.mixed_re.search(text)
    if m:
        return m.group(0)
    # Rhetorical headline question; short texts are likely genuine questions
    if text.endswith("?") and len(text) > rules.trailing_question_min_length and not text.endswith("??"):
        return "trailing question mark"
    return None


def match_information_gap(text: str, patterns: tuple[GapPattern, ...]) -> str | None:
    lower = text.lower()
    for pattern in patterns:
        if pattern.kind is PatternKind.LITERAL:
            if pattern.source.lower() in lower:
                return pattern.source
        elif pattern.compiled is None:
            logger.debug("Skipping disabled information-gap regex %r", pattern.source)
        elif pattern.compiled.search(text):
            return pattern.source
    return None


def match_caps_heavy(text: str, rule: CapsHeavyRule) -> str | None:
    words = text.split()
    if len(words) < rule.min_word_count:
        return None
    upper = sum(1 for w in words if len(w) > 2 and w == w.upper() and _ASCII_LETTER_RE.search(w))
    ratio = upper / len(words)
    if ratio > rule.ratio_threshold:
        return f"{upper}/{len(words)} words upper-case"
    return None


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class TextClassifier:
    """Pure text → decision oracle bound to one immutable catalog."""

    __slots__ = ("_catalog",)

    def __init__(self, catalog: PatternCatalog = DEFAULT_CATALOG) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> PatternCatalog:
        return self._catalog

    def evaluate(self, text: object) -> ClassificationResult:
        """Classify *text* and report the first rule that fired.

        Non-string, empty and whitespace-only inputs are never clickbait.
        """
        if not isinstance(text, str):
            return _NOT_CLICKBAIT
        text = text.strip()
        if not text:
            return _NOT_CLICKBAIT

        catalog = self._catalog
        if (hit := match_lexical(text, catalog.lowered_phrases)) is not None:
            return ClassificationResult(True, Rule.LEXICAL, hit)
        if (hit := match_punctuation(text, catalog.punctuation)) is not None:
            return ClassificationResult(True, Rule.PUNCTUATION, hit)
        if (hit := match_information_gap(text, catalog.information_gap)) is not None:
            return ClassificationResult(True, Rule.INFORMATION_GAP, hit)
        if (hit := match_caps_heavy(text, catalog.caps_heavy)) is not None:
            return ClassificationResult(True, Rule.CAPS_HEAVY, hit)
        return _NOT_CLICKBAIT

    def classify(self, text: object) -> bool:
        return self.evaluate(text).is_clickbait


_default_classifier = TextClassifier()


def is_clickbait(text: object) -> bool:
    """Classify *text* against the default catalog."""
    return _default_classifier.classify(text)
