# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Detection rule catalog — immutable configuration consumed by the classifier.

Four rule groups:
  1. lexical phrases   – case-insensitive literal substrings
  2. punctuation       – ?/! counts, mixed runs, rhetorical trailing "?"
  3. information gap   – ordered literal or regex entries
  4. caps-heavy        – ratio of fully upper-cased words

A catalog is built once and shared read-only by every classifier that
receives it.  Regex entries compile at construction; a source that fails to
compile is kept as a disabled entry so one bad rule never takes the others
down with it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from clickbait_warner.errors import CatalogError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Rule groups
# ---------------------------------------------------------------------------


class PatternKind(StrEnum):
    """How an information-gap entry is matched."""

    LITERAL = "literal"
    REGEX = "regex"


# Markers that made an untagged entry count as a regex in legacy rule files
_REGEX_MARKERS = ("\\d", "\\s")


@dataclass(frozen=True, slots=True)
class GapPattern:
    """A single information-gap entry, tagged as literal or regex."""

    kind: PatternKind
    source: str
    compiled: re.Pattern[str] | None = field(default=None, compare=False, repr=False)
    error: str | None = field(default=None, compare=False)

    @classmethod
    def literal(cls, text: str) -> GapPattern:
        return cls(PatternKind.LITERAL, text)

    @classmethod
    def regex(cls, source: str) -> GapPattern:
        try:
            compiled = re.compile(source, re.IGNORECASE)
        except re.error as e:
            logger.warning("Invalid information-gap regex %r disabled: %s", source, e)
            return cls(PatternKind.REGEX, source, error=str(e))
        return cls(PatternKind.REGEX, source, compiled=compiled)

    @classmethod
    def sniff(cls, source: str) -> GapPattern:
        """Build an entry from an untagged string.

        Regex if the text contains a digit/whitespace escape or is anchored
        with ``^``/``$``; literal otherwise.  A literal phrase containing
        ``\\d`` is therefore misread, which is why tagged entries are preferred.
        """
        if any(m in source for m in _REGEX_MARKERS) or source.startswith("^") or source.endswith("$"):
            return cls.regex(source)
        return cls.literal(source)

    @property
    def usable(self) -> bool:
        return self.kind is PatternKind.LITERAL or self.compiled is not None


@dataclass(frozen=True, slots=True)
class PunctuationRules:
    min_question_marks: int = 2
    min_exclamation_marks: int = 2
    mixed_end_pattern: str = r"\?{2,}|!{2,}|\?!+|!\?+"
    trailing_question_min_length: int = 15
    _mixed_re: re.Pattern[str] = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        try:
            compiled = re.compile(self.mixed_end_pattern)
        except re.error as e:
            raise CatalogError(
                f"invalid mixed_end_pattern {self.mixed_end_pattern!r}: {e}", key="punctuation"
            ) from e
        object.__setattr__(self, "_mixed_re", compiled)

    @property
    def mixed_re(self) -> re.Pattern[str]:
        return self._mixed_re


@dataclass(frozen=True, slots=True)
class CapsHeavyRule:
    ratio_threshold: float = 0.4  # strictly greater than → caps-heavy
    min_word_count: int = 3


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PatternCatalog:
    """Immutable rule configuration shared by all classification calls."""

    lexical_phrases: tuple[str, ...] = ()
    punctuation: PunctuationRules = field(default_factory=PunctuationRules)
    information_gap: tuple[GapPattern, ...] = ()
    caps_heavy: CapsHeavyRule = field(default_factory=CapsHeavyRule)
    _lowered_phrases: tuple[str, ...] = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        # Accept any iterable from callers but store tuples so the value stays hashable
        object.__setattr__(self, "lexical_phrases", tuple(self.lexical_phrases))
        object.__setattr__(self, "information_gap", tuple(self.information_gap))
        object.__setattr__(self, "_lowered_phrases", tuple(p.lower() for p in self.lexical_phrases if p))

    @property
    def lowered_phrases(self) -> tuple[str, ...]:
        return self._lowered_phrases

    @property
    def disabled_patterns(self) -> tuple[GapPattern, ...]:
        return tuple(p for p in self.information_gap if not p.usable)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base: PatternCatalog | None = None) -> PatternCatalog:
        """Build a catalog from a plain mapping (e.g. a parsed YAML document).

        Missing keys fall back to *base* (``DEFAULT_CATALOG`` when omitted).
        Raises CatalogError on wrong shapes or out-of-range values.
        """
        if not isinstance(data, Mapping):
            raise CatalogError(f"rules must be a mapping, got {type(data).__name__}")
        base = DEFAULT_CATALOG if base is None else base

        phrases = base.lexical_phrases
        if "lexical_phrases" in data:
            phrases = tuple(_string_list(data["lexical_phrases"], "lexical_phrases"))

        punctuation = base.punctuation
        if "punctuation" in data:
            punctuation = _build_punctuation(data["punctuation"], base.punctuation)

        gaps = base.information_gap
        if "information_gap" in data:
            gaps = tuple(_build_gap_entries(data["information_gap"]))

        caps = base.caps_heavy
        if "caps_heavy" in data:
            caps = _build_caps(data["caps_heavy"], base.caps_heavy)

        return cls(
            lexical_phrases=phrases,
            punctuation=punctuation,
            information_gap=gaps,
            caps_heavy=caps,
        )


# ---------------------------------------------------------------------------
# Mapping helpers
# ---------------------------------------------------------------------------


def _string_list(value: Any, key: str) -> list[str]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise CatalogError(f"{key} must be a list of strings", key=key)
    items = list(value)
    for item in items:
        if not isinstance(item, str):
            raise CatalogError(f"{key} entries must be strings, got {type(item).__name__}", key=key)
    return items


def _int_field(section: Mapping[str, Any], name: str, default: int, key: str) -> int:
    value = section.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise CatalogError(f"{key}.{name} must be a non-negative integer", key=key)
    return value


def _build_punctuation(section: Any, base: PunctuationRules) -> PunctuationRules:
    if not isinstance(section, Mapping):
        raise CatalogError("punctuation must be a mapping", key="punctuation")
    pattern = section.get("mixed_end_pattern", base.mixed_end_pattern)
    if not isinstance(pattern, str):
        raise CatalogError("punctuation.mixed_end_pattern must be a string", key="punctuation")
    return PunctuationRules(
        min_question_marks=_int_field(section, "min_question_marks", base.min_question_marks, "punctuation"),
        min_exclamation_marks=_int_field(section, "min_exclamation_marks", base.min_exclamation_marks, "punctuation"),
        mixed_end_pattern=pattern,
        trailing_question_min_length=_int_field(
            section, "trailing_question_min_length", base.trailing_question_min_length, "punctuation"
        ),
    )


def _build_caps(section: Any, base: CapsHeavyRule) -> CapsHeavyRule:
    if not isinstance(section, Mapping):
        raise CatalogError("caps_heavy must be a mapping", key="caps_heavy")
    ratio = section.get("ratio_threshold", base.ratio_threshold)
    if isinstance(ratio, bool) or not isinstance(ratio, (int, float)) or not 0.0 <= ratio <= 1.0:
        raise CatalogError("caps_heavy.ratio_threshold must be a number in [0, 1]", key="caps_heavy")
    return CapsHeavyRule(
        ratio_threshold=float(ratio),
        min_word_count=_int_field(section, "min_word_count", base.min_word_count, "caps_heavy"),
    )


def _build_gap_entries(value: Any) -> list[GapPattern]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise CatalogError("information_gap must be a list", key="information_gap")
    entries: list[GapPattern] = []
    for item in value:
        if isinstance(item, str):
            entries.append(GapPattern.sniff(item))
        elif isinstance(item, Mapping) and len(item) == 1:
            kind, source = next(iter(item.items()))
            if not isinstance(source, str):
                raise CatalogError("information_gap sources must be strings", key="information_gap")
            if kind == PatternKind.LITERAL:
                entries.append(GapPattern.literal(source))
            elif kind == PatternKind.REGEX:
                entries.append(GapPattern.regex(source))
            else:
                raise CatalogError(f"unknown information_gap kind {kind!r}", key="information_gap")
        else:
            raise CatalogError(
                "information_gap entries must be strings or single-key {literal|regex: source} mappings",
                key="information_gap",
            )
    return entries


# ---------------------------------------------------------------------------
# Default rule set
# ---------------------------------------------------------------------------

DEFAULT_LEXICAL_PHRASES: tuple[str, ...] = (
    "you won't believe",
    "shocking",
    "incredible",
    "amazing",
    "unbelievable",
    "secret",
    "revealed",
    "the best",
    "the worst",
    "epic",
    "mind-blowing",
    "this is why",
    "what happens next",
    "never guess",
    "actually",
    "literally",
    "guaranteed",
    "proven",
    "finally",
    "exposed",
    "viral",
    "hack",
    "must see",
    "don't miss",
    "game changer",
)

DEFAULT_INFORMATION_GAP: tuple[GapPattern, ...] = (
    GapPattern.literal("..."),  # trailing ellipsis withholds the payoff
    GapPattern.literal("this one trick"),
    GapPattern.literal("this simple reason"),
    GapPattern.literal("the truth about"),
    GapPattern.regex(r"number \d+ will shock you"),
    GapPattern.regex(r"top \d+ reasons"),
    GapPattern.literal("things you didn't know"),
)

DEFAULT_CATALOG = PatternCatalog(
    lexical_phrases=DEFAULT_LEXICAL_PHRASES,
    information_gap=DEFAULT_INFORMATION_GAP,
)
