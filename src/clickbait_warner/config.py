# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Runtime settings (environment) and rule files (YAML).

Environment variables:
    CLICKBAIT_WARNER_LOG_LEVEL   root log level (default INFO)
    CLICKBAIT_WARNER_LOG_JSON    truthy → JSON log lines
    CLICKBAIT_WARNER_RULES       path to a YAML rules file

Rules file (every key optional, missing keys keep the defaults)::

    lexical_phrases: ["you won't believe", ...]
    punctuation: {min_question_marks: 2, ...}
    information_gap:
      - "..."                          # bare string: regex-sniffed
      - literal: "this one trick"
      - regex: 'top \\d+ reasons'
    caps_heavy: {ratio_threshold: 0.4, min_word_count: 3}
    structural_queries: ["descendant-or-self::a[@title]", ...]
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml

from clickbait_warner.catalog import DEFAULT_CATALOG, PatternCatalog
from clickbait_warner.errors import CatalogError
from clickbait_warner.queries import DEFAULT_QUERIES

ENV_PREFIX = "CLICKBAIT_WARNER_"
_TRUTHY = {"1", "true", "yes", "on"}
_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True, slots=True)
class Settings:
    log_level: str = "INFO"
    log_json: bool = False
    rules_path: Path | None = None


@dataclass(frozen=True, slots=True)
class Rules:
    """Everything the scan engine takes as configuration data."""

    catalog: PatternCatalog = DEFAULT_CATALOG
    structural_queries: tuple[str, ...] = DEFAULT_QUERIES


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read settings from *environ* (``os.environ`` by default).

    Unknown log levels fall back to INFO.
    """
    env = os.environ if environ is None else environ

    level = env.get(f"{ENV_PREFIX}LOG_LEVEL", "").strip().upper()
    if level not in _LEVELS:
        level = "INFO"

    log_json = env.get(f"{ENV_PREFIX}LOG_JSON", "").strip().lower() in _TRUTHY

    rules = env.get(f"{ENV_PREFIX}RULES", "").strip()
    return Settings(log_level=level, log_json=log_json, rules_path=Path(rules) if rules else None)


def rules_from_mapping(data: Mapping | None) -> Rules:
    if data is None:
        return Rules()
    if not isinstance(data, Mapping):
        raise CatalogError(f"rules file must contain a mapping, got {type(data).__name__}")

    queries = DEFAULT_QUERIES
    if "structural_queries" in data:
        raw = data["structural_queries"]
        if not isinstance(raw, list) or not all(isinstance(q, str) and q.strip() for q in raw):
            raise CatalogError("structural_queries must be a list of non-empty strings", key="structural_queries")
        queries = tuple(raw)

    catalog_data = {k: v for k, v in data.items() if k != "structural_queries"}
    return Rules(catalog=PatternCatalog.from_mapping(catalog_data), structural_queries=queries)


def load_rules(path: str | Path) -> Rules:
    """Load a YAML rules file. Raises CatalogError on bad YAML or shapes, OSError on I/O."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogError(f"invalid YAML in {path}: {e}") from e
    return rules_from_mapping(data)
