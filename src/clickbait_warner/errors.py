# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Clickbait Warner exception hierarchy.

All package errors inherit from ClickbaitWarnerError.  Scanning and
classification never raise them; they surface only at configuration time
or when the watcher is misused.
"""

from __future__ import annotations


class ClickbaitWarnerError(Exception):
    """Base exception for all Clickbait Warner errors."""


class CatalogError(ClickbaitWarnerError):
    """Rules configuration has an invalid shape or value."""

    def __init__(self, message: str, *, key: str = "") -> None:
        super().__init__(message)
        self.key = key


class WatcherClosedError(ClickbaitWarnerError):
    """A mutation batch was pushed after the watcher was closed."""
