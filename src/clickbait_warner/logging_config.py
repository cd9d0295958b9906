# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge. Interactive: ConsoleRenderer, machine: JSONRenderer.

Library modules only use ``logging.getLogger(__name__)``; nothing is
configured on import.  Entry points call ``configure()`` (or
``configure_from_settings()``) once, before any log output.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from clickbait_warner.config import Settings


def _shared_processors() -> list:
    # Run for structlog events and for foreign stdlib records alike
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_output: bool, stream: TextIO):
    if json_output:
        return structlog.processors.JSONRenderer()
    # No ANSI escapes when stderr is redirected to a file or pipe
    isatty = getattr(stream, "isatty", None)
    return structlog.dev.ConsoleRenderer(colors=bool(isatty and isatty()))


def configure(*, json_output: bool = False, level: str = "INFO", stream: TextIO | None = None) -> None:
    """Configure structlog with stdlib bridge.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level (default INFO).
        stream: Destination (default ``sys.stderr``). Console colors are
            enabled only when it is a terminal.
    """
    stream = sys.stderr if stream is None else stream
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output, stream),
            ],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def configure_from_settings(
    settings: Settings,
    *,
    json_output: bool | None = None,
    level: str | None = None,
) -> None:
    """Configure from environment settings; explicit arguments win."""
    configure(
        json_output=settings.log_json if json_output is None else json_output,
        level=settings.log_level if level is None else level,
    )
