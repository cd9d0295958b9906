# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for clickbait_warner.logging_config — structlog + stdlib bridge."""

from __future__ import annotations

import io
import json
import logging
import sys

import structlog

from clickbait_warner.config import Settings
from clickbait_warner.logging_config import configure, configure_from_settings


class TestConsoleRenderer:
    """Interactive mode: ConsoleRenderer (human-readable)."""

    def test_configure_console_mode(self):
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_console_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.console").info("hello world")
        captured = capsys.readouterr()
        assert "hello world" in captured.err
        assert not captured.err.strip().startswith("{")

    def test_console_includes_log_level(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.level").warning("test warn")
        assert "warn" in capsys.readouterr().err.lower()


class TestJSONRenderer:
    """Machine mode: JSONRenderer."""

    def test_json_output_is_valid_json(self, capsys):
        configure(json_output=True)
        logging.getLogger("test.json").info("json test")
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed["event"] == "json test"
        assert parsed["level"] == "info"
        assert "timestamp" in parsed

    def test_json_includes_logger_name(self, capsys):
        configure(json_output=True)
        logging.getLogger("clickbait_warner.scanner").info("name test")
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed["logger"] == "clickbait_warner.scanner"

    def test_positional_args_formatted(self, capsys):
        configure(json_output=True)
        logging.getLogger("test.args").info("Flagged %d element(s)", 3)
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed["event"] == "Flagged 3 element(s)"

    def test_bound_context_merged(self, capsys):
        configure(json_output=True)
        with structlog.contextvars.bound_contextvars(session_id="abc123"):
            logging.getLogger("test.ctx").info("inside")
        parsed = json.loads(capsys.readouterr().err.strip())
        assert parsed["session_id"] == "abc123"


class _Terminal(io.StringIO):
    def isatty(self) -> bool:
        return True


class TestStream:
    def test_custom_stream(self):
        buf = io.StringIO()
        configure(stream=buf)
        logging.getLogger("test.stream").info("to buffer")
        assert "to buffer" in buf.getvalue()

    def test_no_colors_when_not_a_terminal(self):
        buf = io.StringIO()
        configure(stream=buf)
        logging.getLogger("test.plain").warning("plain")
        assert "\x1b[" not in buf.getvalue()

    def test_colors_on_terminal(self):
        term = _Terminal()
        configure(stream=term)
        logging.getLogger("test.tty").warning("colored")
        assert "\x1b[" in term.getvalue()


class TestLevels:
    def test_level_filters(self, capsys):
        configure(json_output=True, level="WARNING")
        logger = logging.getLogger("test.filter")
        logger.info("dropped")
        logger.warning("kept")
        err = capsys.readouterr().err
        assert "dropped" not in err
        assert "kept" in err

    def test_unknown_level_defaults_to_info(self):
        configure(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_reconfigure_replaces_handler(self):
        configure()
        configure(json_output=True)
        assert len(logging.getLogger().handlers) == 1


class TestConfigureFromSettings:
    def test_settings_used(self, capsys):
        configure_from_settings(Settings(log_level="DEBUG", log_json=True))
        assert logging.getLogger().level == logging.DEBUG
        logging.getLogger("test.settings").debug("dbg")
        assert json.loads(capsys.readouterr().err.strip())["event"] == "dbg"

    def test_explicit_arguments_win(self, capsys):
        configure_from_settings(Settings(log_level="DEBUG", log_json=True), json_output=False, level="ERROR")
        assert logging.getLogger().level == logging.ERROR
        logging.getLogger("test.override").error("plain")
        assert not capsys.readouterr().err.strip().startswith("{")
