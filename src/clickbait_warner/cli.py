# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Clickbait Warner CLI: classify text, scan HTML documents.

Usage:
    python -m clickbait_warner.cli classify TEXT [TEXT ...] [--json]
    python -m clickbait_warner.cli scan FILE [--append FRAGMENT ...] [--output PATH] [--json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from clickbait_warner.classifier import TextClassifier
from clickbait_warner.config import Rules, load_rules, load_settings
from clickbait_warner.errors import ClickbaitWarnerError
from clickbait_warner.logging_config import configure_from_settings
from clickbait_warner.lxml_host import LxmlMutationFeed, LxmlTree
from clickbait_warner.scanner import FlagRecord
from clickbait_warner.session import ScanSession

logger = logging.getLogger(__name__)

_TEXT_PREVIEW_LEN = 80


def _resolve_rules(args: argparse.Namespace) -> Rules:
    path = args.rules or args.settings.rules_path
    if path is None:
        return Rules()
    logger.debug("Loading rules from %s", path)
    return load_rules(path)


def _preview(text: str) -> str:
    text = " ".join(text.split())
    return text if len(text) <= _TEXT_PREVIEW_LEN else text[: _TEXT_PREVIEW_LEN - 1] + "…"


def cmd_classify(args: argparse.Namespace) -> None:
    """Print a verdict per text argument."""
    classifier = TextClassifier(_resolve_rules(args).catalog)
    for text in args.texts:
        result = classifier.evaluate(text)
        if args.json:
            print(
                json.dumps(
                    {
                        "text": text,
                        "clickbait": result.is_clickbait,
                        "rule": result.rule,
                        "matched": result.matched,
                    },
                    ensure_ascii=False,
                )
            )
        elif result:
            print(f"CLICKBAIT  [{result.rule}: {result.matched}]  {text}")
        else:
            print(f"ok         {text}")


def _record_line(tree: LxmlTree, record: FlagRecord, as_json: bool) -> str:
    if as_json:
        return json.dumps(
            {
                "xpath": tree.describe(record.target),
                "pass": record.scan_pass,
                "rule": record.rule,
                "matched": record.matched,
                "text": record.text,
            },
            ensure_ascii=False,
        )
    return f"{tree.describe(record.target)}  [{record.rule}: {record.matched}]  {_preview(record.text)}"


async def _scan_with_fragments(session: ScanSession, feed: LxmlMutationFeed, fragments: list[str]) -> None:
    task = asyncio.get_running_loop().create_task(session.run())
    # Yield once so the session subscribes before the first insertion
    await asyncio.sleep(0)
    for fragment in fragments:
        feed.append_html(session.tree.root, fragment)
        await asyncio.sleep(0)
    feed.close()
    await task


def cmd_scan(args: argparse.Namespace) -> None:
    """Scan an HTML file, report flagged elements, optionally write the marked HTML."""
    rules = _resolve_rules(args)
    html = Path(args.file).read_text(encoding="utf-8")
    fragments = [Path(p).read_text(encoding="utf-8") for p in args.append or []]

    records: list[FlagRecord] = []
    feed = LxmlMutationFeed() if fragments else None
    session = ScanSession.for_html(
        html,
        feed=feed,
        catalog=rules.catalog,
        queries=rules.structural_queries,
        on_flag=records.append,
    )
    if session.tree.root is None:
        print(f"{args.file}: empty document", file=sys.stderr)
        return

    if feed is not None:
        asyncio.run(_scan_with_fragments(session, feed, fragments))
    else:
        session.start()

    tree = session.tree
    for record in records:
        print(_record_line(tree, record, args.json))
    if not args.json:
        print(f"{len(records)} element(s) flagged", file=sys.stderr)

    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(tree.serialize(), encoding="utf-8")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Flag clickbait headlines, link labels and image captions",
        prog="clickbait-warner",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Log level (default: env or INFO)")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines on stderr")
    parser.add_argument("--rules", type=str, metavar="PATH", help="YAML rules file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_classify = subparsers.add_parser("classify", help="Classify text fragments")
    p_classify.add_argument("texts", nargs="+", metavar="TEXT")
    p_classify.add_argument("--json", action="store_true", help="One JSON object per line")

    p_scan = subparsers.add_parser(
        "scan",
        help="Scan an HTML document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s page.html                              List flagged elements
  %(prog)s page.html -o marked.html               Also write the marked document
  %(prog)s page.html --append more.html           Append a fragment as a later insertion""",
    )
    p_scan.add_argument("file", metavar="FILE")
    p_scan.add_argument(
        "--append",
        action="append",
        metavar="FRAGMENT",
        help="HTML fragment file appended to <body> after the initial scan (repeatable)",
    )
    p_scan.add_argument("-o", "--output", type=str, metavar="PATH", help="Write the marked HTML here")
    p_scan.add_argument("--json", action="store_true", help="One JSON object per flagged element")

    commands = {"classify": cmd_classify, "scan": cmd_scan}

    args = parser.parse_args(argv)
    args.settings = load_settings()
    configure_from_settings(args.settings, json_output=args.log_json or None, level=args.log_level)

    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except (ClickbaitWarnerError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
