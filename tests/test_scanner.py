# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for scanner.py — candidate passes, target resolution, exactly-once marking."""

from __future__ import annotations

import logging

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from clickbait_warner.classifier import Rule, TextClassifier
from clickbait_warner.flag_state import AttributeFlagState, SetFlagState
from clickbait_warner.lxml_host import LxmlIndicatorMarker, LxmlTree
from clickbait_warner.scanner import ScanPass, ScanStats, TreeScanner
from tests._tree_helpers import CountingClassifier, FakeTree, Node, RecordingMarker, indicator_count, parse_body


def _scanner(root: Node, *, queries=("h2",), classifier=None, marker=None, flags=None, on_flag=None):
    return TreeScanner(
        FakeTree(root),
        classifier or TextClassifier(),
        flags if flags is not None else SetFlagState(),
        marker or RecordingMarker(),
        queries,
        on_flag=on_flag,
    )


class FailingMarker:
    def __init__(self) -> None:
        self.calls = 0

    def mark(self, element: object) -> None:
        self.calls += 1
        raise RuntimeError("host refused")


# ---------------------------------------------------------------------------
# Pass A: structural
# ---------------------------------------------------------------------------


class TestStructuralPass:
    def test_heading_marks_enclosing_link(self):
        link = Node("a", attrs={"href": "/a"}, children=[Node("h2", "You won't believe this")])
        body = Node("body", children=[link])
        scanner = _scanner(body)
        stats = scanner.scan(body)
        assert scanner.marker.marked == [link]
        (record,) = stats.flagged
        assert record.target is link
        assert record.scan_pass is ScanPass.STRUCTURAL
        assert record.rule is Rule.LEXICAL
        assert record.matched == "you won't believe"

    def test_non_link_target_is_element_itself(self):
        span = Node("span", "WATCH THIS INSANE STUNT NOW")
        body = Node("body", children=[Node("ytd", children=[span])])
        stats = _scanner(body, queries=("span",)).scan(body)
        (record,) = stats.flagged
        assert record.target is span
        assert record.rule is Rule.CAPS_HEAVY
        assert record.matched == "5/5 words upper-case"

    def test_link_title_takes_precedence_over_text(self):
        link = Node("a", "Nice cats", attrs={"title": "The truth about cats"})
        body = Node("body", children=[link])
        stats = _scanner(body, queries=("a",)).scan(body)
        (record,) = stats.flagged
        assert record.text == "The truth about cats"
        assert record.rule is Rule.INFORMATION_GAP

    def test_empty_title_is_still_the_structural_text(self):
        # In the structural pass an empty title is used as-is; the links pass falls back to the text
        link = Node("a", "SHOCKING news today", attrs={"title": ""})
        body = Node("body", children=[link])
        stats = _scanner(body, queries=("a",)).scan(body)
        (record,) = stats.flagged
        assert record.scan_pass is ScanPass.LINKS
        assert record.text == "SHOCKING news today"


# ---------------------------------------------------------------------------
# Pass B: links
# ---------------------------------------------------------------------------


class TestLinksPass:
    def test_blank_title_falls_back_to_text(self):
        link = Node("a", "SHOCKING news today", attrs={"title": "   "})
        body = Node("body", children=[link])
        stats = _scanner(body, queries=()).scan(body)
        assert [r.scan_pass for r in stats.flagged] == [ScanPass.LINKS]

    @pytest.mark.parametrize("label", ["Wow!!", "AMAZING!!!", "https://example.com/amazing", "  http://x.io  "])
    def test_short_and_url_labels_skipped(self, label: str):
        classifier = CountingClassifier()
        body = Node("body", children=[Node("a", label)])
        stats = _scanner(body, queries=(), classifier=classifier).scan(body)
        assert stats.flagged == []
        assert stats.skipped_short == 1
        assert classifier.seen == []

    def test_eleven_characters_classified(self):
        body = Node("body", children=[Node("a", "AMAZING!!!!")])
        stats = _scanner(body, queries=()).scan(body)
        assert len(stats.flagged) == 1

    def test_scan_rooted_at_link(self):
        link = Node("a", "Is this the future of technology?")
        stats = _scanner(link, queries=()).scan(link)
        (record,) = stats.flagged
        assert record.target is link
        assert record.matched == "trailing question mark"

    def test_record_text_is_trimmed(self):
        body = Node("body", children=[Node("a", "   SHOCKING news today  ")])
        stats = _scanner(body, queries=()).scan(body)
        assert stats.flagged[0].text == "SHOCKING news today"


# ---------------------------------------------------------------------------
# Pass C: images
# ---------------------------------------------------------------------------


class TestImagesPass:
    def test_alt_text_marks_link(self):
        link = Node("a", children=[Node("img", attrs={"alt": "This one trick will change your life"})])
        body = Node("body", children=[link])
        stats = _scanner(body, queries=()).scan(body)
        (record,) = stats.flagged
        assert record.target is link
        assert record.scan_pass is ScanPass.IMAGES
        assert record.matched == "this one trick"

    def test_image_outside_link_ignored(self):
        body = Node("body", children=[Node("img", attrs={"alt": "This one trick will change your life"})])
        stats = _scanner(body, queries=()).scan(body)
        assert stats.flagged == []
        assert ScanPass.IMAGES not in stats.candidates


# ---------------------------------------------------------------------------
# Exactly-once
# ---------------------------------------------------------------------------


class TestExactlyOnce:
    def test_one_mark_across_passes(self):
        # Heading (pass A), link label (pass B) and image alt (pass C) all resolve to one link
        link = Node(
            "a",
            attrs={"title": "SHOCKING"},
            children=[
                Node("h2", "You won't believe this"),
                Node("img", attrs={"alt": "Top 10 reasons to stay"}),
            ],
        )
        body = Node("body", children=[link])
        scanner = _scanner(body)
        stats = scanner.scan(body)
        assert scanner.marker.marked == [link]
        assert len(stats.flagged) == 1
        assert stats.skipped_marked == 2

    def test_rescan_does_not_reclassify_marked(self):
        link = Node("a", children=[Node("h2", "You won't believe this")])
        body = Node("body", children=[link])
        classifier = CountingClassifier()
        scanner = _scanner(body, classifier=classifier)
        scanner.scan(body)
        seen_first = len(classifier.seen)
        stats = scanner.scan(body)
        assert stats.flagged == []
        assert len(classifier.seen) == seen_first
        assert scanner.marker.marked == [link]

    def test_incremental_scan_sees_only_new_subtree(self):
        body = Node("body", children=[Node("a", "Council approves the new budget")])
        classifier = CountingClassifier()
        scanner = _scanner(body, classifier=classifier)
        scanner.scan(body)
        classifier.seen.clear()

        added = body.append(Node("a", "SHOCKING footage from the coast"))
        stats = scanner.scan(added)
        assert classifier.seen == ["SHOCKING footage from the coast"]
        assert [r.target for r in stats.flagged] == [added]

    def test_insertion_into_marked_link(self):
        link = Node("a", children=[Node("h2", "You won't believe this")])
        body = Node("body", children=[link])
        scanner = _scanner(body)
        scanner.scan(body)
        heading = link.append(Node("h2", "Secret recipe revealed"))
        stats = scanner.scan(heading)
        assert stats.flagged == []
        assert stats.skipped_marked == 1
        assert scanner.marker.marked == [link]

    def test_shared_flag_state(self):
        link = Node("a", "SHOCKING news today")
        body = Node("body", children=[link])
        flags = SetFlagState()
        flags.set_marked(link)
        marker = RecordingMarker()
        assert _scanner(body, flags=flags, marker=marker).scan(body).flagged == []
        assert marker.marked == []


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------


class TestScanMisc:
    def test_none_root(self):
        marker = RecordingMarker()
        stats = _scanner(Node("body"), marker=marker).scan(None)
        assert stats == ScanStats()
        assert marker.marked == []

    def test_on_flag_callback(self):
        records = []
        body = Node("body", children=[Node("a", "SHOCKING news today")])
        stats = _scanner(body, on_flag=records.append).scan(body)
        assert records == stats.flagged

    def test_failing_callback_does_not_stop_scan(self, caplog):
        def explode(record):
            raise ValueError("consumer bug")

        first = Node("a", "SHOCKING news today")
        second = Node("a", "Secret recipe revealed")
        body = Node("body", children=[first, second])
        scanner = _scanner(body, on_flag=explode)
        with caplog.at_level(logging.WARNING, logger="clickbait_warner.scanner"):
            stats = scanner.scan(body)
        assert [r.target for r in stats.flagged] == [first, second]
        assert scanner.marker.marked == [first, second]
        assert "on_flag callback failed for /body/a" in caplog.text

    def test_marker_failure_keeps_flag(self, caplog):
        link = Node("a", "SHOCKING news today")
        body = Node("body", children=[link])
        marker = FailingMarker()
        flags = SetFlagState()
        scanner = _scanner(body, marker=marker, flags=flags)
        with caplog.at_level(logging.WARNING, logger="clickbait_warner.scanner"):
            stats = scanner.scan(body)
        assert stats.flagged == []
        assert flags.is_marked(link)
        assert "Marking /body/a failed" in caplog.text
        scanner.scan(body)
        assert marker.calls == 1

    def test_info_log_when_flagged(self, caplog):
        body = Node("body", children=[Node("a", "SHOCKING news today")])
        with caplog.at_level(logging.INFO, logger="clickbait_warner.scanner"):
            _scanner(body).scan(body)
        assert "Flagged 1 element(s) under /body" in caplog.text

    def test_stats_merge(self):
        a = ScanStats(classified=2, skipped_short=1)
        a.count(ScanPass.LINKS)
        b = ScanStats(classified=1, skipped_marked=3)
        b.count(ScanPass.LINKS)
        b.count(ScanPass.IMAGES)
        a.merge(b)
        assert a.classified == 3
        assert a.skipped_marked == 3
        assert a.candidates == {ScanPass.LINKS: 2, ScanPass.IMAGES: 1}


_LABELS = st.sampled_from(
    [
        "SHOCKING news today",
        "Council approves the new budget",
        "Wow!!",
        "Is this the future of technology?",
        "The truth about tea leaves",
        "https://example.com/amazing",
        "",
    ]
)


class TestScanProperties:
    @given(st.lists(st.tuples(_LABELS, _LABELS, st.booleans()), max_size=12))
    @settings(max_examples=100)
    def test_each_target_marked_at_most_once(self, specs):
        body = Node("body")
        for label, heading, with_image in specs:
            children = [Node("h2", heading)]
            if with_image:
                children.append(Node("img", attrs={"alt": heading}))
            body.append(Node("a", label, children=children))
        scanner = _scanner(body)
        scanner.scan(body)
        for link in list(body.children):
            scanner.scan(link)
        second = scanner.scan(body)

        marked = scanner.marker.marked
        assert len(marked) == len({id(m) for m in marked})
        assert second.flagged == []


# ---------------------------------------------------------------------------
# lxml integration
# ---------------------------------------------------------------------------

_PAGE = """
<a href="/1"><h2>You won't believe what this dog did</h2></a>
<a href="/2" title="Top 10 reasons to move">Read more</a>
<a href="/3" title="">SHOCKING news today</a>
<a href="/4">Is this the future of technology?</a>
<a href="/5">Wow!!</a>
<a href="/6">https://example.com/amazing</a>
<a href="/7"><img alt="This one trick will change your life"></a>
<ytd-rich-grid-media><span id="video-title">WATCH THIS INSANE STUNT NOW</span></ytd-rich-grid-media>
<a href="/8">Council approves the new budget</a>
"""


def _lxml_scanner(body) -> TreeScanner:
    return TreeScanner(LxmlTree(body), TextClassifier(), AttributeFlagState(), LxmlIndicatorMarker())


class TestLxmlIntegration:
    def test_full_page(self):
        body = parse_body(_PAGE)
        stats = _lxml_scanner(body).scan(body)
        assert [(r.scan_pass, r.rule) for r in stats.flagged] == [
            (ScanPass.STRUCTURAL, Rule.LEXICAL),
            (ScanPass.STRUCTURAL, Rule.INFORMATION_GAP),
            (ScanPass.STRUCTURAL, Rule.CAPS_HEAVY),
            (ScanPass.LINKS, Rule.LEXICAL),
            (ScanPass.LINKS, Rule.PUNCTUATION),
            (ScanPass.IMAGES, Rule.INFORMATION_GAP),
        ]
        flagged_links = {a.get("href") for a in body.iter("a") if indicator_count(a)}
        assert flagged_links == {"/1", "/2", "/3", "/4", "/7"}
        assert indicator_count(body.find(".//span[@id='video-title']")) == 1

    def test_rescan_is_idempotent(self):
        body = parse_body(_PAGE)
        scanner = _lxml_scanner(body)
        scanner.scan(body)
        assert scanner.scan(body).flagged == []
        assert all(indicator_count(a) <= 1 for a in body.iter("a"))

    def test_heading_inserted_into_marked_link(self):
        body = parse_body('<a href="/1"><h2>You won\'t believe this</h2></a>')
        scanner = _lxml_scanner(body)
        scanner.scan(body)
        link = body.find("a")
        heading = link.makeelement("h3", {})
        heading.text = "Secret recipe revealed"
        link.append(heading)
        assert scanner.scan(heading).flagged == []
        assert indicator_count(link) == 1
