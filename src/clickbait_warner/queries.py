# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Default structural queries for headline-like candidates.

XPath 1.0, evaluated with the scanned subtree root as context node.  Every
query starts at ``descendant-or-self`` so a freshly inserted element is a
candidate itself, while ``ancestor::`` predicates may look above the subtree
(a headline inserted into an existing link still resolves as "inside a link").
"""

from __future__ import annotations

# class~="name" equivalent
_HAS_CLASS = 'contains(concat(" ", normalize-space(@class), " "), " {} ")'

DEFAULT_QUERIES: tuple[str, ...] = (
    # Headlines within links
    "descendant-or-self::*[self::h1 or self::h2 or self::h3 or self::h4 or self::h5 or self::h6][ancestor::a]",
    # Spans/divs with "title" in their id within links (YouTube and friends)
    'descendant-or-self::*[self::span or self::div][contains(@id, "title")][ancestor::a]',
    # Links with a title attribute
    "descendant-or-self::a[@title]",
    # Links within headlines
    "descendant-or-self::a[ancestor::h1 or ancestor::h2 or ancestor::h3 or ancestor::h4]",
    # ARIA headings with links
    'descendant-or-self::a[ancestor::*[@role="heading"]]',
    # YouTube title containers
    'descendant-or-self::*[@id="video-title"][ancestor::ytd-rich-grid-media or ancestor::ytd-video-renderer]',
    "descendant-or-self::*[{title}][ancestor::*[{metadata}][ancestor::ytd-compact-video-renderer]]".format(
        title=_HAS_CLASS.format("title"),
        metadata=_HAS_CLASS.format("metadata"),
    ),
)
