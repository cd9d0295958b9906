# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Content tree abstraction — the capabilities the scan engine consumes.

Defines runtime-checkable protocols for the host collaborators:

- ``ContentTree``     – structural queries, text/attribute access, node kinds
- ``Marker``          – applies the visible indicator to an element
- ``MutationSource``  – delivers batches of newly inserted nodes

Element handles are opaque to the engine; only the tree implementation
knows what they are.  ``lxml_host`` provides the concrete lxml versions.

Leaf module — no clickbait_warner imports.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

# ---------------------------------------------------------------------------
# Node kinds + mutation batches
# ---------------------------------------------------------------------------


class NodeKind(StrEnum):
    """Tagged node kind reported by the tree for every node handle."""

    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class MutationBatch:
    """Nodes reported as newly inserted since the previous notification."""

    added: tuple[Any, ...] = ()

    def __len__(self) -> int:
        return len(self.added)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ContentTree(Protocol):
    """Read access to a host content tree."""

    @property
    def root(self) -> Any | None: ...

    def query(self, root: Any, queries: Sequence[str]) -> list[Any]:
        """Elements in the subtree at *root* matching any query, in document order."""
        ...

    def links(self, root: Any) -> list[Any]: ...

    def linked_images(self, root: Any) -> list[Any]:
        """Images with non-empty alt text that sit inside a link."""
        ...

    def is_link(self, element: Any) -> bool: ...

    def closest_link(self, element: Any) -> Any | None:
        """The element itself if it is a link, else its nearest link ancestor."""
        ...

    def attribute(self, element: Any, name: str) -> str | None: ...

    def text_content(self, element: Any) -> str: ...

    def node_kind(self, node: Any) -> NodeKind: ...

    def describe(self, element: Any) -> str:
        """Short human-readable locator used in logs and reports."""
        ...


@runtime_checkable
class Marker(Protocol):
    """Applies the host-specific visible indicator. Callers guarantee one call per element."""

    def mark(self, element: Any) -> None: ...


@runtime_checkable
class MutationSource(Protocol):
    """Notification capability for insertions below a root."""

    def subscribe(self, root: Any) -> AsyncIterator[MutationBatch]: ...
