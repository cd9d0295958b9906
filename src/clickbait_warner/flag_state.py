# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-element "already marked" flags.

Flags are monotonic: once set they never revert, and there is no unmark
operation.  Two implementations:

- ``SetFlagState``        – identity-keyed registry for arbitrary handles
- ``AttributeFlagState``  – stores the flag on the element itself, so it
  lives exactly as long as the element does

Neither is synchronized; all reads and writes happen on the single scanning
context.  ``claim()`` is the check-and-set a multi-worker variant would have
to make atomic.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

FLAG_ATTRIBUTE = "data-clickbait-warner-flagged"


@runtime_checkable
class FlagState(Protocol):
    def is_marked(self, element: Any) -> bool: ...

    def set_marked(self, element: Any) -> None: ...

    def claim(self, element: Any) -> bool:
        """Set the flag; True only if it was not set before."""
        ...


class SetFlagState:
    """Flags kept in a registry keyed by object identity.

    The registry holds a strong reference to every marked handle for its
    own lifetime, so it only grows and keeps detached elements alive.
    Weak references are not an option: lxml hands out proxy objects whose
    identity changes once the last reference is dropped, which would lose
    the flag.  Use one registry per session; where the flag must live and
    die with the element, use ``AttributeFlagState``.
    """

    __slots__ = ("_marked",)

    def __init__(self) -> None:
        # id -> handle; holding the handle keeps its id from being reused
        self._marked: dict[int, Any] = {}

    def is_marked(self, element: Any) -> bool:
        return id(element) in self._marked

    def set_marked(self, element: Any) -> None:
        self._marked.setdefault(id(element), element)

    def claim(self, element: Any) -> bool:
        if self.is_marked(element):
            return False
        self._marked[id(element)] = element
        return True

    def __len__(self) -> int:
        return len(self._marked)


class AttributeFlagState:
    """Flags stored as an attribute on lxml-style elements (``get``/``set``)."""

    __slots__ = ("attribute",)

    def __init__(self, attribute: str = FLAG_ATTRIBUTE) -> None:
        self.attribute = attribute

    def is_marked(self, element: Any) -> bool:
        return element.get(self.attribute) == "true"

    def set_marked(self, element: Any) -> None:
        element.set(self.attribute, "true")

    def claim(self, element: Any) -> bool:
        if self.is_marked(element):
            return False
        self.set_marked(element)
        return True
