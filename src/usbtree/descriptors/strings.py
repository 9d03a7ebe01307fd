"""
String lookup hook used by descriptor nodes to resolve their names.

A node never owns or reaches into its parent; it only keeps a callable
taking ``(string_index, language_id)`` and returning the text, if any.
"""

from __future__ import annotations

from typing import Callable, Optional

from usbtree.descriptors.constants import DEFAULT_LANGUAGE_ID

StringLookup = Callable[[int, int], Optional[str]]


class StringTable:
    """Dictionary-backed string lookup, keyed by (index, language id)."""

    def __init__(self, strings: dict[int, str] | None = None, language_id: int = DEFAULT_LANGUAGE_ID) -> None:
        self._strings: dict[tuple[int, int], str] = {}
        for index, text in (strings or {}).items():
            self.add(index, text, language_id)

    def __call__(self, index: int, language_id: int = DEFAULT_LANGUAGE_ID) -> str | None:
        return self._strings.get((index, language_id))

    def __len__(self) -> int:
        return len(self._strings)

    def add(self, index: int, text: str, language_id: int = DEFAULT_LANGUAGE_ID) -> None:
        """Register ``text`` under a string index; index zero means "no string"."""
        if index == 0:
            raise ValueError("String index 0 is reserved")
        self._strings[(index, language_id)] = text
