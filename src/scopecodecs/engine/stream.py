"""Serialized item stream: items joined by ',' with ';' line breaks."""

from __future__ import annotations

from scopecodecs.constants import ITEM_SEPARATOR, LINE_SEPARATOR


class ItemStream:
    """Accumulates encoded items and hands out their sequential index.

    Builders writing to the same stream share one index space, which
    is what definition references in a combined field point into.
    """

    def __init__(self) -> None:
        self._chunks: list[str] = []
        self._needs_separator = False
        self._item_count = 0

    @property
    def item_count(self) -> int:
        return self._item_count

    def push(self, item: str) -> int:
        """Append one item; returns its index in this stream."""
        if self._needs_separator:
            self._chunks.append(ITEM_SEPARATOR)
        self._chunks.append(item)
        self._needs_separator = True
        self._item_count += 1
        return self._item_count - 1

    def new_lines(self, count: int) -> None:
        """Emit ``count`` line separators; the next item needs no comma."""
        if count <= 0:
            return
        self._chunks.append(LINE_SEPARATOR * count)
        self._needs_separator = False

    def build(self) -> str:
        return "".join(self._chunks)
