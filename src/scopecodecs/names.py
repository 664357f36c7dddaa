"""Deduplicated string table shared by every name-referencing field."""

from __future__ import annotations

from scopecodecs.constants import NO_NAME_INDEX
from scopecodecs.errors import MalformedStreamError


class NameTable:
    """Append-only view over a source map's ``names`` array.

    The wrapped list is mutated in place, so the document that owns it
    sees every interned name. Index assignment is unsynchronized: two
    threads interning the same new string can both append it.
    """

    def __init__(self, names: list[str] | None = None) -> None:
        self._names: list[str] = names if names is not None else []
        self._index: dict[str, int] = {}
        for idx, name in enumerate(self._names):
            self._index.setdefault(name, idx)

    @property
    def names(self) -> list[str]:
        return self._names

    def __len__(self) -> int:
        return len(self._names)

    def intern(self, name: str | None) -> int:
        """Index of ``name``, appending it on first use; -1 for None."""
        if name is None:
            return NO_NAME_INDEX
        idx = self._index.get(name)
        if idx is None:
            idx = len(self._names)
            self._names.append(name)
            self._index[name] = idx
        return idx

    def resolve(self, idx: int | None) -> str | None:
        """Name at ``idx``; None (or any negative index) means no value."""
        if idx is None or idx < 0:
            return None
        if idx >= len(self._names):
            raise MalformedStreamError(
                f"Name index {idx} out of range "
                f"(table holds {len(self._names)} names)"
            )
        return self._names[idx]
