"""Delta-state builders emitting original-scope and generated-range items.

Both builders keep the "previous value" of every delta-encoded field
and must be reset at the start of each independent top-level tree; the
decoder resets its mirror of this state at the same points.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from itertools import pairwise
from typing import NamedTuple

from scopecodecs.constants import OriginalScopeFlag, Tag
from scopecodecs.engine.stream import ItemStream
from scopecodecs.errors import PreconditionError
from scopecodecs.layout import Layout
from scopecodecs.model import Binding, BindingRange, Callsite, Position
from scopecodecs.names import NameTable
from scopecodecs.vlq import VlqEncoder


class Definition(NamedTuple):
    """Where an original scope's start item was written."""

    source_idx: int
    item_idx: int


@dataclass
class ScopeState:
    line: int = 0
    name: int = 0
    kind: int = 0

    def reset(self) -> None:
        self.line = 0
        self.name = 0
        self.kind = 0


@dataclass
class RangeState:
    line: int = 0
    column: int = 0
    definition_source: int = 0
    definition_item: int = 0
    callsite_source: int = 0
    callsite_line: int = 0
    callsite_column: int = 0

    def reset(self, *, keep_position: bool = False) -> None:
        """Forget previous values; semicolon layouts keep line/column."""
        if not keep_position:
            self.line = 0
            self.column = 0
        self.definition_source = 0
        self.definition_item = 0
        self.callsite_source = 0
        self.callsite_line = 0
        self.callsite_column = 0


class OriginalScopeBuilder:
    """Writes original-scope start/end (and variables) items."""

    def __init__(
        self,
        stream: ItemStream,
        names: NameTable,
        vlq: VlqEncoder,
        layout: Layout,
    ) -> None:
        self._stream = stream
        self._names = names
        self._vlq = vlq
        self._layout = layout
        self._state = ScopeState()

    def reset(self) -> None:
        self._state.reset()

    def start(
        self,
        line: int,
        column: int,
        *,
        name: str | None = None,
        kind: str | None = None,
        is_stack_frame: bool = False,
        variables: Sequence[str] = (),
    ) -> int:
        """Write a start item; returns its index for definition references."""
        vlq = self._vlq
        parts: list[str] = []
        if self._layout.tagged:
            parts.append(vlq.unsigned(Tag.ORIGINAL_START, "tag"))

        line_diff = line - self._state.line
        self._state.line = line
        inline_variables = bool(variables) and not self._layout.split_items

        flags = 0
        if name is not None:
            flags |= OriginalScopeFlag.HAS_NAME
        if kind is not None:
            flags |= OriginalScopeFlag.HAS_KIND
        if is_stack_frame:
            flags |= OriginalScopeFlag.IS_STACK_FRAME
        if inline_variables:
            flags |= OriginalScopeFlag.HAS_VARIABLES

        parts.append(vlq.unsigned(line_diff, "OriginalScope.start.line"))
        parts.append(vlq.unsigned(column, "OriginalScope.start.column"))
        parts.append(vlq.unsigned(flags, "OriginalScope.flags"))

        if name is not None:
            parts.append(vlq.signed(self._encode_name(name), "OriginalScope.name"))
        if kind is not None:
            parts.append(vlq.signed(self._encode_kind(kind), "OriginalScope.kind"))
        if inline_variables:
            parts.append(
                vlq.unsigned(len(variables), "OriginalScope.variableCount")
            )
            parts.extend(self._variable_refs(variables))

        item_idx = self._stream.push("".join(parts))
        if variables and self._layout.split_items:
            self.variables(variables)
        return item_idx

    def variables(self, variables: Sequence[str]) -> None:
        """Write a standalone variables item; nothing when empty."""
        if not variables:
            return
        parts = [self._vlq.unsigned(Tag.VARIABLES, "tag")]
        parts.extend(self._variable_refs(variables))
        self._stream.push("".join(parts))

    def end(self, line: int, column: int) -> None:
        vlq = self._vlq
        parts: list[str] = []
        if self._layout.tagged:
            parts.append(vlq.unsigned(Tag.ORIGINAL_END, "tag"))

        line_diff = line - self._state.line
        self._state.line = line
        parts.append(vlq.unsigned(line_diff, "OriginalScope.end.line"))
        parts.append(vlq.unsigned(column, "OriginalScope.end.column"))
        self._stream.push("".join(parts))

    def _variable_refs(self, variables: Sequence[str]) -> list[str]:
        # Absolute indices, not deltas of each other.
        return [
            self._vlq.signed(self._names.intern(v), "OriginalScope.variable")
            for v in variables
        ]

    def _encode_name(self, name: str) -> int:
        idx = self._names.intern(name)
        delta = idx - self._state.name
        self._state.name = idx
        return delta

    def _encode_kind(self, kind: str) -> int:
        idx = self._names.intern(kind)
        delta = idx - self._state.kind
        self._state.kind = idx
        return delta


class GeneratedRangeBuilder:
    """Writes generated-range start/end (and bindings) items."""

    def __init__(
        self,
        stream: ItemStream,
        names: NameTable,
        vlq: VlqEncoder,
        layout: Layout,
    ) -> None:
        self._stream = stream
        self._names = names
        self._vlq = vlq
        self._layout = layout
        self._state = RangeState()

    def reset(self) -> None:
        self._state.reset(keep_position=self._layout.semicolons)

    def start(
        self,
        line: int,
        column: int,
        *,
        definition: Definition | None = None,
        callsite: Callsite | None = None,
        is_stack_frame: bool = False,
        is_hidden: bool = False,
        values: Sequence[Binding] = (),
    ) -> None:
        vlq = self._vlq
        flag = self._layout.range_flags
        parts: list[str] = []
        if self._layout.tagged:
            parts.append(vlq.unsigned(Tag.GENERATED_START, "tag"))
        parts.extend(self._position(line, column, "GeneratedRange.start"))

        inline_values = bool(values) and not self._layout.split_items
        flags = 0
        if definition is not None:
            flags |= flag.HAS_DEFINITION
        if callsite is not None:
            flags |= flag.HAS_CALLSITE
        if is_stack_frame:
            flags |= flag.IS_STACK_FRAME
        if inline_values:
            flags |= flag.HAS_BINDINGS
        if is_hidden:
            flags |= flag.IS_HIDDEN
        parts.append(vlq.unsigned(flags, "GeneratedRange.flags"))

        if definition is not None:
            parts.extend(self._definition(definition))
        if callsite is not None:
            parts.extend(self._callsite(callsite))

        start = Position(line, column)
        if inline_values:
            parts.append(
                vlq.unsigned(len(values), "GeneratedRange.bindingsCount")
            )
            for binding in values:
                parts.extend(self._binding(binding, start))

        self._stream.push("".join(parts))
        if values and self._layout.split_items:
            self.bindings(values, start)

    def bindings(self, values: Sequence[Binding], start: Position) -> None:
        """Write a standalone bindings item; nothing when empty."""
        if not values:
            return
        parts = [self._vlq.unsigned(Tag.BINDINGS, "tag")]
        for binding in values:
            parts.extend(self._binding(binding, start))
        self._stream.push("".join(parts))

    def end(self, line: int, column: int) -> None:
        parts: list[str] = []
        if self._layout.tagged:
            parts.append(self._vlq.unsigned(Tag.GENERATED_END, "tag"))
        parts.extend(self._position(line, column, "GeneratedRange.end"))
        self._stream.push("".join(parts))

    def _position(self, line: int, column: int, label: str) -> list[str]:
        state = self._state
        vlq = self._vlq
        if self._layout.semicolons:
            if line < state.line:
                raise PreconditionError(
                    f"Generated position ({line}, {column}) precedes "
                    f"line {state.line}; ranges must be in document order"
                )
            if line > state.line:
                self._stream.new_lines(line - state.line)
                state.line = line
                state.column = 0
            encoded = [vlq.unsigned(column - state.column, f"{label}.column")]
            state.column = column
            return encoded

        relative_line = line - state.line
        if relative_line == 0:
            encoded = [
                vlq.unsigned((column - state.column) << 1, f"{label}.column")
            ]
        else:
            # Low bit set: the column is absolute and a line delta follows.
            encoded = [
                vlq.unsigned((column << 1) | 1, f"{label}.column"),
                vlq.unsigned(relative_line, f"{label}.line"),
            ]
        state.line = line
        state.column = column
        return encoded

    def _definition(self, definition: Definition) -> list[str]:
        state = self._state
        vlq = self._vlq
        if self._layout.combined:
            encoded = [
                vlq.signed(
                    definition.item_idx - state.definition_item,
                    "GeneratedRange.definition",
                )
            ]
        else:
            same_source = definition.source_idx == state.definition_source
            encoded = [
                vlq.signed(
                    definition.source_idx - state.definition_source,
                    "GeneratedRange.definition.sourceIdx",
                ),
                vlq.signed(
                    definition.item_idx
                    - (state.definition_item if same_source else 0),
                    "GeneratedRange.definition.scopeIdx",
                ),
            ]
        state.definition_source = definition.source_idx
        state.definition_item = definition.item_idx
        return encoded

    def _callsite(self, callsite: Callsite) -> list[str]:
        state = self._state
        vlq = self._vlq
        same_source = callsite.source_idx == state.callsite_source
        same_line = same_source and callsite.line == state.callsite_line
        encoded = [
            vlq.signed(
                callsite.source_idx - state.callsite_source,
                "GeneratedRange.callsite.sourceIdx",
            ),
            vlq.signed(
                callsite.line - (state.callsite_line if same_source else 0),
                "GeneratedRange.callsite.line",
            ),
            vlq.signed(
                callsite.column - (state.callsite_column if same_line else 0),
                "GeneratedRange.callsite.column",
            ),
        ]
        state.callsite_source = callsite.source_idx
        state.callsite_line = callsite.line
        state.callsite_column = callsite.column
        return encoded

    def _binding(self, binding: Binding, start: Position) -> list[str]:
        vlq = self._vlq
        if binding is None or isinstance(binding, str):
            return [
                vlq.signed(
                    self._names.intern(binding), "GeneratedRange.bindings.value"
                )
            ]

        if not binding:
            raise PreconditionError("Binding sub-range list must not be empty")
        first = binding[0]
        if first.from_ != start:
            raise PreconditionError(
                "First binding line/column must match the range start "
                f"line/column: {first.from_} != {start}"
            )
        if len(binding) == 1:
            # -1 is taken by "no value"; a lone entry is just a plain value,
            # as GeneratedRange stores it.
            return [
                vlq.signed(
                    self._names.intern(first.value),
                    "GeneratedRange.bindings.value",
                )
            ]

        encoded = [
            vlq.signed(-len(binding), "GeneratedRange.bindings.rangeCount"),
            vlq.signed(
                self._names.intern(first.value), "GeneratedRange.bindings.value"
            ),
        ]
        for prev, cur in pairwise(binding):
            encoded.extend(self._sub_binding(prev, cur))
        return encoded

    def _sub_binding(self, prev: BindingRange, cur: BindingRange) -> list[str]:
        vlq = self._vlq
        line_delta = cur.from_.line - prev.from_.line
        column = cur.from_.column - (
            prev.from_.column if line_delta == 0 else 0
        )
        return [
            vlq.signed(line_delta, "GeneratedRange.bindings.line"),
            vlq.signed(column, "GeneratedRange.bindings.column"),
            vlq.signed(
                self._names.intern(cur.value), "GeneratedRange.bindings.value"
            ),
        ]
