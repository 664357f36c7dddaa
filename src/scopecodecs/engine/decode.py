"""Stack-based decoding of scope fields back into a ScopeInfo.

A single forward pass over each encoded string. Open scopes and ranges
live on two stacks; closing the last open node of a stack emits a
top-level tree and resets that stack's delta state, mirroring the
builders.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from scopecodecs.constants import (
    ITEM_SEPARATOR,
    LINE_SEPARATOR,
    OriginalScopeFlag,
    SourceMapField,
    Tag,
)
from scopecodecs.engine.builders import RangeState, ScopeState
from scopecodecs.errors import (
    MalformedStreamError,
    MissingInputError,
    UnbalancedNestingError,
    UnsupportedFeatureError,
)
from scopecodecs.layout import Layout
from scopecodecs.model import (
    Binding,
    BindingRange,
    Callsite,
    GeneratedRange,
    OriginalScope,
    Position,
    ScopeInfo,
)
from scopecodecs.names import NameTable
from scopecodecs.vlq import TokenCursor, VlqContext

logger = logging.getLogger(__name__)


class StreamKind(Enum):
    ORIGINAL = "originalScopes"
    GENERATED = "generatedRanges"
    COMBINED = "scopes"


_ORIGINAL_TAGS = frozenset({Tag.ORIGINAL_START, Tag.ORIGINAL_END, Tag.VARIABLES})
_GENERATED_TAGS = frozenset({
    Tag.GENERATED_START,
    Tag.GENERATED_END,
    Tag.BINDINGS,
})
_ALLOWED_TAGS = {
    StreamKind.ORIGINAL: _ORIGINAL_TAGS,
    StreamKind.GENERATED: _GENERATED_TAGS,
    StreamKind.COMBINED: _ORIGINAL_TAGS | _GENERATED_TAGS,
}


def decode_scope_info(
    document: Mapping[str, Any],
    layout: Layout,
    context: VlqContext,
) -> ScopeInfo:
    """Decode the scope fields of ``document`` written in ``layout``."""
    names = document.get(SourceMapField.NAMES)
    scope_field = (
        SourceMapField.SCOPES
        if layout.combined
        else SourceMapField.ORIGINAL_SCOPES
    )
    encoded = document.get(scope_field)
    if names is None or encoded is None:
        raise MissingInputError(
            f"Nothing to decode: document lacks '{SourceMapField.NAMES}' "
            f"or '{scope_field}'"
        )
    if not isinstance(names, list):
        raise MalformedStreamError(
            f"'{SourceMapField.NAMES}' must be a list of strings"
        )

    decoder = ScopeDecoder(NameTable(list(names)), layout, context)
    if layout.combined:
        decoder.feed(_expect_str(encoded, scope_field), StreamKind.COMBINED)
    else:
        if not isinstance(encoded, list):
            raise MalformedStreamError(
                f"'{scope_field}' must be a list of strings"
            )
        for source_idx, source_scopes in enumerate(encoded):
            decoder.feed(
                _expect_str(source_scopes, scope_field),
                StreamKind.ORIGINAL,
                source_idx=source_idx,
            )
        ranges = document.get(SourceMapField.GENERATED_RANGES, "")
        decoder.feed(
            _expect_str(ranges, SourceMapField.GENERATED_RANGES),
            StreamKind.GENERATED,
        )
    info = decoder.finish()
    logger.debug(
        "Decoded %d scopes / %d ranges from %d items (%s)",
        len(info.scopes),
        len(info.ranges),
        decoder.items_decoded,
        layout.describe(),
    )
    return info


def _expect_str(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise MalformedStreamError(
            f"'{field}' must hold strings, got {type(value).__name__}"
        )
    return value


class ScopeDecoder:
    """Rebuilds both forests from one or more encoded strings."""

    def __init__(
        self,
        names: NameTable,
        layout: Layout,
        context: VlqContext,
    ) -> None:
        self._names = names
        self._layout = layout
        self._context = context
        self._scope_by_item: dict[tuple[int, int], OriginalScope] = {}
        self._scope_stack: list[OriginalScope] = []
        self._range_stack: list[GeneratedRange] = []
        self._scopes: list[OriginalScope] = []
        self._ranges: list[GeneratedRange] = []
        self._scope_state = ScopeState()
        self._range_state = RangeState()
        self.items_decoded = 0

    def feed(
        self,
        encoded: str,
        kind: StreamKind,
        *,
        source_idx: int = 0,
    ) -> None:
        """Decode one serialized field; item indices restart per call."""
        if kind is StreamKind.ORIGINAL:
            self._scope_state.reset()
        cursor = TokenCursor(encoded, self._context)
        item_idx = 0
        while cursor.has_next():
            char = cursor.peek()
            if char == ITEM_SEPARATOR:
                cursor.next()
                continue
            if char == LINE_SEPARATOR:
                if not self._layout.semicolons or kind is StreamKind.ORIGINAL:
                    raise MalformedStreamError(
                        f"Unexpected line separator at offset "
                        f"{cursor.position} in '{kind.value}'"
                    )
                cursor.next()
                self._range_state.line += 1
                self._range_state.column = 0
                continue

            self._read_item(cursor, kind, (source_idx, item_idx))
            if not cursor.at_item_end():
                raise MalformedStreamError(
                    f"Trailing data in item {item_idx} at offset "
                    f"{cursor.position} in '{kind.value}'"
                )
            item_idx += 1
            self.items_decoded += 1

        if kind is StreamKind.ORIGINAL and self._scope_stack:
            raise UnbalancedNestingError(
                f"Original scopes of source {source_idx} end with "
                f"{len(self._scope_stack)} unclosed start item(s)"
            )

    def finish(self) -> ScopeInfo:
        if self._scope_stack or self._range_stack:
            raise UnbalancedNestingError(
                f"Stream ended with {len(self._scope_stack)} unclosed "
                f"scope(s) and {len(self._range_stack)} unclosed range(s)"
            )
        return ScopeInfo(scopes=self._scopes, ranges=self._ranges)

    # ── Item dispatch ───────────────────────────────────

    def _read_item(
        self,
        cursor: TokenCursor,
        kind: StreamKind,
        key: tuple[int, int],
    ) -> None:
        if not self._layout.tagged:
            if kind is StreamKind.ORIGINAL:
                self._read_original_item(cursor, key)
            else:
                self._read_generated_item(cursor)
            return

        value = cursor.next_unsigned()
        try:
            tag = Tag(value)
        except ValueError:
            raise MalformedStreamError(f"Tag {value} not implemented") from None
        if tag not in _ALLOWED_TAGS[kind]:
            raise MalformedStreamError(
                f"Tag {tag.name} is not valid in '{kind.value}'"
            )

        if tag is Tag.ORIGINAL_START:
            line_delta = cursor.next_unsigned()
            column = cursor.next_unsigned()
            self._start_original_scope(cursor, line_delta, column, key)
        elif tag is Tag.ORIGINAL_END:
            line_delta = cursor.next_unsigned()
            column = cursor.next_unsigned()
            self._end_original_scope(line_delta, column)
        elif tag is Tag.VARIABLES:
            self._attach_variables(cursor)
        elif tag is Tag.GENERATED_START:
            self._start_generated_range(cursor, self._read_position(cursor))
        elif tag is Tag.GENERATED_END:
            self._end_generated_range(self._read_position(cursor))
        else:
            self._attach_bindings(cursor)

    def _read_original_item(
        self, cursor: TokenCursor, key: tuple[int, int]
    ) -> None:
        line_delta = cursor.next_unsigned()
        column = cursor.next_unsigned()
        if cursor.at_item_end():
            self._end_original_scope(line_delta, column)
        else:
            self._start_original_scope(cursor, line_delta, column, key)

    def _read_generated_item(self, cursor: TokenCursor) -> None:
        position = self._read_position(cursor)
        if cursor.at_item_end():
            self._end_generated_range(position)
        else:
            self._start_generated_range(cursor, position)

    # ── Original scopes ─────────────────────────────────

    def _start_original_scope(
        self,
        cursor: TokenCursor,
        line_delta: int,
        column: int,
        key: tuple[int, int],
    ) -> None:
        state = self._scope_state
        flags = cursor.next_unsigned()
        state.line += line_delta

        name = kind = None
        if flags & OriginalScopeFlag.HAS_NAME:
            state.name += cursor.next_signed()
            name = self._names.resolve(state.name)
        if flags & OriginalScopeFlag.HAS_KIND:
            state.kind += cursor.next_signed()
            kind = self._names.resolve(state.kind)
        variables: list[str] = []
        if flags & OriginalScopeFlag.HAS_VARIABLES:
            count = cursor.next_unsigned()
            variables = [self._read_variable(cursor) for _ in range(count)]

        position = Position(state.line, column)
        scope = OriginalScope(
            start=position,
            end=position,
            kind=kind,
            name=name,
            is_stack_frame=bool(flags & OriginalScopeFlag.IS_STACK_FRAME),
            variables=variables,
        )
        self._scope_stack.append(scope)
        self._scope_by_item[key] = scope

    def _attach_variables(self, cursor: TokenCursor) -> None:
        if not self._scope_stack:
            raise UnbalancedNestingError(
                'Encountered "variables" item outside of an original scope'
            )
        variables: list[str] = []
        while not cursor.at_item_end():
            variables.append(self._read_variable(cursor))
        self._scope_stack[-1].variables = variables

    def _read_variable(self, cursor: TokenCursor) -> str:
        variable = self._names.resolve(cursor.next_signed())
        if variable is None:
            raise MalformedStreamError("Variable without a name")
        return variable

    def _end_original_scope(self, line_delta: int, column: int) -> None:
        state = self._scope_state
        state.line += line_delta
        if not self._scope_stack:
            raise UnbalancedNestingError(
                'Scope items not nested properly: encountered "end" item '
                'without "start" item'
            )
        scope = self._scope_stack.pop()
        scope.end = Position(state.line, column)

        if self._scope_stack:
            self._scope_stack[-1].children.append(scope)
        else:
            self._scopes.append(scope)
            state.reset()

    # ── Generated ranges ────────────────────────────────

    def _read_position(self, cursor: TokenCursor) -> Position:
        state = self._range_state
        if self._layout.semicolons:
            state.column += cursor.next_unsigned()
            return Position(state.line, state.column)

        value = cursor.next_unsigned()
        if value & 1:
            state.line += cursor.next_unsigned()
            state.column = value >> 1
        else:
            state.column += value >> 1
        return Position(state.line, state.column)

    def _start_generated_range(
        self, cursor: TokenCursor, position: Position
    ) -> None:
        flag = self._layout.range_flags
        flags = cursor.next_unsigned()
        range_ = GeneratedRange(
            start=position,
            end=position,
            is_stack_frame=bool(flags & flag.IS_STACK_FRAME),
            is_hidden=bool(flags & flag.IS_HIDDEN),
        )
        if flags & flag.HAS_DEFINITION:
            range_.original_scope = self._read_definition(cursor)
        if flags & flag.HAS_CALLSITE:
            if not self._layout.decodes_callsites:
                raise UnsupportedFeatureError(
                    "Callsite decoding not implemented"
                )
            range_.callsite = self._read_callsite(cursor)
        if flags & flag.HAS_BINDINGS:
            count = cursor.next_unsigned()
            range_.values = [
                self._read_binding(cursor, position) for _ in range(count)
            ]
        self._range_stack.append(range_)

    def _read_definition(self, cursor: TokenCursor) -> OriginalScope:
        state = self._range_state
        if self._layout.combined:
            state.definition_item += cursor.next_signed()
        else:
            source_delta = cursor.next_signed()
            scope_idx = cursor.next_signed()
            if source_delta == 0:
                state.definition_item += scope_idx
            else:
                state.definition_source += source_delta
                state.definition_item = scope_idx

        key = (state.definition_source, state.definition_item)
        scope = self._scope_by_item.get(key)
        if scope is None:
            raise MalformedStreamError(
                f"Invalid original scope index {key[1]} "
                f"(source {key[0]})"
            )
        return scope

    def _read_callsite(self, cursor: TokenCursor) -> Callsite:
        state = self._range_state
        source_delta = cursor.next_signed()
        line = cursor.next_signed()
        column = cursor.next_signed()

        same_source = source_delta == 0
        source_idx = state.callsite_source + source_delta
        if same_source:
            line += state.callsite_line
        if same_source and line == state.callsite_line:
            column += state.callsite_column

        state.callsite_source = source_idx
        state.callsite_line = line
        state.callsite_column = column
        return Callsite(source_idx=source_idx, line=line, column=column)

    def _attach_bindings(self, cursor: TokenCursor) -> None:
        if not self._range_stack:
            raise UnbalancedNestingError(
                "Encountered bindings item outside of generated range"
            )
        top = self._range_stack[-1]
        values: list[Binding] = []
        while not cursor.at_item_end():
            values.append(self._read_binding(cursor, top.start))
        top.values = values

    def _read_binding(self, cursor: TokenCursor, start: Position) -> Binding:
        idx = cursor.next_signed()
        if idx >= -1:
            return self._names.resolve(idx)
        if not self._layout.decodes_binding_ranges:
            raise UnsupportedFeatureError(
                "Binding sub-range decoding not implemented"
            )

        ranges = [BindingRange(start, self._names.resolve(cursor.next_signed()))]
        line, column = start.line, start.column
        for _ in range(-idx - 1):
            line_delta = cursor.next_signed()
            column_value = cursor.next_signed()
            value = self._names.resolve(cursor.next_signed())
            if line_delta == 0:
                column += column_value
            else:
                line += line_delta
                column = column_value
            ranges.append(BindingRange(Position(line, column), value))
        return ranges

    def _end_generated_range(self, position: Position) -> None:
        if not self._range_stack:
            raise UnbalancedNestingError(
                'Range items not nested properly: encountered "end" item '
                'without "start" item'
            )
        range_ = self._range_stack.pop()
        range_.end = position

        if self._range_stack:
            self._range_stack[-1].children.append(range_)
        else:
            self._ranges.append(range_)
            self._range_state.reset(keep_position=self._layout.semicolons)
