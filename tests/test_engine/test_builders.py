"""Tests for the delta-state scope and range builders."""

from __future__ import annotations

import pytest

from scopecodecs.engine.builders import (
    Definition,
    GeneratedRangeBuilder,
    OriginalScopeBuilder,
)
from scopecodecs.engine.stream import ItemStream
from scopecodecs.errors import PreconditionError
from scopecodecs.layout import (
    Combination,
    Framing,
    ItemGranularity,
    Layout,
    LineSeparator,
)
from scopecodecs.model import BindingRange, Callsite, Position
from scopecodecs.names import NameTable
from scopecodecs.vlq import VlqContext, VlqEncoder, VlqStats

_TAGGED_SPLIT = Layout(
    framing=Framing.TAG,
    combination=Combination.COMBINED,
    variables=ItemGranularity.SPLIT,
)


def _scope_builder(
    layout: Layout | None = None,
    stats: VlqStats | None = None,
) -> tuple[OriginalScopeBuilder, ItemStream, NameTable]:
    stream = ItemStream()
    names = NameTable()
    vlq = VlqEncoder(VlqContext(stats=stats))
    return (
        OriginalScopeBuilder(stream, names, vlq, layout or Layout()),
        stream,
        names,
    )


def _range_builder(
    layout: Layout | None = None,
) -> tuple[GeneratedRangeBuilder, ItemStream, NameTable]:
    stream = ItemStream()
    names = NameTable()
    vlq = VlqEncoder(VlqContext())
    return (
        GeneratedRangeBuilder(stream, names, vlq, layout or Layout()),
        stream,
        names,
    )


class TestOriginalScopeBuilder:
    def test_line_deltas(self) -> None:
        stats = VlqStats()
        builder, stream, _ = _scope_builder(stats=stats)
        builder.start(3, 0)
        builder.start(4, 2)
        builder.end(6, 0)
        builder.end(9, 0)
        assert stream.build() == "DAA,BCA,CA,DA"
        assert stats.histograms()["OriginalScope.start.line"] == [0, 2]

    def test_reset_encodes_next_tree_against_zero(self) -> None:
        builder, stream, _ = _scope_builder()
        builder.start(3, 0)
        builder.end(5, 0)
        builder.reset()
        builder.start(7, 0)
        builder.end(8, 0)
        # 7 lines from zero, not 2 from the previous tree's end.
        assert stream.build() == "DAA,CA,HAA,BA"

    def test_start_returns_item_index(self) -> None:
        builder, _, _ = _scope_builder()
        assert builder.start(0, 0) == 0
        assert builder.start(1, 0) == 1
        builder.end(2, 0)
        assert builder.start(3, 0) == 3

    def test_name_is_delta_encoded(self) -> None:
        builder, stream, names = _scope_builder()
        builder.start(0, 0, name="a")
        builder.start(1, 0, name="b")
        builder.start(2, 0, name="a")
        assert names.names == ["a", "b"]
        # flags=HAS_NAME, deltas 0, +1, -1
        assert stream.build() == "AABA,BABC,BABD"

    def test_inline_variables(self) -> None:
        builder, stream, _ = _scope_builder()
        builder.start(0, 0, kind="Module", variables=["x", "y"])
        # flags=HAS_KIND|HAS_VARIABLES, kind 0, count 2, vars 1 and 2
        assert stream.build() == "AAKACCE"

    def test_split_variables_follow_start_item(self) -> None:
        builder, stream, _ = _scope_builder(_TAGGED_SPLIT)
        idx = builder.start(0, 0, variables=["x"])
        assert idx == 0
        assert stream.item_count == 2
        assert stream.build() == "BAAA,GA"

    def test_split_without_variables_writes_no_item(self) -> None:
        builder, stream, _ = _scope_builder(_TAGGED_SPLIT)
        builder.start(0, 0)
        assert stream.item_count == 1


class TestGeneratedRangeBuilder:
    def test_same_line_column_is_relative(self) -> None:
        builder, stream, _ = _range_builder()
        builder.start(0, 5)
        builder.end(0, 9)
        assert stream.build() == "KA,I"

    def test_line_change_makes_column_absolute(self) -> None:
        builder, stream, _ = _range_builder()
        builder.start(0, 5)
        builder.end(2, 3)
        # (3 << 1) | 1 = 7, then line delta 2
        assert stream.build() == "KA,HC"

    def test_semicolons_advance_lines(self) -> None:
        layout = Layout(separator=LineSeparator.SEMICOLON)
        builder, stream, _ = _range_builder(layout)
        builder.start(0, 5)
        builder.end(2, 3)
        assert stream.build() == "FA;;D"

    def test_semicolon_position_survives_reset(self) -> None:
        layout = Layout(separator=LineSeparator.SEMICOLON)
        builder, stream, _ = _range_builder(layout)
        builder.start(1, 0)
        builder.end(1, 4)
        builder.reset()
        builder.start(1, 6)
        builder.end(2, 0)
        assert stream.build() == ";AA,E,CA;A"

    def test_semicolon_rejects_earlier_line(self) -> None:
        layout = Layout(separator=LineSeparator.SEMICOLON)
        builder, _, _ = _range_builder(layout)
        builder.start(2, 0)
        with pytest.raises(PreconditionError, match="document order"):
            builder.end(1, 0)

    def test_definition_separate_layout(self) -> None:
        builder, stream, _ = _range_builder()
        builder.start(0, 0, definition=Definition(0, 3))
        builder.start(0, 0, definition=Definition(0, 5))
        builder.start(0, 0, definition=Definition(1, 2))
        items = stream.build().split(",")
        # flags=HAS_DEFINITION; (source delta, scope index)
        assert items == ["ABAG", "ABAE", "ABCE"]

    def test_definition_combined_layout(self) -> None:
        layout = Layout(framing=Framing.TAG, combination=Combination.COMBINED)
        builder, stream, _ = _range_builder(layout)
        builder.start(0, 0, definition=Definition(0, 4))
        builder.start(0, 0, definition=Definition(0, 1))
        # tag 3, position 0, flags=HAS_DEFINITION (0x2), item delta
        assert stream.build() == "DACI,DACH"

    def test_callsite_deltas(self) -> None:
        builder, stream, _ = _range_builder()
        builder.start(0, 0, callsite=Callsite(0, 7, 3))
        builder.start(0, 0, callsite=Callsite(0, 7, 5))
        assert stream.build() == "ACAOG,ACAAAE"

    def test_binding_values(self) -> None:
        builder, stream, names = _range_builder()
        builder.start(0, 0, values=["x", None])
        # flags=HAS_BINDINGS, count 2, x=0, absent=-1
        assert stream.build() == "AICAD"
        assert names.names == ["x"]

    def test_sub_bindings(self) -> None:
        builder, stream, _ = _range_builder()
        builder.start(
            3,
            0,
            values=[[
                BindingRange(Position(3, 0), "a"),
                BindingRange(Position(3, 5), "b"),
            ]],
        )
        # -2, a, (line 0, column +5, b)
        assert stream.build() == "BDIBFAAKC"

    def test_sub_binding_must_start_at_range_start(self) -> None:
        builder, _, _ = _range_builder()
        with pytest.raises(PreconditionError, match="First binding"):
            builder.start(
                4,
                0,
                values=[[
                    BindingRange(Position(3, 0), "a"),
                    BindingRange(Position(3, 5), "b"),
                ]],
            )

    def test_single_sub_binding_is_plain_value(self) -> None:
        builder, stream, _ = _range_builder()
        builder.start(0, 0, values=[[BindingRange(Position(0, 0), "a")]])
        assert stream.build() == "AIBA"

    def test_empty_sub_binding_list_rejected(self) -> None:
        builder, _, _ = _range_builder()
        with pytest.raises(PreconditionError, match="empty"):
            builder.start(0, 0, values=[[]])
