"""Serialize a ScopeInfo into source map scope fields."""

from __future__ import annotations

import logging
from typing import Any, TypeAlias

from scopecodecs.constants import SourceMapField
from scopecodecs.engine.builders import (
    Definition,
    GeneratedRangeBuilder,
    OriginalScopeBuilder,
)
from scopecodecs.engine.stream import ItemStream
from scopecodecs.errors import PreconditionError
from scopecodecs.layout import Layout
from scopecodecs.model import GeneratedRange, OriginalScope, ScopeInfo
from scopecodecs.names import NameTable
from scopecodecs.vlq import VlqContext, VlqEncoder

logger = logging.getLogger(__name__)

# Keyed by id() of OriginalScope nodes; lives only for one encode call.
DefinitionArena: TypeAlias = dict[int, Definition]


def encode_scope_info(
    info: ScopeInfo,
    document: dict[str, Any],
    layout: Layout,
    context: VlqContext,
) -> dict[str, Any]:
    """Return a copy of ``document`` carrying ``info`` in ``layout``.

    The input document is left untouched; the copy gets its own
    ``names`` list, extended with every newly referenced string.
    """
    result = dict(document)
    names = NameTable(list(document.get(SourceMapField.NAMES) or []))
    result[SourceMapField.NAMES] = names.names
    vlq = VlqEncoder(context)
    definitions: DefinitionArena = {}

    if layout.combined:
        stream = ItemStream()
        scope_builder = OriginalScopeBuilder(stream, names, vlq, layout)
        for scope in info.scopes:
            scope_builder.reset()
            _encode_original_scope(scope, scope_builder, definitions, 0)
        range_builder = GeneratedRangeBuilder(stream, names, vlq, layout)
        _encode_generated_ranges(info.ranges, range_builder, definitions)

        result[SourceMapField.SCOPES] = stream.build()
        result.pop(SourceMapField.ORIGINAL_SCOPES, None)
        result.pop(SourceMapField.GENERATED_RANGES, None)
        item_count = stream.item_count
    else:
        encoded_scopes: list[str] = []
        item_count = 0
        for source_idx, scope in enumerate(info.scopes):
            stream = ItemStream()
            scope_builder = OriginalScopeBuilder(stream, names, vlq, layout)
            _encode_original_scope(scope, scope_builder, definitions, source_idx)
            encoded_scopes.append(stream.build())
            item_count += stream.item_count

        stream = ItemStream()
        range_builder = GeneratedRangeBuilder(stream, names, vlq, layout)
        _encode_generated_ranges(info.ranges, range_builder, definitions)
        item_count += stream.item_count

        result[SourceMapField.ORIGINAL_SCOPES] = encoded_scopes
        result[SourceMapField.GENERATED_RANGES] = stream.build()
        result.pop(SourceMapField.SCOPES, None)

    logger.debug(
        "Encoded %d scopes / %d ranges as %d items (%s)",
        len(info.scopes),
        len(info.ranges),
        item_count,
        layout.describe(),
    )
    return result


def _encode_original_scope(
    scope: OriginalScope,
    builder: OriginalScopeBuilder,
    definitions: DefinitionArena,
    source_idx: int,
) -> None:
    # (node, started) pairs; a node is ended when it is popped again.
    stack: list[tuple[OriginalScope, bool]] = [(scope, False)]
    while stack:
        node, started = stack.pop()
        if started:
            builder.end(node.end.line, node.end.column)
            continue
        item_idx = builder.start(
            node.start.line,
            node.start.column,
            name=node.name,
            kind=node.kind,
            is_stack_frame=node.is_stack_frame,
            variables=node.variables,
        )
        definitions[id(node)] = Definition(source_idx, item_idx)
        stack.append((node, True))
        stack.extend((child, False) for child in reversed(node.children))


def _encode_generated_ranges(
    ranges: list[GeneratedRange],
    builder: GeneratedRangeBuilder,
    definitions: DefinitionArena,
) -> None:
    for range_ in ranges:
        builder.reset()
        _encode_generated_range(range_, builder, definitions)


def _encode_generated_range(
    range_: GeneratedRange,
    builder: GeneratedRangeBuilder,
    definitions: DefinitionArena,
) -> None:
    stack: list[tuple[GeneratedRange, bool]] = [(range_, False)]
    while stack:
        node, started = stack.pop()
        if started:
            builder.end(node.end.line, node.end.column)
            continue
        builder.start(
            node.start.line,
            node.start.column,
            definition=_lookup_definition(node, definitions),
            callsite=node.callsite,
            is_stack_frame=node.is_stack_frame,
            is_hidden=node.is_hidden,
            values=node.values,
        )
        stack.append((node, True))
        stack.extend((child, False) for child in reversed(node.children))


def _lookup_definition(
    range_: GeneratedRange, definitions: DefinitionArena
) -> Definition | None:
    if range_.original_scope is None:
        return None
    definition = definitions.get(id(range_.original_scope))
    if definition is None:
        raise PreconditionError(
            "Generated range at "
            f"({range_.start.line}, {range_.start.column}) references "
            "an original scope that is not part of ScopeInfo.scopes"
        )
    return definition
