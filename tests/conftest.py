"""Shared test fixtures — scope forests and source map documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from scopecodecs.codecs import reference_codec
from scopecodecs.model import (
    BindingRange,
    Callsite,
    GeneratedRange,
    OriginalScope,
    Position,
    ScopeInfo,
)


def build_scope_info(
    *, callsites: bool = True, sub_bindings: bool = True
) -> ScopeInfo:
    """Two sources, nested scopes, and ranges pointing into both.

    Callsites and sub-range bindings can be left out for layouts that
    refuse to decode them.
    """
    foo = OriginalScope(
        start=Position(1, 2),
        end=Position(5, 1),
        kind="Function",
        name="foo",
        is_stack_frame=True,
        variables=["a"],
    )
    block = OriginalScope(
        start=Position(6, 0),
        end=Position(8, 1),
        kind="Block",
    )
    module = OriginalScope(
        start=Position(0, 0),
        end=Position(10, 0),
        kind="Module",
        variables=["x", "y"],
        children=[foo, block],
    )
    other_module = OriginalScope(
        start=Position(0, 0),
        end=Position(3, 0),
        kind="Module",
        variables=["z"],
    )

    inlined = GeneratedRange(
        start=Position(2, 4),
        end=Position(4, 10),
        is_stack_frame=True,
        original_scope=foo,
        callsite=Callsite(source_idx=0, line=7, column=3) if callsites else None,
        values=["a"],
    )
    hidden = GeneratedRange(
        start=Position(5, 0),
        end=Position(9, 2),
        is_hidden=True,
        original_scope=block,
    )
    first = GeneratedRange(
        start=Position(0, 0),
        end=Position(20, 0),
        original_scope=module,
        values=["x", None],
        children=[inlined, hidden],
    )
    z_binding: Any = (
        [
            BindingRange(Position(21, 0), "z"),
            BindingRange(Position(25, 3), None),
            BindingRange(Position(25, 8), "z"),
        ]
        if sub_bindings
        else "z"
    )
    second = GeneratedRange(
        start=Position(21, 0),
        end=Position(30, 0),
        original_scope=other_module,
        values=[z_binding],
    )
    return ScopeInfo(scopes=[module, other_module], ranges=[first, second])


def base_document() -> dict[str, Any]:
    return {
        "version": 3,
        "sources": ["a.js", "b.js"],
        "sourcesContent": ["function foo(a) {}", "let z;"],
        "names": [],
        "mappings": "AAAA",
    }


@pytest.fixture
def scope_info() -> ScopeInfo:
    return build_scope_info()


@pytest.fixture
def simple_scope_info() -> ScopeInfo:
    """Variant without callsites or sub-range bindings."""
    return build_scope_info(callsites=False, sub_bindings=False)


@pytest.fixture
def document() -> dict[str, Any]:
    return base_document()


@pytest.fixture
def source_map_file(tmp_path: Path) -> Path:
    """A source map on disk carrying scopes in the reference encoding."""
    encoded = reference_codec().encode(build_scope_info(), base_document())
    path = tmp_path / "input.js.map"
    path.write_text(json.dumps(encoded), encoding="utf-8")
    return path
