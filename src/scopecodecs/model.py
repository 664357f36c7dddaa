"""Codec-agnostic scope model: original scopes and generated ranges.

Every encoder consumes a ``ScopeInfo`` and every decoder produces one.
Equality is structural, field by field, including list order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeAlias


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based location; ordering is line-major."""

    line: int
    column: int


@dataclass(frozen=True)
class Callsite:
    """Where, in an original source, an inlined range was called from."""

    source_idx: int
    line: int
    column: int


@dataclass(frozen=True)
class BindingRange:
    """A variable's value from ``from_`` until the next sub-binding."""

    from_: Position
    value: str | None


# None (no value), one name for the whole range, or value changes
# within the range. The first sub-binding must start at the range start.
Binding: TypeAlias = str | None | list[BindingRange]


@dataclass
class OriginalScope:
    """A lexical scope in the original source."""

    start: Position
    end: Position
    kind: str | None = None
    name: str | None = None
    is_stack_frame: bool = False
    variables: list[str] = field(default_factory=lambda: list[str]())
    children: list[OriginalScope] = field(
        default_factory=lambda: list[OriginalScope]()
    )


@dataclass
class GeneratedRange:
    """A region of generated code, optionally tied to an original scope.

    ``original_scope`` does not own its target: it points into the
    ``ScopeInfo.scopes`` forest.
    """

    start: Position
    end: Position
    is_stack_frame: bool = False
    is_hidden: bool = False
    original_scope: OriginalScope | None = field(default=None, repr=False)
    callsite: Callsite | None = None
    values: list[Binding] = field(default_factory=lambda: list[Binding]())
    children: list[GeneratedRange] = field(
        default_factory=lambda: list[GeneratedRange]()
    )

    def __post_init__(self) -> None:
        # A lone sub-binding at the range start is written as a plain
        # value; store it that way so encoded ranges compare equal.
        self.values = [
            binding[0].value
            if isinstance(binding, list)
            and len(binding) == 1
            and binding[0].from_ == self.start
            else binding
            for binding in self.values
        ]


@dataclass
class ScopeInfo:
    scopes: list[OriginalScope] = field(
        default_factory=lambda: list[OriginalScope]()
    )
    ranges: list[GeneratedRange] = field(
        default_factory=lambda: list[GeneratedRange]()
    )

