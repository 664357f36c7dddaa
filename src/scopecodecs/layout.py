"""Stream layout: the configuration axis along which codecs differ.

One encode/decode engine serves every codec; a ``Layout`` picks one
option per axis.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from scopecodecs.constants import (
    GeneratedRangeFlag,
    TaggedGeneratedRangeFlag,
)


class LineSeparator(StrEnum):
    """How generated ranges express line changes."""

    SEMICOLON = "semicolon"  # one ';' per skipped generated line
    VLQ_LINE = "vlq_line"  # inline relative line, flagged in the column


class Framing(StrEnum):
    """How a reader tells item kinds apart."""

    FIELD = "field"  # positional: start vs end by field count
    TAG = "tag"  # leading tag VLQ on every item


class Combination(StrEnum):
    """How many scope fields the document carries."""

    SEPARATE = "separate"  # originalScopes[] + generatedRanges
    COMBINED = "combined"  # single tag-framed "scopes" field


class ItemGranularity(StrEnum):
    """Where variables and bindings are written."""

    INLINE = "inline"  # inside the owning start item
    SPLIT = "split"  # standalone item right after the start item


@dataclass(frozen=True)
class Layout:
    separator: LineSeparator = LineSeparator.VLQ_LINE
    framing: Framing = Framing.FIELD
    combination: Combination = Combination.SEPARATE
    variables: ItemGranularity = ItemGranularity.INLINE
    # Some experimental layouts encode these but refuse to decode them.
    decodes_callsites: bool = True
    decodes_binding_ranges: bool = True

    def __post_init__(self) -> None:
        if self.framing is Framing.FIELD:
            if self.combination is Combination.COMBINED:
                raise ValueError(
                    "A combined scopes field requires tag framing"
                )
            if self.variables is ItemGranularity.SPLIT:
                raise ValueError(
                    "Standalone variables/bindings items require tag framing"
                )

    @property
    def tagged(self) -> bool:
        return self.framing is Framing.TAG

    @property
    def combined(self) -> bool:
        return self.combination is Combination.COMBINED

    @property
    def split_items(self) -> bool:
        return self.variables is ItemGranularity.SPLIT

    @property
    def semicolons(self) -> bool:
        return self.separator is LineSeparator.SEMICOLON

    @property
    def range_flags(
        self,
    ) -> type[GeneratedRangeFlag] | type[TaggedGeneratedRangeFlag]:
        """Flag bit assignment for generated range start items."""
        if self.tagged:
            return TaggedGeneratedRangeFlag
        return GeneratedRangeFlag

    def describe(self) -> str:
        return ", ".join((
            self.separator.value,
            self.framing.value,
            self.combination.value,
            self.variables.value,
        ))
