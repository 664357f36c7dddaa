"""Concrete codec implementations.

``LayoutCodec`` binds one ``Layout`` and one VLQ mode to the shared
engine. ``StripCodec`` produces the reference documents sizes are
measured against; it cannot decode anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from scopecodecs.codecs.protocols import SourceMapJson
from scopecodecs.engine import decode_scope_info, encode_scope_info
from scopecodecs.errors import UnsupportedFeatureError
from scopecodecs.layout import Layout
from scopecodecs.model import ScopeInfo
from scopecodecs.vlq import VlqContext, VlqStats


@dataclass(frozen=True)
class LayoutCodec:
    key: str
    name: str
    description: str
    layout: Layout
    unsigned: bool = True
    # Histograms accumulate over every encode call of the process.
    collect_stats: bool = False
    _stats: VlqStats = field(
        default_factory=VlqStats, repr=False, compare=False
    )

    @property
    def vlq_stats(self) -> VlqStats | None:
        return self._stats if self.collect_stats else None

    def encode(self, info: ScopeInfo, document: SourceMapJson) -> SourceMapJson:
        context = VlqContext(unsigned=self.unsigned, stats=self.vlq_stats)
        return encode_scope_info(info, document, self.layout, context)

    def decode(self, document: SourceMapJson) -> ScopeInfo:
        context = VlqContext(unsigned=self.unsigned)
        return decode_scope_info(document, self.layout, context)


@dataclass(frozen=True)
class StripCodec:
    """Removes fields from the document and ignores the scope info."""

    key: str
    name: str
    description: str
    fields: tuple[str, ...]

    @property
    def vlq_stats(self) -> VlqStats | None:
        return None

    def encode(self, info: ScopeInfo, document: SourceMapJson) -> SourceMapJson:
        return {k: v for k, v in document.items() if k not in self.fields}

    def decode(self, document: SourceMapJson) -> ScopeInfo:
        raise UnsupportedFeatureError(
            f"{self.name} is a reference codec and cannot decode"
        )
