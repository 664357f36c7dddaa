"""Protocol-based codec interface.

Layout codecs and strip codecs satisfy this protocol structurally (no
inheritance). Test doubles can be plain classes matching the same
signature.
"""

from __future__ import annotations

from typing import Any, Protocol, TypeAlias

from scopecodecs.model import ScopeInfo
from scopecodecs.vlq import VlqStats

SourceMapJson: TypeAlias = dict[str, Any]


class Codec(Protocol):
    key: str
    name: str
    description: str

    @property
    def vlq_stats(self) -> VlqStats | None: ...

    def encode(
        self, info: ScopeInfo, document: SourceMapJson
    ) -> SourceMapJson: ...

    def decode(self, document: SourceMapJson) -> ScopeInfo: ...
