"""Codec façade: uniform encode/decode over every layout variant."""

from scopecodecs.codecs.base import LayoutCodec, StripCodec
from scopecodecs.codecs.protocols import Codec, SourceMapJson
from scopecodecs.codecs.registry import (
    CANDIDATE_CODECS,
    REFERENCE_CODECS,
    get_codec,
    reference_codec,
)

__all__ = [
    "CANDIDATE_CODECS",
    "REFERENCE_CODECS",
    "Codec",
    "LayoutCodec",
    "SourceMapJson",
    "StripCodec",
    "get_codec",
    "reference_codec",
]
