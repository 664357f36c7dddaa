"""Registry of every codec known to the command line, keyed by flag name."""

from __future__ import annotations

from scopecodecs.codecs.base import LayoutCodec, StripCodec
from scopecodecs.codecs.protocols import Codec
from scopecodecs.constants import (
    REFERENCE_CODEC_KEY,
    SCOPE_FIELDS,
    STRIP_SCOPES_CODEC_KEY,
    STRIP_SOURCES_CODEC_KEY,
    SourceMapField,
)
from scopecodecs.layout import (
    Combination,
    Framing,
    ItemGranularity,
    Layout,
    LineSeparator,
)

_LAYOUT_CODECS: tuple[LayoutCodec, ...] = (
    LayoutCodec(
        key=REFERENCE_CODEC_KEY,
        name="Base",
        description=(
            'A slightly modified version of the currently proposed "Scopes" '
            "(stage 3) encoding"
        ),
        layout=Layout(separator=LineSeparator.SEMICOLON),
        collect_stats=True,
    ),
    LayoutCodec(
        key="base-no-semicolon",
        name="Base (no semicolon)",
        description=(
            'Same as "Base" but encodes generated lines as VLQ rather than ";"'
        ),
        layout=Layout(separator=LineSeparator.VLQ_LINE),
        collect_stats=True,
    ),
    LayoutCodec(
        key="base-tag",
        name="Base (tag)",
        description='Same as "Base" but emits a "tag" VLQ to distinguish items',
        layout=Layout(
            framing=Framing.TAG,
            combination=Combination.COMBINED,
            variables=ItemGranularity.SPLIT,
            decodes_callsites=False,
            decodes_binding_ranges=False,
        ),
    ),
    LayoutCodec(
        key="tag-combined",
        name="Tag combined",
        description=(
            'Tagged items with original scopes and generated ranges in a '
            'single "scopes" field'
        ),
        layout=Layout(framing=Framing.TAG, combination=Combination.COMBINED),
    ),
    LayoutCodec(
        key="base-tag-all",
        name="Base (tag, all)",
        description=(
            'Same as "Base" but encodes generated lines as VLQ, tags items, '
            'combines both fields into "scopes" and moves variables and '
            "bindings into their own items"
        ),
        layout=Layout(
            framing=Framing.TAG,
            combination=Combination.COMBINED,
            variables=ItemGranularity.SPLIT,
            decodes_callsites=False,
            decodes_binding_ranges=False,
        ),
    ),
    LayoutCodec(
        key="tag-split-variables",
        name="Tag split variables",
        description=(
            "Prefix items with a tag. Separate items for variables/bindings."
        ),
        layout=Layout(
            framing=Framing.TAG,
            combination=Combination.COMBINED,
            variables=ItemGranularity.SPLIT,
        ),
        unsigned=False,
    ),
    LayoutCodec(
        key="tag-split-variables-unsigned",
        name="Tag split variables (unsigned)",
        description=(
            "Prefix items with a tag. Separate items for variables/bindings. "
            "Use unsigned VLQ where appropriate."
        ),
        layout=Layout(
            framing=Framing.TAG,
            combination=Combination.COMBINED,
            variables=ItemGranularity.SPLIT,
        ),
    ),
)

_REFERENCE_CODECS: tuple[StripCodec, ...] = (
    StripCodec(
        key=STRIP_SCOPES_CODEC_KEY,
        name="Base (no scopes)",
        description="Input source map without any scope information.",
        fields=SCOPE_FIELDS,
    ),
    StripCodec(
        key=STRIP_SOURCES_CODEC_KEY,
        name="Base (no scopes, no sources)",
        description="Input source map without any sources or scope information.",
        fields=(*SCOPE_FIELDS, SourceMapField.SOURCES_CONTENT),
    ),
)

CANDIDATE_CODECS: dict[str, LayoutCodec] = {c.key: c for c in _LAYOUT_CODECS}
REFERENCE_CODECS: dict[str, Codec] = {
    REFERENCE_CODEC_KEY: CANDIDATE_CODECS[REFERENCE_CODEC_KEY],
    **{c.key: c for c in _REFERENCE_CODECS},
}


def get_codec(key: str) -> Codec:
    """Look up any codec by key, candidate or reference."""
    codec = CANDIDATE_CODECS.get(key) or REFERENCE_CODECS.get(key)
    if codec is None:
        valid = ", ".join(sorted({*CANDIDATE_CODECS, *REFERENCE_CODECS}))
        raise KeyError(f"Unknown codec '{key}'. Valid: {valid}")
    return codec


def reference_codec() -> LayoutCodec:
    """The codec input documents are decoded with."""
    return CANDIDATE_CODECS[REFERENCE_CODEC_KEY]
