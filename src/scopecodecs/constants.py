"""Format constants shared across the codec modules.

Item tags and flag words are part of the persisted format: changing a
value here changes the bytes every codec produces.
"""

from __future__ import annotations

from enum import IntEnum, IntFlag, StrEnum

# ── VLQ ──────────────────────────────────────────────────

BASE64_CHARS = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
)
BASE64_CODES: dict[str, int] = {
    char: index for index, char in enumerate(BASE64_CHARS)
}

VLQ_BASE_SHIFT = 5
VLQ_BASE_MASK = (1 << VLQ_BASE_SHIFT) - 1
VLQ_CONTINUATION_MASK = 1 << VLQ_BASE_SHIFT

# Bucket count allocated per histogram label; grows on demand.
VLQ_HISTOGRAM_BUCKETS = 20

ITEM_SEPARATOR = ","
LINE_SEPARATOR = ";"

NO_NAME_INDEX = -1

# ── Document fields ──────────────────────────────────────


class SourceMapField(StrEnum):
    """Source map JSON keys read or written by the codecs."""

    NAMES = "names"
    ORIGINAL_SCOPES = "originalScopes"
    GENERATED_RANGES = "generatedRanges"
    SCOPES = "scopes"
    SOURCES_CONTENT = "sourcesContent"


SCOPE_FIELDS: tuple[str, ...] = (
    SourceMapField.ORIGINAL_SCOPES,
    SourceMapField.GENERATED_RANGES,
    SourceMapField.SCOPES,
)

# ── Item tags ────────────────────────────────────────────


class Tag(IntEnum):
    """Leading VLQ of every item in tag-framed streams."""

    ORIGINAL_START = 0x1
    ORIGINAL_END = 0x2
    GENERATED_START = 0x3
    GENERATED_END = 0x4
    VARIABLES = 0x6
    BINDINGS = 0x7


# ── Flag words ───────────────────────────────────────────


class OriginalScopeFlag(IntFlag):
    HAS_NAME = 0x1
    HAS_KIND = 0x2
    IS_STACK_FRAME = 0x4
    HAS_VARIABLES = 0x8


class GeneratedRangeFlag(IntFlag):
    """Generated range flags for positional (field-framed) streams."""

    HAS_DEFINITION = 0x1
    HAS_CALLSITE = 0x2
    IS_STACK_FRAME = 0x4
    HAS_BINDINGS = 0x8
    IS_HIDDEN = 0x10


class TaggedGeneratedRangeFlag(IntFlag):
    """Generated range flags for tag-framed streams."""

    HAS_DEFINITION = 0x2
    IS_STACK_FRAME = 0x4
    IS_HIDDEN = 0x8
    HAS_CALLSITE = 0x10
    HAS_BINDINGS = 0x20


# ── Reporting ────────────────────────────────────────────


class SizesMode(StrEnum):
    """Which part of the source map the size report measures."""

    SCOPES = "scopes"
    MAP = "map"


REFERENCE_CODEC_KEY = "base"
STRIP_SCOPES_CODEC_KEY = "no-scopes"
STRIP_SOURCES_CODEC_KEY = "no-sources"
