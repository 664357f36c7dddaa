"""Base64 VLQ primitives shared by every codec.

Each character carries a 5-bit payload in its low bits and a
continuation flag in bit 0x20, least-significant group first. Signed
values keep their sign in bit 0 of the first group.

Whether fields known to be non-negative skip the sign transform is a
property of the ``VlqContext`` passed to the encoder and cursor, so two
otherwise identical layouts can be compared with and without the
optimization.
"""

from __future__ import annotations

from dataclasses import dataclass

from scopecodecs.constants import (
    BASE64_CHARS,
    BASE64_CODES,
    ITEM_SEPARATOR,
    LINE_SEPARATOR,
    VLQ_BASE_MASK,
    VLQ_BASE_SHIFT,
    VLQ_CONTINUATION_MASK,
    VLQ_HISTOGRAM_BUCKETS,
)
from scopecodecs.errors import MalformedStreamError, PreconditionError

UNLABELED = "<unlabeled>"


def encode_unsigned_vlq(n: int) -> str:
    """Encode a non-negative integer as a VLQ character run."""
    if n < 0:
        raise PreconditionError(
            f"Cannot encode negative value {n} as unsigned VLQ"
        )
    chars: list[str] = []
    while True:
        digit = n & VLQ_BASE_MASK
        n >>= VLQ_BASE_SHIFT
        if n == 0:
            chars.append(BASE64_CHARS[digit])
            return "".join(chars)
        chars.append(BASE64_CHARS[VLQ_CONTINUATION_MASK | digit])


def encode_signed_vlq(n: int) -> str:
    """Encode an integer with its sign moved to the least significant bit."""
    return encode_unsigned_vlq(2 * n if n >= 0 else 1 - 2 * n)


class VlqStats:
    """Per-label histograms of emitted VLQ run lengths.

    Bucket 0 counts the literal value zero; bucket ``k`` counts values
    that took ``k`` characters. Observability only.
    """

    def __init__(self) -> None:
        self._histograms: dict[str, list[int]] = {}

    def record(self, label: str | None, value: int, encoded: str) -> None:
        histogram = self._histograms.setdefault(
            label or UNLABELED, [0] * VLQ_HISTOGRAM_BUCKETS
        )
        bucket = 0 if value == 0 else len(encoded)
        if bucket >= len(histogram):
            histogram.extend([0] * (bucket + 1 - len(histogram)))
        histogram[bucket] += 1

    def histograms(self) -> dict[str, list[int]]:
        """Copies of all histograms with trailing empty buckets trimmed."""
        result: dict[str, list[int]] = {}
        for label, histogram in self._histograms.items():
            last = max(
                (i for i, count in enumerate(histogram) if count),
                default=-1,
            )
            result[label] = histogram[: last + 1]
        return result

    def reset(self) -> None:
        self._histograms.clear()

    def format_table(self) -> str:
        """Render the histograms as a fixed-width text table."""
        histograms = self.histograms()
        buckets = sorted({
            i
            for histogram in histograms.values()
            for i, count in enumerate(histogram)
            if count
        })
        header = ["Label", *(f'"{b}"' for b in buckets)]
        rows = [header]
        for label, histogram in histograms.items():
            row = [label]
            for b in buckets:
                count = histogram[b] if b < len(histogram) else 0
                row.append(str(count) if count else "")
            rows.append(row)

        widths = [max(len(r[i]) for r in rows) for i in range(len(header))]
        return "\n".join(
            "  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip()
            for row in rows
        )


@dataclass(frozen=True)
class VlqContext:
    """Operating mode for one encode or decode call.

    With ``unsigned`` disabled, fields declared unsigned are still
    sign-transformed, which makes size comparisons between the two
    modes exact.
    """

    unsigned: bool = True
    stats: VlqStats | None = None


class VlqEncoder:
    """Emits VLQ runs under a context, feeding its statistics sink."""

    def __init__(self, context: VlqContext) -> None:
        self._context = context

    def signed(self, n: int, label: str | None = None) -> str:
        encoded = encode_signed_vlq(n)
        self._track(label, n, encoded)
        return encoded

    def unsigned(self, n: int, label: str | None = None) -> str:
        encoded = (
            encode_unsigned_vlq(n)
            if self._context.unsigned
            else encode_signed_vlq(n)
        )
        self._track(label, n, encoded)
        return encoded

    def _track(self, label: str | None, n: int, encoded: str) -> None:
        if self._context.stats is not None:
            self._context.stats.record(label, n, encoded)


class TokenCursor:
    """Left-to-right reader over an encoded scope string."""

    def __init__(self, encoded: str, context: VlqContext) -> None:
        self._encoded = encoded
        self._position = 0
        self._context = context

    @property
    def position(self) -> int:
        return self._position

    def has_next(self) -> bool:
        return self._position < len(self._encoded)

    def peek(self) -> str:
        """Next character, or the empty string at end of input."""
        return self._encoded[self._position : self._position + 1]

    def next(self) -> str:
        char = self.peek()
        self._position += 1
        return char

    def at_item_end(self) -> bool:
        """True at end of input or in front of an item/line separator."""
        return self.peek() in ("", ITEM_SEPARATOR, LINE_SEPARATOR)

    def next_signed(self) -> int:
        result = self._next_raw()
        negative = result & 1
        result >>= 1
        return -result if negative else result

    def next_unsigned(self) -> int:
        if self._context.unsigned:
            return self._next_raw()
        return self.next_signed()

    def _next_raw(self) -> int:
        result = 0
        shift = 0
        digit = VLQ_CONTINUATION_MASK
        while digit & VLQ_CONTINUATION_MASK:
            if not self.has_next():
                raise MalformedStreamError(
                    "Unexpected end of input while decoding VLQ number"
                )
            char = self.next()
            code = BASE64_CODES.get(char)
            if code is None:
                raise MalformedStreamError(
                    f"Unexpected char {char!r} at offset "
                    f"{self._position - 1} while decoding VLQ number"
                )
            digit = code
            result += (digit & VLQ_BASE_MASK) << shift
            shift += VLQ_BASE_SHIFT
        return result
