"""Comparison pipeline: decode each input, re-encode with every candidate.

Input documents are decoded with the reference codec, stripped of their
scope fields, and re-encoded by the sizes reference and every candidate
codec. Sizes land in a ``SizesStats``; optional verification decodes
each candidate's output again and compares it with the input forest.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from scopecodecs.codecs import Codec, get_codec, reference_codec
from scopecodecs.constants import STRIP_SCOPES_CODEC_KEY
from scopecodecs.errors import RoundTripError, ScopeCodecError, classify_error
from scopecodecs.model import ScopeInfo
from scopecodecs.stats import MapSizes, SizesStats

logger = logging.getLogger(__name__)


def verify_round_trip(
    codec: Codec,
    document: dict,
    expected: ScopeInfo,
) -> None:
    """Decode ``document`` with ``codec`` and compare against ``expected``."""
    decoded = codec.decode(document)

    for label, actual, wanted in (
        ("scopes", decoded.scopes, expected.scopes),
        ("ranges", decoded.ranges, expected.ranges),
    ):
        if len(actual) != len(wanted):
            raise RoundTripError(
                f"{codec.name}: decoded {len(actual)} {label}, "
                f"expected {len(wanted)}"
            )
        for i, (a, w) in enumerate(zip(actual, wanted)):
            if a != w:
                raise RoundTripError(
                    f"{codec.name}: {label}[{i}] differs after round trip"
                )


def compare_file(
    path: Path,
    candidates: Sequence[Codec],
    reference: Codec,
    stats: SizesStats,
    verify: bool = False,
) -> dict[str, MapSizes]:
    """Run every candidate over one source map; returns sizes by codec name."""
    document = json.loads(path.read_text(encoding="utf-8"))
    info = reference_codec().decode(document)

    # Codecs append names in their own order to a map without scopes.
    stripped = get_codec(STRIP_SCOPES_CODEC_KEY).encode(info, document)
    reference_map = reference.encode(info, stripped)

    results: dict[str, MapSizes] = {}
    for codec in candidates:
        if codec.key == reference.key:
            continue
        encoded = codec.encode(info, stripped)
        if verify:
            verify_round_trip(codec, encoded, info)
        results[codec.name] = stats.add_map(
            encoded, reference_map, str(path), codec.name
        )
    logger.info(
        "Compared %d codec(s) on %s (%d scopes, %d ranges)",
        len(results),
        path,
        len(info.scopes),
        len(info.ranges),
    )
    return results


def run(
    paths: Iterable[Path],
    candidates: Sequence[Codec],
    reference: Codec,
    stats: SizesStats,
    verify: bool = False,
) -> int:
    """Compare every file; returns the number of files that failed."""
    failures = 0
    for path in paths:
        try:
            compare_file(path, candidates, reference, stats, verify)
        except (ScopeCodecError, OSError, json.JSONDecodeError) as exc:
            failures += 1
            logger.error(
                "Failed to process %s [%s]: %s",
                path,
                classify_error(exc).value,
                exc,
            )
    return failures


def describe_codecs(codecs: Iterable[Codec]) -> str:
    """Name/description block for each codec."""
    blocks = []
    for codec in codecs:
        lines = [f"Name:         {codec.name}"]
        if codec.description:
            lines.append(f"Description:  {codec.description}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_vlq_histograms(codecs: Iterable[Codec]) -> str:
    """Histograms of every codec that collects VLQ statistics."""
    sections = []
    for codec in codecs:
        if codec.vlq_stats is None:
            continue
        sections.append(
            f'==== VLQ Histograms for "{codec.name}" ====\n'
            f"{codec.vlq_stats.format_table()}"
        )
    return "\n\n".join(sections)
