"""Per-file size statistics for encoded source maps."""

from __future__ import annotations

import gzip
import json
from collections.abc import Sequence
from typing import Any

import brotli
from pydantic import BaseModel

_TABLE_COLUMNS = (
    "File",
    "Codec",
    "Uncompressed size",
    "Δ raw",
    "Compressed size (gzip)",
    "Δ gzip",
    "Compressed size (brotli)",
    "Δ brotli",
)
_CSV_HEADER = (
    "File,Codec,Uncompressed size,Δ,Compressed size (gzip),Δ,"
    "Compressed size (brotli),Δ"
)
_CSV_SPACER = "," * (len(_TABLE_COLUMNS) - 1)


class MapSizes(BaseModel):
    """Byte sizes of one serialized map and its change against the reference."""

    raw: int
    gzip: int
    brotli: int
    delta_raw: float | None = None
    delta_gzip: float | None = None
    delta_brotli: float | None = None


def _delta(old: int, new: int) -> float:
    return (new - old) / old if old else 0.0


def _format_delta(delta: float | None) -> str:
    if delta is None:
        return ""
    return f"{delta:+.2%}"


class SizesStats:
    """Collects sizes per file and codec, relative to a reference map.

    ``filter_props`` restricts measurement to those top-level keys,
    e.g. only the scope fields.
    """

    def __init__(
        self,
        reference_name: str,
        filter_props: Sequence[str] | None = None,
    ) -> None:
        self.reference_name = reference_name
        self._filter_props = tuple(filter_props) if filter_props else None
        self._stats: dict[str, dict[str, MapSizes]] = {}
        self._reference_sizes: dict[str, MapSizes] = {}

    def add_map(
        self,
        source_map: dict[str, Any],
        reference_map: dict[str, Any],
        file: str,
        codec_name: str,
    ) -> MapSizes:
        reference = self._reference_sizes.get(file)
        if reference is None:
            reference = self.measure(reference_map)
            self._reference_sizes[file] = reference
        sizes = self.measure(source_map, reference)
        self._stats.setdefault(file, {})[codec_name] = sizes
        return sizes

    def measure(
        self,
        source_map: dict[str, Any],
        reference: MapSizes | None = None,
    ) -> MapSizes:
        if self._filter_props is not None:
            source_map = {
                k: source_map[k] for k in self._filter_props if k in source_map
            }
        data = json.dumps(
            source_map, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
        sizes = MapSizes(
            raw=len(data),
            gzip=len(gzip.compress(data, mtime=0)),
            brotli=len(brotli.compress(data)),
        )
        if reference is None:
            return sizes
        sizes.delta_raw = _delta(reference.raw, sizes.raw)
        sizes.delta_gzip = _delta(reference.gzip, sizes.gzip)
        sizes.delta_brotli = _delta(reference.brotli, sizes.brotli)
        return sizes

    def files(self) -> list[str]:
        return list(self._stats)

    def format_table(self) -> str:
        rows: list[tuple[str, ...]] = [_TABLE_COLUMNS]
        blank = ("",) * (len(_TABLE_COLUMNS) - 1)
        for file, per_codec in self._stats.items():
            rows.append((file, *blank))
            reference = self._reference_sizes[file]
            rows.append(
                ("", self.reference_name, *self._format_sizes(reference))
            )
            for codec_name, sizes in per_codec.items():
                rows.append(("", codec_name, *self._format_sizes(sizes)))

        widths = [
            max(len(row[i]) for row in rows)
            for i in range(len(_TABLE_COLUMNS))
        ]
        lines = []
        for row in rows:
            cells = [
                cell.ljust(w) if i < 2 else cell.rjust(w)
                for i, (cell, w) in enumerate(zip(row, widths))
            ]
            lines.append(" | ".join(cells).rstrip())
        lines.insert(1, "-+-".join("-" * w for w in widths))
        return "\n".join(lines)

    def format_csv(self) -> str:
        lines = [_CSV_HEADER]
        for file, per_codec in self._stats.items():
            ref = self._reference_sizes[file]
            lines.append(
                f"{file},{self.reference_name},{ref.raw},,{ref.gzip},,"
                f"{ref.brotli},"
            )
            for codec_name, sizes in per_codec.items():
                lines.append(
                    f"{file},{codec_name},{sizes.raw},{sizes.delta_raw},"
                    f"{sizes.gzip},{sizes.delta_gzip},"
                    f"{sizes.brotli},{sizes.delta_brotli}"
                )
            lines.append(_CSV_SPACER)
        return "\n".join(lines)

    @staticmethod
    def _format_sizes(sizes: MapSizes) -> tuple[str, ...]:
        return (
            f"{sizes.raw:,}",
            _format_delta(sizes.delta_raw),
            f"{sizes.gzip:,}",
            _format_delta(sizes.delta_gzip),
            f"{sizes.brotli:,}",
            _format_delta(sizes.delta_brotli),
        )
