"""Tests for the comparison pipeline."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from scopecodecs.codecs import CANDIDATE_CODECS, Codec, get_codec
from scopecodecs.constants import SCOPE_FIELDS
from scopecodecs.driver import (
    compare_file,
    describe_codecs,
    format_vlq_histograms,
    run,
    verify_round_trip,
)
from scopecodecs.errors import RoundTripError
from scopecodecs.model import Position, ScopeInfo
from scopecodecs.stats import SizesStats

_VERIFIABLE = [
    get_codec(key)
    for key in ("base-no-semicolon", "tag-combined", "tag-split-variables")
]


class TestCompareFile:
    def test_sizes_per_candidate(self, source_map_file: Path) -> None:
        stats = SizesStats("Base", SCOPE_FIELDS)
        results = compare_file(
            source_map_file,
            _VERIFIABLE,
            get_codec("base"),
            stats,
            verify=True,
        )
        assert list(results) == [c.name for c in _VERIFIABLE]
        assert stats.files() == [str(source_map_file)]

    def test_reference_is_not_its_own_candidate(
        self, source_map_file: Path
    ) -> None:
        stats = SizesStats("Base")
        results = compare_file(
            source_map_file,
            [get_codec("base"), get_codec("tag-combined")],
            get_codec("base"),
            stats,
        )
        assert list(results) == ["Tag combined"]

    def test_stripped_reference(self, source_map_file: Path) -> None:
        stats = SizesStats("Base (no scopes)")
        results = compare_file(
            source_map_file,
            [get_codec("base")],
            get_codec("no-scopes"),
            stats,
        )
        # Scope fields only add bytes on top of the stripped map.
        assert results["Base"].delta_raw > 0

    def test_limited_decoder_fails_verification(
        self, source_map_file: Path
    ) -> None:
        with pytest.raises(NotImplementedError):
            compare_file(
                source_map_file,
                [get_codec("base-tag")],
                get_codec("base"),
                SizesStats("Base"),
                verify=True,
            )


class TestVerifyRoundTrip:
    def test_passes_for_identical_forest(
        self, scope_info: ScopeInfo, document: dict
    ) -> None:
        codec = get_codec("tag-combined")
        verify_round_trip(codec, codec.encode(scope_info, document), scope_info)

    def test_reports_first_difference(
        self, scope_info: ScopeInfo, document: dict
    ) -> None:
        codec = get_codec("tag-combined")
        encoded = codec.encode(scope_info, document)
        scope_info.ranges[1].end = Position(31, 0)
        with pytest.raises(RoundTripError, match=r"ranges\[1\]"):
            verify_round_trip(codec, encoded, scope_info)

    def test_reports_count_mismatch(
        self, scope_info: ScopeInfo, document: dict
    ) -> None:
        codec = get_codec("base")
        encoded = codec.encode(scope_info, document)
        scope_info.scopes.pop()
        with pytest.raises(RoundTripError, match="decoded 2 scopes"):
            verify_round_trip(codec, encoded, scope_info)


class TestRun:
    def test_counts_failures_and_continues(
        self,
        source_map_file: Path,
        tmp_path: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        broken = tmp_path / "broken.map"
        broken.write_text(json.dumps({"version": 3}), encoding="utf-8")
        missing = tmp_path / "missing.map"
        stats = SizesStats("Base")

        with caplog.at_level(logging.ERROR, logger="scopecodecs.driver"):
            failures = run(
                [broken, missing, source_map_file],
                _VERIFIABLE,
                get_codec("base"),
                stats,
            )

        assert failures == 2
        assert "[missing_input]" in caplog.text
        assert str(missing) in caplog.text
        assert stats.files() == [str(source_map_file)]

    def test_malformed_input_is_classified(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "bad.map"
        path.write_text(
            json.dumps(
                {"names": [], "originalScopes": ["AA"], "generatedRanges": ""}
            ),
            encoding="utf-8",
        )
        with caplog.at_level(logging.ERROR, logger="scopecodecs.driver"):
            failures = run(
                [path], _VERIFIABLE, get_codec("base"), SizesStats("Base")
            )
        assert failures == 1
        assert "[malformed]" in caplog.text

    def test_logs_progress(
        self, source_map_file: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="scopecodecs.driver"):
            run(
                [source_map_file],
                _VERIFIABLE,
                get_codec("base"),
                SizesStats("Base"),
            )
        assert "Compared 3 codec(s)" in caplog.text


class TestReports:
    def test_describe_codecs(self) -> None:
        text = describe_codecs([get_codec("base"), get_codec("no-scopes")])
        assert "Name:         Base\n" in text
        assert "Name:         Base (no scopes)" in text
        assert text.count("Description:") == 2

    def test_histograms_only_for_collecting_codecs(
        self, scope_info: ScopeInfo, document: dict
    ) -> None:
        codecs: list[Codec] = [
            CANDIDATE_CODECS["base-no-semicolon"],
            CANDIDATE_CODECS["tag-combined"],
        ]
        for codec in codecs:
            codec.encode(scope_info, document)
        text = format_vlq_histograms(codecs)
        assert '==== VLQ Histograms for "Base (no semicolon)" ====' in text
        assert "Tag combined" not in text
