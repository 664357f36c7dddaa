"""Tests for the codec registry and reference codecs."""

from __future__ import annotations

from typing import Any

import pytest

from scopecodecs.codecs import (
    CANDIDATE_CODECS,
    REFERENCE_CODECS,
    get_codec,
    reference_codec,
)
from scopecodecs.errors import UnsupportedFeatureError
from scopecodecs.model import ScopeInfo


class TestRegistry:
    def test_candidate_keys(self) -> None:
        assert list(CANDIDATE_CODECS) == [
            "base",
            "base-no-semicolon",
            "base-tag",
            "tag-combined",
            "base-tag-all",
            "tag-split-variables",
            "tag-split-variables-unsigned",
        ]

    def test_reference_keys(self) -> None:
        assert list(REFERENCE_CODECS) == ["base", "no-scopes", "no-sources"]

    def test_reference_codec_is_base(self) -> None:
        assert reference_codec() is get_codec("base")

    def test_unknown_key(self) -> None:
        with pytest.raises(KeyError, match="Unknown codec"):
            get_codec("prefix")

    def test_limited_layouts(self) -> None:
        for key in ("base-tag", "base-tag-all"):
            layout = CANDIDATE_CODECS[key].layout
            assert not layout.decodes_callsites
            assert not layout.decodes_binding_ranges

    def test_base_tag_combines_and_splits_items(self) -> None:
        layout = CANDIDATE_CODECS["base-tag"].layout
        assert layout.combined
        assert layout.split_items
        assert not layout.semicolons

    def test_only_split_variables_is_signed(self) -> None:
        signed = [k for k, c in CANDIDATE_CODECS.items() if not c.unsigned]
        assert signed == ["tag-split-variables"]

    def test_codecs_have_descriptions(self) -> None:
        for codec in (*CANDIDATE_CODECS.values(), *REFERENCE_CODECS.values()):
            assert codec.name
            assert codec.description


class TestVlqStats:
    def test_base_collects_histograms(
        self, scope_info: ScopeInfo, document: dict[str, Any]
    ) -> None:
        codec = get_codec("base")
        assert codec.vlq_stats is not None
        codec.encode(scope_info, document)
        histograms = codec.vlq_stats.histograms()
        assert "OriginalScope.start.line" in histograms
        assert "GeneratedRange.flags" in histograms

    def test_tag_codecs_collect_nothing(self) -> None:
        assert get_codec("tag-combined").vlq_stats is None

    def test_decode_does_not_record(
        self, scope_info: ScopeInfo, document: dict[str, Any]
    ) -> None:
        codec = get_codec("base-no-semicolon")
        encoded = codec.encode(scope_info, document)
        assert codec.vlq_stats is not None
        before = codec.vlq_stats.histograms()
        codec.decode(encoded)
        assert codec.vlq_stats.histograms() == before


class TestStripCodecs:
    def test_no_scopes(
        self, scope_info: ScopeInfo, document: dict[str, Any]
    ) -> None:
        encoded = get_codec("base").encode(scope_info, document)
        stripped = get_codec("no-scopes").encode(scope_info, encoded)
        assert "originalScopes" not in stripped
        assert "generatedRanges" not in stripped
        assert stripped["sourcesContent"] == document["sourcesContent"]

    def test_no_sources(
        self, scope_info: ScopeInfo, document: dict[str, Any]
    ) -> None:
        stripped = get_codec("no-sources").encode(scope_info, document)
        assert "sourcesContent" not in stripped
        assert stripped["mappings"] == document["mappings"]
        assert "sourcesContent" in document

    @pytest.mark.parametrize("key", ["no-scopes", "no-sources"])
    def test_decode_unsupported(
        self, key: str, document: dict[str, Any]
    ) -> None:
        with pytest.raises(UnsupportedFeatureError, match="cannot decode"):
            get_codec(key).decode(document)
