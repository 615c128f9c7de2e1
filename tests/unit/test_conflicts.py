"""Unit tests for conflict detection and conflict reports."""

from pathlib import Path

import polars as pl
import pytest

from design_token_merger.core.conflicts import (
    SAME_VALUES_RECOMMENDATION,
    detect_conflicts,
    export_conflict_reports,
    similarity,
    value_key,
)
from design_token_merger.core.resolve import resolve_conflicts
from design_token_merger.core.types import ConflictSeverity, ConflictType, NormalizedToken


def _token(name: str, value: object, source: str = "variable", type_: str = "color") -> NormalizedToken:
    return NormalizedToken(
        original_name=name,
        normalized_name=name,
        path=tuple(name.split("-")),
        value=value,
        type=type_,
        source=source,
    )


class TestDetectConflicts:
    """detect_conflicts() のテスト."""

    def test_empty_input(self) -> None:
        result = detect_conflicts([])

        assert result.conflicts == ()
        assert result.total_tokens == 0
        assert result.unique_names == 0

    def test_no_conflicts(self) -> None:
        tokens = [_token("blue-500", "#00f"), _token("blue-600", "#00c"), _token("red-500", "#f00")]
        result = detect_conflicts(tokens)

        assert result.conflicts == ()
        assert result.total_tokens == 3
        assert result.unique_names == 3

    def test_differing_values_is_high_duplicate(self) -> None:
        tokens = [_token("color-primary", "#00f", "variable"), _token("color-primary", "#f00", "style")]
        result = detect_conflicts(tokens)

        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.type == ConflictType.DUPLICATE_NAME
        assert conflict.severity == ConflictSeverity.HIGH
        assert conflict.name == "color-primary"
        assert [s.source for s in conflict.sources] == ["variable", "style"]
        assert [s.value for s in conflict.sources] == ["#00f", "#f00"]
        assert "variables_priority" in conflict.recommendation
        assert result.statistics.duplicate_names == 1
        assert result.statistics.high_severity == 1

    def test_differing_values_same_source_kind(self) -> None:
        tokens = [_token("color-primary", "#00f"), _token("color-primary", "#f00")]
        conflict = detect_conflicts(tokens).conflicts[0]

        assert conflict.severity == ConflictSeverity.HIGH
        assert "normalization issue" in conflict.recommendation

    def test_same_values_from_different_sources_is_low(self) -> None:
        tokens = [_token("color-primary", "#00f", "variable"), _token("color-primary", "#00f", "style")]
        result = detect_conflicts(tokens)

        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.type == ConflictType.DUPLICATE_NAME
        assert conflict.severity == ConflictSeverity.LOW
        assert conflict.recommendation == SAME_VALUES_RECOMMENDATION

    def test_pure_duplicate_is_not_a_conflict(self) -> None:
        tokens = [_token("color-primary", "#00f"), _token("color-primary", "#00f")]

        assert detect_conflicts(tokens).conflicts == ()

    def test_structured_values_compare_by_content(self) -> None:
        tokens = [
            _token("heading", {"fontSize": 24, "fontFamily": "Inter"}, type_="typography"),
            _token("heading", {"fontFamily": "Inter", "fontSize": 24}, type_="typography"),
        ]

        assert detect_conflicts(tokens).conflicts == ()

    def test_type_mismatch_reported_alongside_duplicate(self) -> None:
        tokens = [
            _token("size-md", "16px", "variable", "spacing"),
            _token("size-md", 16, "style", "typography"),
        ]
        result = detect_conflicts(tokens)

        assert [c.type for c in result.conflicts] == [ConflictType.DUPLICATE_NAME, ConflictType.TYPE_MISMATCH]
        assert all(c.severity == ConflictSeverity.HIGH for c in result.conflicts)
        assert result.statistics.type_mismatches == 1

    def test_type_mismatch_with_equal_values(self) -> None:
        tokens = [_token("size-md", 16, type_="spacing"), _token("size-md", 16, type_="typography")]
        result = detect_conflicts(tokens)

        assert [c.type for c in result.conflicts] == [ConflictType.TYPE_MISMATCH]
        assert result.conflicts[0].severity == ConflictSeverity.HIGH


class TestNearDuplicates:
    """類似名（typo）の検出."""

    def test_typo_is_reported(self) -> None:
        tokens = [_token("primary-button", "#00f"), _token("primary-buton", "#00f", "style")]
        result = detect_conflicts(tokens)

        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.type == ConflictType.NEAR_DUPLICATE
        assert conflict.severity == ConflictSeverity.LOW
        assert conflict.name == "primary-button / primary-buton"
        assert conflict.names == ("primary-button", "primary-buton")
        assert "93% match" in conflict.recommendation
        assert len(conflict.sources) == 2
        assert result.statistics.near_duplicates == 1

    def test_pair_order_follows_first_appearance(self) -> None:
        tokens = [_token("primary-buton", "#00f"), _token("primary-button", "#00f")]

        assert detect_conflicts(tokens).conflicts[0].names == ("primary-buton", "primary-button")

    def test_below_threshold_is_ignored(self) -> None:
        tokens = [_token("blue-500", "#00f"), _token("blue-600", "#00c")]

        assert detect_conflicts(tokens).conflicts == ()
        assert len(detect_conflicts(tokens, similarity_threshold=0.8).conflicts) == 1

    def test_matches_exhaustive_scan(self) -> None:
        """長さによる枝刈りをしても総当たりと同じ結果になる."""
        names = [
            "color-primary",
            "color-primari",
            "color-primary-hover",
            "color-primary-hove",
            "spacing-small",
            "spacing-smal",
            "spacing-s",
            "radius",
            "radiuss",
            "text-body-large",
            "text-body-larg",
        ]
        tokens = [_token(n, i) for i, n in enumerate(names)]
        threshold = 0.85

        expected = {
            (a, b)
            for i, a in enumerate(names)
            for b in names[i + 1 :]
            if a != b and similarity(a, b) > threshold
        }
        found = {c.names for c in detect_conflicts(tokens, similarity_threshold=threshold).conflicts}

        assert found == expected


class TestHelpers:
    def test_similarity(self) -> None:
        assert similarity("abc", "abc") == 1.0
        assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_value_key_ignores_key_order(self) -> None:
        assert value_key({"a": 1, "b": 2}) == value_key({"b": 2, "a": 1})
        assert value_key("#fff") != value_key("#FFF")


class TestExportConflictReports:
    """CSV レポート出力."""

    def test_writes_csv(self, tmp_path: Path) -> None:
        tokens = [_token("color-primary", "#00f", "variable"), _token("color-primary", "#f00", "style")]
        detection = detect_conflicts(tokens)
        resolution = resolve_conflicts(tokens, detection.conflicts, clock=lambda: 1.5)

        paths = export_conflict_reports(detection.conflicts, resolution.audit_trail, tmp_path / "reports")

        conflicts_df = pl.read_csv(paths["conflicts"])
        assert conflicts_df["type"].to_list() == ["duplicate_name"]
        assert conflicts_df["sources"].to_list() == ["variable,style"]

        audit_df = pl.read_csv(paths["audit_trail"])
        assert audit_df["result"].to_list() == ["kept_variable"]
        assert audit_df["timestamp"].to_list() == [1.5]

    def test_nothing_to_write(self, tmp_path: Path) -> None:
        paths = export_conflict_reports([], [], tmp_path)

        assert paths == {"conflicts": None, "audit_trail": None}
        assert not (tmp_path / "conflicts.csv").exists()
