"""Smoke tests for the merge builder."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from loguru import logger

from design_token_merger.builder import format_merge_statistics, main, merge_tokens, run_merge
from design_token_merger.config import MergeOptions
from design_token_merger.core.pattern_detector import pattern_from_style
from design_token_merger.core.types import RawToken, ResolutionStrategy


def _raw(name: str, value: object, source: str, type_: str = "color") -> RawToken:
    return RawToken(name=name, value=value, type=type_, source=source)


def _write_tokens(path: Path, records: list[dict[str, object]]) -> Path:
    path.write_text(json.dumps(records), encoding="utf-8")
    return path


class TestMergeTokens:
    """merge_tokens() のテスト."""

    def test_empty_input(self) -> None:
        result = merge_tokens([])

        assert result.tokens == ()
        assert result.hierarchy == {}
        assert result.warnings == ("No tokens to merge",)
        assert result.statistics.total_tokens == 0

    def test_detects_pattern_and_resolves(self) -> None:
        raw = [
            _raw("color/primary", "#0000ff", "variable"),
            _raw("color/secondary", "#00ff00", "variable"),
            _raw("Color/Primary", "#ff0000", "style"),
        ]

        result = merge_tokens(raw, clock=lambda: 0.0)

        assert result.pattern.separator == "/"
        assert [(t.normalized_name, t.value) for t in result.tokens] == [
            ("color/primary", "#0000ff"),
            ("color/secondary", "#00ff00"),
        ]
        assert result.strategy == ResolutionStrategy.VARIABLES_PRIORITY
        stats = result.statistics
        assert stats.input_tokens == 3
        assert stats.total_tokens == 2
        assert stats.tokens_by_source == {"variable": 2}
        assert stats.conflicts == 1
        assert stats.resolved == 1
        assert stats.unresolved == 0
        assert set(result.hierarchy["color"].children) == {"primary", "secondary"}

    def test_conflicts_do_not_log_duplicate_paths(self) -> None:
        """階層は解決後のトークンからのみ構築する."""
        messages: list[str] = []
        sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
        try:
            merge_tokens([_raw("color/primary", "#0000ff", "variable"), _raw("Color/Primary", "#ff0000", "style")])
        finally:
            logger.remove(sink_id)

        assert not [m for m in messages if m.startswith("Duplicate path")]

    def test_exact_duplicates_are_dropped(self) -> None:
        raw = [_raw("space-sm", "4px", "variable", "spacing"), _raw("space_sm", "4px", "variable", "spacing")]
        options = MergeOptions(target_pattern=pattern_from_style("-", "kebab"))

        result = merge_tokens(raw, options)

        assert len(result.tokens) == 1
        assert result.conflicts == ()
        assert result.statistics.duplicates_removed == 1
        assert any(w.startswith("Dropped exact duplicate") for w in result.warnings)

    def test_format_statistics(self) -> None:
        raw = [_raw("blue", "#00f", "variable"), _raw("red", "#f00", "style")]

        text = format_merge_statistics(merge_tokens(raw))

        assert "Total tokens: 2 (input: 2)" in text
        assert "  style: 1" in text
        assert "Conflicts detected: 0" in text


class TestRunMerge:
    """ファイル入出力を含む実行."""

    def test_writes_output_and_reports(self, tmp_path: Path) -> None:
        variables = _write_tokens(
            tmp_path / "variables.json",
            [{"name": "color/primary", "value": "#0000ff", "type": "color", "source": "variable"}],
        )
        styles = _write_tokens(
            tmp_path / "styles.json",
            [{"name": "Color/Primary", "value": "#ff0000", "type": "color", "source": "style"}],
        )
        output = tmp_path / "out" / "tokens.json"
        report_dir = tmp_path / "reports"

        run_merge(
            [variables, styles],
            output,
            options=MergeOptions(strategy=ResolutionStrategy.RENAME_BOTH),
            report_dir=report_dir,
        )

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["strategy"] == "rename_both"
        assert [t["normalizedName"] for t in data["tokens"]] == ["color/primary/var", "color/primary/style"]
        assert data["statistics"]["totalTokens"] == 2
        primary = data["hierarchy"]["color"]["children"]["primary"]
        assert set(primary["children"]) == {"var", "style"}
        assert primary["children"]["var"]["value"] == "#0000ff"
        assert (report_dir / "conflicts.csv").exists()
        assert (report_dir / "audit_trail.csv").exists()

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        tokens = _write_tokens(
            tmp_path / "tokens.json",
            [{"name": "blue", "value": "#00f", "type": "color", "source": "variable"}],
        )
        output = tmp_path / "out.json"
        output.write_text("{}", encoding="utf-8")

        with pytest.raises(FileExistsError, match="--overwrite"):
            run_merge([tokens], output)

        run_merge([tokens], output, overwrite=True)
        assert json.loads(output.read_text(encoding="utf-8"))["statistics"]["totalTokens"] == 1


class TestMain:
    def test_cli(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        tokens = _write_tokens(
            tmp_path / "tokens.json",
            [
                {"name": "Primary Blue", "value": "#00f", "type": "color", "source": "variable"},
                {"name": "primaryBlue", "value": "#00c", "type": "color", "source": "style"},
            ],
        )
        output = tmp_path / "out.json"
        monkeypatch.setattr(
            sys,
            "argv",
            [
                "design-token-merger",
                "--input",
                str(tokens),
                "--output",
                str(output),
                "--separator",
                "_",
                "--case",
                "snake",
                "--strategy",
                "styles_priority",
                "--log-level",
                "warning",
            ],
        )

        main()

        data = json.loads(output.read_text(encoding="utf-8"))
        assert [(t["normalizedName"], t["value"]) for t in data["tokens"]] == [("primary_blue", "#00c")]
        assert "Strategy: styles_priority" in capsys.readouterr().out
