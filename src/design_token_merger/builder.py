"""トークン統合ビルダー（オーケストレーター）.

複数ソース（Figma Variables / Styles 由来の JSON など）のトークンを1つの命名規則に揃え、
衝突を検出・解決して1つのトークンセットとして出力する。
名前の揺れの吸収は core 側の正規化に寄せ、ここでは「取り込み順（再現性）」
「完全重複の除去」「衝突レポートの出力」「出力ファイル作成の一連」を担う。
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from design_token_merger.adapters.json_adapter import JSON_Adapter
from design_token_merger.config import MergeOptions, load_merge_config
from design_token_merger.core.conflicts import detect_conflicts, export_conflict_reports, value_key
from design_token_merger.core.hierarchy import TokenNode, build_hierarchy, hierarchy_to_dict
from design_token_merger.core.normalize import normalize_tokens
from design_token_merger.core.overrides import load_custom_rules
from design_token_merger.core.pattern_detector import detect_pattern, pattern_from_style
from design_token_merger.core.resolve import coerce_strategy, resolve_conflicts
from design_token_merger.core.types import (
    VALID_SEPARATORS,
    CaseStyle,
    ConflictReport,
    DetectedPattern,
    NormalizationOptions,
    NormalizedToken,
    RawToken,
    ResolutionAudit,
    ResolutionResult,
    ResolutionStrategy,
)

if TYPE_CHECKING:
    from loguru import Logger


@dataclass(frozen=True)
class MergeStatistics:
    """統合結果の集計.

    Attributes:
        input_tokens: 入力トークン数
        total_tokens: 出力トークン数
        tokens_by_source: 出力トークンのソース別件数
        duplicates_removed: 除去した完全重複の件数
        conflicts: 検出した衝突レポート数
        resolved: 自動解決した衝突グループ数
        unresolved: 人手の判断待ちの件数
    """

    input_tokens: int = 0
    total_tokens: int = 0
    tokens_by_source: dict[str, int] = field(default_factory=dict)
    duplicates_removed: int = 0
    conflicts: int = 0
    resolved: int = 0
    unresolved: int = 0


@dataclass(frozen=True)
class MergeResult:
    tokens: tuple[NormalizedToken, ...]
    hierarchy: dict[str, TokenNode]
    conflicts: tuple[ConflictReport, ...]
    audit_trail: tuple[ResolutionAudit, ...]
    warnings: tuple[str, ...]
    pattern: DetectedPattern
    strategy: ResolutionStrategy
    statistics: MergeStatistics

    def as_dict(self) -> dict[str, object]:
        """JSON出力用の dict."""
        stats = self.statistics
        return {
            "pattern": {
                "separator": self.pattern.separator,
                "case": self.pattern.case.value,
                "depth": self.pattern.depth,
                "confidence": self.pattern.confidence,
                "nameType": self.pattern.name_type.value,
            },
            "strategy": self.strategy.value,
            "statistics": {
                "inputTokens": stats.input_tokens,
                "totalTokens": stats.total_tokens,
                "tokensBySource": dict(stats.tokens_by_source),
                "duplicatesRemoved": stats.duplicates_removed,
                "conflicts": stats.conflicts,
                "resolved": stats.resolved,
                "unresolved": stats.unresolved,
            },
            "tokens": [t.as_dict() for t in self.tokens],
            "hierarchy": hierarchy_to_dict(self.hierarchy),
            "conflicts": [c.as_dict() for c in self.conflicts],
            "auditTrail": [
                {
                    "conflictName": a.conflict_name,
                    "strategy": a.strategy.value,
                    "result": a.result.value,
                    "action": a.action,
                    "timestamp": a.timestamp,
                }
                for a in self.audit_trail
            ],
            "warnings": list(self.warnings),
        }


def _drop_exact_duplicates(
    tokens: Sequence[NormalizedToken],
    *,
    log: Logger,
) -> tuple[list[NormalizedToken], list[str]]:
    """同名・同型・同値・同ソースのトークンを先勝ちで1件にまとめる."""
    seen: set[tuple[str, str, str, str]] = set()
    kept: list[NormalizedToken] = []
    warnings: list[str] = []
    for token in tokens:
        key = (token.normalized_name, token.type, value_key(token.value), token.source)
        if key in seen:
            msg = f'Dropped exact duplicate "{token.normalized_name}" from {token.source} (original: {token.original_name!r})'
            warnings.append(msg)
            log.warning(msg)
            continue
        seen.add(key)
        kept.append(token)
    return kept, warnings


def _statistics(
    input_count: int,
    tokens: Sequence[NormalizedToken],
    conflicts: Sequence[ConflictReport],
    audit_trail: Sequence[ResolutionAudit],
    duplicates_removed: int,
) -> MergeStatistics:
    manual = sum(1 for a in audit_trail if a.result == ResolutionResult.MANUAL_REQUIRED)
    return MergeStatistics(
        input_tokens=input_count,
        total_tokens=len(tokens),
        tokens_by_source=dict(Counter(t.source for t in tokens)),
        duplicates_removed=duplicates_removed,
        conflicts=len(conflicts),
        resolved=len(audit_trail) - manual,
        unresolved=manual,
    )


def merge_tokens(
    raw_tokens: Iterable[RawToken],
    options: MergeOptions | None = None,
    *,
    log: Logger = logger,
    clock: Callable[[], float] = time.time,
) -> MergeResult:
    """入力トークンを正規化・衝突解決して1つのセットにまとめる.

    処理順:
        1. 命名規則の推定（options.target_pattern 未指定時）
        2. 正規化（custom_rules の適用を含む）
        3. 完全重複の除去
        4. 衝突検出
        5. 衝突解決
        6. 最終階層の構築

    Args:
        raw_tokens: 入力トークン（取り込み順がそのまま出力順の基準になる）
        options: 統合設定（None ならデフォルト）
        log: ログ出力先
        clock: 監査ログのタイムスタンプ取得関数

    Returns:
        MergeResult

    Raises:
        UnknownResolutionStrategyError: 未知の戦略名
    """
    options = options or MergeOptions()
    strategy = coerce_strategy(options.strategy)
    raw_tokens = list(raw_tokens)

    if not raw_tokens:
        msg = "No tokens to merge"
        log.warning(msg)
        return MergeResult(
            tokens=(),
            hierarchy={},
            conflicts=(),
            audit_trail=(),
            warnings=(msg,),
            pattern=options.target_pattern or DetectedPattern(),
            strategy=strategy,
            statistics=MergeStatistics(),
        )

    pattern = options.target_pattern
    if pattern is None:
        pattern = detect_pattern([t.name for t in raw_tokens], log=log)
        log.info(
            f"[Pattern] Detected separator={pattern.separator!r} case={pattern.case.value} "
            f"(confidence={pattern.confidence:.2f})"
        )
    else:
        log.info(f"[Pattern] Using configured separator={pattern.separator!r} case={pattern.case.value}")

    normalized = normalize_tokens(
        raw_tokens,
        NormalizationOptions(
            target_pattern=pattern,
            preserve_metadata=options.preserve_metadata,
            custom_rules=options.custom_rules,
            validate=options.validate,
        ),
        build_tree=False,
        log=log,
    )
    warnings = list(normalized.warnings)

    tokens, dup_warnings = _drop_exact_duplicates(normalized.tokens, log=log)
    warnings.extend(dup_warnings)

    detection = detect_conflicts(tokens, similarity_threshold=options.similarity_threshold, log=log)
    if detection.conflicts:
        warnings.append(f"Detected {len(detection.conflicts)} conflicts across {detection.unique_names} names")

    resolution = resolve_conflicts(tokens, detection.conflicts, strategy, pattern=pattern, log=log, clock=clock)
    warnings.extend(resolution.warnings)

    hierarchy = build_hierarchy(resolution.tokens, log=log)
    statistics = _statistics(
        len(raw_tokens),
        resolution.tokens,
        detection.conflicts,
        resolution.audit_trail,
        len(dup_warnings),
    )
    log.info(
        f"[Merge] {statistics.input_tokens} -> {statistics.total_tokens} tokens "
        f"(conflicts={statistics.conflicts}, resolved={statistics.resolved}, unresolved={statistics.unresolved})"
    )

    return MergeResult(
        tokens=resolution.tokens,
        hierarchy=hierarchy,
        conflicts=detection.conflicts,
        audit_trail=resolution.audit_trail,
        warnings=tuple(warnings),
        pattern=pattern,
        strategy=strategy,
        statistics=statistics,
    )


def format_merge_statistics(result: MergeResult) -> str:
    """人が読むための集計サマリ."""
    stats = result.statistics
    lines = [
        f"Total tokens: {stats.total_tokens} (input: {stats.input_tokens})",
    ]
    for source, count in sorted(stats.tokens_by_source.items()):
        lines.append(f"  {source}: {count}")
    if stats.duplicates_removed:
        lines.append(f"Exact duplicates removed: {stats.duplicates_removed}")
    lines.append(f"Conflicts detected: {stats.conflicts}")
    lines.append(f"Resolved: {stats.resolved}")
    lines.append(f"Unresolved (manual review): {stats.unresolved}")
    lines.append(f"Strategy: {result.strategy.value}")
    return "\n".join(lines)


def write_merge_output(result: MergeResult, output_path: Path | str) -> Path:
    """MergeResult を JSON ファイルに書き出す."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        # 値に datetime 等が入っていても落とさない
        json.dump(result.as_dict(), f, ensure_ascii=False, indent=2, default=str)
    return output_path


def run_merge(
    input_paths: Sequence[Path | str],
    output_path: Path | str,
    *,
    options: MergeOptions | None = None,
    report_dir: Path | str | None = None,
    overwrite: bool = False,
    log: Logger = logger,
) -> MergeResult:
    """入力ファイル群を読み込み、統合結果とレポートを出力する.

    Args:
        input_paths: トークンJSONファイル（指定順に取り込む）
        output_path: 出力JSONファイル
        options: 統合設定
        report_dir: conflicts.csv / audit_trail.csv の出力先（None なら出力しない）
        overwrite: 既存の output_path を上書きするか

    Raises:
        FileExistsError: output_path が既に存在し、overwrite=False の場合
        FileNotFoundError: 入力ファイルが存在しない場合
    """
    output_path = Path(output_path)
    if output_path.exists() and not overwrite:
        msg = f"Output file already exists: {output_path}. Use --overwrite to replace."
        raise FileExistsError(msg)

    raw_tokens: list[RawToken] = []
    for input_path in input_paths:
        tokens = JSON_Adapter(input_path).read()
        log.info(f"[Input] {input_path}: {len(tokens)} tokens")
        raw_tokens.extend(tokens)

    result = merge_tokens(raw_tokens, options, log=log)
    write_merge_output(result, output_path)
    log.info(f"[COMPLETE] Merged tokens written: {output_path}")

    if report_dir is not None:
        paths = export_conflict_reports(result.conflicts, result.audit_trail, report_dir)
        for kind, path in paths.items():
            if path is not None:
                log.info(f"[Report] {kind}: {path}")

    return result


def _options_from_args(args: argparse.Namespace) -> MergeOptions:
    """設定ファイルを読み込み、CLI 引数で上書きする."""
    options = load_merge_config(args.config) if args.config else MergeOptions()

    overrides: dict[str, object] = {}
    if args.strategy:
        overrides["strategy"] = coerce_strategy(args.strategy)
    if args.separator or args.case:
        base = options.target_pattern
        separator = args.separator or (base.separator if base else "-")
        case = args.case or (base.case.value if base else CaseStyle.KEBAB.value)
        overrides["target_pattern"] = pattern_from_style(separator, case)
    if args.custom_rules:
        rules = dict(options.custom_rules)
        rules.update(load_custom_rules(args.custom_rules).as_dict())
        overrides["custom_rules"] = rules
    if args.similarity_threshold is not None:
        overrides["similarity_threshold"] = args.similarity_threshold
    if args.no_validate:
        overrides["validate"] = False
    if args.drop_metadata:
        overrides["preserve_metadata"] = False

    if not overrides:
        return options
    return replace(options, **overrides)


def main() -> None:
    """CLI エントリポイント."""
    parser = argparse.ArgumentParser(description="Normalize design tokens and resolve naming conflicts")
    parser.add_argument(
        "--input",
        type=Path,
        action="append",
        required=True,
        help="Token JSON file (repeatable; read in the given order)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Output JSON file path",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional merge config (YAML). CLI options override it.",
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in ResolutionStrategy],
        default=None,
        help="Conflict resolution strategy (default: variables_priority)",
    )
    parser.add_argument(
        "--separator",
        choices=list(VALID_SEPARATORS),
        default=None,
        help="Target separator (default: detected from input names)",
    )
    parser.add_argument(
        "--case",
        choices=[c.value for c in CaseStyle],
        default=None,
        help="Target case style (default: detected from input names)",
    )
    parser.add_argument(
        "--custom-rules",
        type=Path,
        default=None,
        help="Custom rules JSON ({raw name: forced name})",
    )
    parser.add_argument(
        "--similarity-threshold",
        type=float,
        default=None,
        help="Near-duplicate similarity threshold (default: 0.9)",
    )
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Keep tokens with invalid paths (warn only)",
    )
    parser.add_argument(
        "--drop-metadata",
        action="store_true",
        help="Do not copy token metadata to the output",
    )
    parser.add_argument(
        "--report-dir",
        type=Path,
        default=None,
        help="Optional directory for conflicts.csv / audit_trail.csv",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite output file if it already exists",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Log level (DEBUG, INFO, WARNING, ...)",
    )

    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    result = run_merge(
        args.input,
        args.output,
        options=_options_from_args(args),
        report_dir=args.report_dir,
        overwrite=args.overwrite,
    )
    print(format_merge_statistics(result))


if __name__ == "__main__":
    main()
