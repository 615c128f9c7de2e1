"""衝突検出と衝突レポートの出力.

- 同一 normalized_name グループ内の値違い（duplicate_name）・型違い（type_mismatch）
- 異なる normalized_name 同士の類似名（near_duplicate、typo 検出）
- 検出結果と解決ログの CSV 出力
"""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl
from loguru import logger
from rapidfuzz.distance import Levenshtein

from .types import (
    ConflictDetectionResult,
    ConflictReport,
    ConflictSeverity,
    ConflictSource,
    ConflictStatistics,
    ConflictType,
    NormalizedToken,
    ResolutionAudit,
)

if TYPE_CHECKING:
    from loguru import Logger

DEFAULT_SIMILARITY_THRESHOLD = 0.9

SAME_VALUES_RECOMMENDATION = "Same values from different sources. Safe to use either one."
TYPE_MISMATCH_RECOMMENDATION = "These tokens have different types. Review and decide which type is correct."


def value_key(value: object) -> str:
    """値の同一性判定用キー（dict のキー順に依存しない）."""
    try:
        return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    except TypeError:
        # キー型が混在する dict など
        return repr(value)


def similarity(a: str, b: str) -> float:
    """正規化 Levenshtein 類似度（1 - 距離 / 長い方の長さ）."""
    return Levenshtein.normalized_similarity(a, b)


def _to_source(token: NormalizedToken) -> ConflictSource:
    return ConflictSource(
        source=token.source,
        value=token.value,
        token_type=token.type,
        original_name=token.original_name,
        normalized_name=token.normalized_name,
        metadata=token.metadata,
    )


def _analyze_group(name: str, members: Sequence[NormalizedToken]) -> list[ConflictReport]:
    """同名グループの衝突を分類する（完全重複なら空リスト）."""
    sources = tuple(_to_source(t) for t in members)
    reports: list[ConflictReport] = []

    origins = {t.source for t in members}
    if len({value_key(t.value) for t in members}) > 1:
        if {"variable", "style"} <= origins:
            recommendation = (
                "Values differ. Variables are the recommended source; "
                "consider the 'variables_priority' strategy."
            )
        else:
            recommendation = (
                "Values differ between tokens of the same source kind. "
                "This may indicate a normalization issue."
            )
        reports.append(
            ConflictReport(
                type=ConflictType.DUPLICATE_NAME,
                name=name,
                severity=ConflictSeverity.HIGH,
                sources=sources,
                recommendation=recommendation,
                names=(name,),
            )
        )
    elif len(origins) > 1:
        reports.append(
            ConflictReport(
                type=ConflictType.DUPLICATE_NAME,
                name=name,
                severity=ConflictSeverity.LOW,
                sources=sources,
                recommendation=SAME_VALUES_RECOMMENDATION,
                names=(name,),
            )
        )

    if len({t.type for t in members}) > 1:
        reports.append(
            ConflictReport(
                type=ConflictType.TYPE_MISMATCH,
                name=name,
                severity=ConflictSeverity.HIGH,
                sources=sources,
                recommendation=TYPE_MISMATCH_RECOMMENDATION,
                names=(name,),
            )
        )

    return reports


def _find_near_duplicates(
    groups: dict[str, list[NormalizedToken]],
    threshold: float,
) -> list[ConflictReport]:
    """異なる名前同士の類似ペアを探す.

    長さの差だけで閾値を超えられないペアは距離計算を省略する
    （距離 >= 長さの差 のため、結果は総当たりと同じ）。
    """
    names = list(groups)
    order = {name: i for i, name in enumerate(names)}
    by_length = sorted(names, key=lambda n: (len(n), order[n]))

    pairs: list[tuple[int, int, float]] = []
    for i, short in enumerate(by_length):
        if not short:
            continue
        for long in by_length[i + 1 :]:
            if len(long) - len(short) >= (1.0 - threshold) * len(long):
                break
            score = similarity(short, long)
            if score > threshold and short != long:
                a, b = sorted((short, long), key=order.__getitem__)
                pairs.append((order[a], order[b], score))

    reports: list[ConflictReport] = []
    for ia, ib, score in sorted(pairs):
        a, b = names[ia], names[ib]
        reports.append(
            ConflictReport(
                type=ConflictType.NEAR_DUPLICATE,
                name=f"{a} / {b}",
                severity=ConflictSeverity.LOW,
                sources=tuple(_to_source(t) for t in (*groups[a], *groups[b])),
                recommendation=(
                    f"These names are very similar ({round(score * 100)}% match). Check if one is a typo."
                ),
                names=(a, b),
            )
        )
    return reports


def _statistics(conflicts: Sequence[ConflictReport]) -> ConflictStatistics:
    by_type = Counter(c.type for c in conflicts)
    by_severity = Counter(c.severity for c in conflicts)
    return ConflictStatistics(
        duplicate_names=by_type[ConflictType.DUPLICATE_NAME],
        near_duplicates=by_type[ConflictType.NEAR_DUPLICATE],
        type_mismatches=by_type[ConflictType.TYPE_MISMATCH],
        low_severity=by_severity[ConflictSeverity.LOW],
        medium_severity=by_severity[ConflictSeverity.MEDIUM],
        high_severity=by_severity[ConflictSeverity.HIGH],
    )


def detect_conflicts(
    tokens: Iterable[NormalizedToken],
    *,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    log: Logger = logger,
) -> ConflictDetectionResult:
    """normalized_name でグループ化して衝突を検出する.

    Args:
        tokens: 正規化済みトークン
        similarity_threshold: near_duplicate と判定する類似度（これを超えたら報告）
        log: ログ出力先

    Returns:
        ConflictDetectionResult（conflicts / total_tokens / unique_names / statistics）

    Examples:
        >>> detect_conflicts([]).unique_names
        0
    """
    groups: dict[str, list[NormalizedToken]] = {}
    total = 0
    for token in tokens:
        total += 1
        groups.setdefault(token.normalized_name, []).append(token)

    conflicts: list[ConflictReport] = []
    for name, members in groups.items():
        if len(members) > 1:
            conflicts.extend(_analyze_group(name, members))

    conflicts.extend(_find_near_duplicates(groups, similarity_threshold))

    statistics = _statistics(conflicts)
    if conflicts:
        log.info(
            f"Detected {len(conflicts)} conflicts in {total} tokens "
            f"(duplicate={statistics.duplicate_names}, type_mismatch={statistics.type_mismatches}, "
            f"near_duplicate={statistics.near_duplicates})"
        )

    return ConflictDetectionResult(
        conflicts=tuple(conflicts),
        total_tokens=total,
        unique_names=len(groups),
        statistics=statistics,
    )


def _conflicts_frame(conflicts: Sequence[ConflictReport]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "type": [c.type.value for c in conflicts],
            "name": [c.name for c in conflicts],
            "severity": [c.severity.value for c in conflicts],
            "sources": [",".join(s.source for s in c.sources) for c in conflicts],
            "values": [" | ".join(value_key(s.value) for s in c.sources) for c in conflicts],
            "recommendation": [c.recommendation for c in conflicts],
        },
        schema={
            "type": pl.String,
            "name": pl.String,
            "severity": pl.String,
            "sources": pl.String,
            "values": pl.String,
            "recommendation": pl.String,
        },
    )


def _audit_frame(audit_trail: Sequence[ResolutionAudit]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "conflict_name": [a.conflict_name for a in audit_trail],
            "strategy": [a.strategy.value for a in audit_trail],
            "result": [a.result.value for a in audit_trail],
            "action": [a.action for a in audit_trail],
            "timestamp": [a.timestamp for a in audit_trail],
        },
        schema={
            "conflict_name": pl.String,
            "strategy": pl.String,
            "result": pl.String,
            "action": pl.String,
            "timestamp": pl.Float64,
        },
    )


def export_conflict_reports(
    conflicts: Sequence[ConflictReport],
    audit_trail: Sequence[ResolutionAudit],
    output_dir: Path | str,
) -> dict[str, Path | None]:
    """衝突レポートと解決ログを CSV として出力する.

    Args:
        conflicts: detect_conflicts() の conflicts
        audit_trail: resolve_conflicts() の audit_trail
        output_dir: 出力ディレクトリ（無ければ作成）

    Returns:
        出力したCSVのパス（対象が無ければ None）
        - "conflicts": conflicts.csv
        - "audit_trail": audit_trail.csv
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    result_paths: dict[str, Path | None] = {}

    conflicts_path = output_dir / "conflicts.csv"
    if conflicts:
        _conflicts_frame(conflicts).write_csv(conflicts_path)
        result_paths["conflicts"] = conflicts_path
    else:
        result_paths["conflicts"] = None

    audit_path = output_dir / "audit_trail.csv"
    if audit_trail:
        _audit_frame(audit_trail).write_csv(audit_path)
        result_paths["audit_trail"] = audit_path
    else:
        result_paths["audit_trail"] = None

    return result_paths
