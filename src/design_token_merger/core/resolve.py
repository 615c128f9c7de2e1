"""衝突解決（戦略の適用と監査ログ）.

衝突グループ（同一 normalized_name）ごとに戦略を1つ適用する。

- variables_priority / styles_priority / newest: 1件を残し、他は出力から除外
- rename_both: 全件を残し、ソース由来の単語を path に追加して目標パターンで改名
- manual: 全件を残し、人手の判断待ちとしてマーク

near_duplicate は名前が異なるトークン同士の指摘なので、戦略に関わらずトークンを削除せず
manual 扱い（レビュー待ち）として記録する。
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from loguru import logger

from .exceptions import UnknownResolutionStrategyError
from .normalize import render_name, split_words
from .pattern_detector import detect_pattern
from .types import (
    ConflictReport,
    ConflictResolutionResult,
    ConflictType,
    DetectedPattern,
    NormalizedToken,
    ResolutionAudit,
    ResolutionResult,
    ResolutionStrategy,
)

if TYPE_CHECKING:
    from loguru import Logger

# newest でタイムスタンプを持つメンバーが1件も無い場合は先頭メンバーを残す
NEWEST_FALLBACK_POLICY = "first_member"
TIMESTAMP_KEY = "timestamp"

SOURCE_SUFFIXES = {"variable": "var", "style": "style"}

_PRIORITY_SOURCES = {
    ResolutionStrategy.VARIABLES_PRIORITY: ("variable", ResolutionResult.KEPT_VARIABLE),
    ResolutionStrategy.STYLES_PRIORITY: ("style", ResolutionResult.KEPT_STYLE),
}

_ACTIONS = {
    ResolutionResult.KEPT_VARIABLE: 'Kept Variable source for "{name}"',
    ResolutionResult.KEPT_STYLE: 'Kept Style source for "{name}"',
    ResolutionResult.KEPT_NEWEST: 'Kept newest token for "{name}"',
    ResolutionResult.KEPT_FIRST: 'Kept first token for "{name}" (no preferred member)',
    ResolutionResult.KEPT_BOTH: 'Renamed all tokens with source suffixes for "{name}"',
    ResolutionResult.MANUAL_REQUIRED: 'Marked "{name}" for manual resolution',
}


def coerce_strategy(strategy: ResolutionStrategy | str) -> ResolutionStrategy:
    """文字列の戦略名を ResolutionStrategy に変換する.

    Raises:
        UnknownResolutionStrategyError: 未知の戦略名
    """
    if isinstance(strategy, ResolutionStrategy):
        return strategy
    try:
        return ResolutionStrategy(strategy)
    except ValueError as e:
        raise UnknownResolutionStrategyError(strategy) from e


def token_timestamp(token: NormalizedToken) -> float | None:
    """metadata["timestamp"] を epoch 秒に変換する（解釈できなければ None）."""
    raw = (token.metadata or {}).get(TIMESTAMP_KEY)
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, str):
        text = raw.strip()
        try:
            return float(text)
        except ValueError:
            pass
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _source_words(source: str) -> tuple[str, ...]:
    """rename_both で path 末尾に追加するソース由来の単語列."""
    if source in SOURCE_SUFFIXES:
        return (SOURCE_SUFFIXES[source],)
    return tuple(split_words(source)) or ("token",)


def _mark(token: NormalizedToken, strategy: ResolutionStrategy, report: ConflictReport) -> NormalizedToken:
    return replace(token, was_conflicted=True, resolution_strategy=strategy, conflict_details=report)


def _pick_winner(
    members: Sequence[NormalizedToken],
    strategy: ResolutionStrategy,
) -> tuple[NormalizedToken, ResolutionResult]:
    if strategy == ResolutionStrategy.NEWEST:
        stamped: list[tuple[float, int]] = []
        for i, token in enumerate(members):
            ts = token_timestamp(token)
            if ts is not None:
                stamped.append((ts, i))
        if not stamped:
            return members[0], ResolutionResult.KEPT_FIRST
        # 同時刻なら先に現れた方
        _, index = max(stamped, key=lambda item: (item[0], -item[1]))
        return members[index], ResolutionResult.KEPT_NEWEST

    preferred, result = _PRIORITY_SOURCES[strategy]
    for token in members:
        if token.source == preferred:
            return token, result
    return members[0], ResolutionResult.KEPT_FIRST


def _rename_members(
    members: Sequence[NormalizedToken],
    report: ConflictReport,
    taken: set[str],
    pattern: DetectedPattern,
) -> list[NormalizedToken]:
    """ソース由来の単語を path 末尾に追加し、目標パターンで名前を描画し直す.

    例: color/primary（variable）→ path (color, primary, var) → "color/primary/var"
    既存名・割り当て済みの名前と衝突した場合は数字の単語を追加する（.../var/2）。
    """
    renamed: list[NormalizedToken] = []
    for token in members:
        base = (*token.path, *_source_words(token.source))
        path = base
        candidate = render_name(path, pattern)
        n = 2
        while candidate in taken:
            path = (*base, str(n))
            candidate = render_name(path, pattern)
            n += 1
        taken.add(candidate)

        renamed.append(
            replace(
                _mark(token, ResolutionStrategy.RENAME_BOTH, report),
                pre_resolution_name=token.normalized_name,
                normalized_name=candidate,
                path=path,
            )
        )
    return renamed


def _resolve_group(
    members: Sequence[NormalizedToken],
    report: ConflictReport,
    strategy: ResolutionStrategy,
    taken: set[str],
    pattern: DetectedPattern,
) -> tuple[list[NormalizedToken], ResolutionResult]:
    assert members, f"empty conflict group: {report.name}"

    if strategy == ResolutionStrategy.RENAME_BOTH:
        return _rename_members(members, report, taken, pattern), ResolutionResult.KEPT_BOTH
    if strategy == ResolutionStrategy.MANUAL:
        return [_mark(t, strategy, report) for t in members], ResolutionResult.MANUAL_REQUIRED

    winner, result = _pick_winner(members, strategy)
    return [_mark(winner, strategy, report)], result


def resolve_conflicts(
    tokens: Iterable[NormalizedToken],
    conflicts: Sequence[ConflictReport],
    strategy: ResolutionStrategy | str = ResolutionStrategy.VARIABLES_PRIORITY,
    *,
    pattern: DetectedPattern | None = None,
    log: Logger = logger,
    clock: Callable[[], float] = time.time,
) -> ConflictResolutionResult:
    """検出済みの衝突に戦略を適用する.

    Args:
        tokens: 正規化済みトークン（detect_conflicts() に渡したもの）
        conflicts: detect_conflicts() の conflicts
        strategy: 解決戦略
        pattern: 正規化に使った目標パターン（rename_both の改名に使う。None なら名前から推定）
        log: ログ出力先
        clock: 監査ログのタイムスタンプ取得関数

    Returns:
        ConflictResolutionResult（tokens / conflicts / warnings / strategy / audit_trail）
        衝突に関係しないトークンはそのまま、元の順序で出力される。
        解決後のトークンはグループ先頭メンバーの位置に出力される。

    Raises:
        UnknownResolutionStrategyError: 未知の戦略名
    """
    strategy = coerce_strategy(strategy)
    tokens = list(tokens)

    group_reports: dict[str, ConflictReport] = {}
    near_reports: list[ConflictReport] = []
    for report in conflicts:
        if report.type == ConflictType.NEAR_DUPLICATE:
            near_reports.append(report)
        else:
            # 同名の duplicate_name / type_mismatch は1グループとして扱う（先頭レポートを記録）
            group_reports.setdefault(report.name, report)

    members_by_name: dict[str, list[NormalizedToken]] = {}
    for token in tokens:
        if token.normalized_name in group_reports:
            members_by_name.setdefault(token.normalized_name, []).append(token)

    unmatched = [name for name in group_reports if name not in members_by_name]
    if pattern is None and strategy == ResolutionStrategy.RENAME_BOTH and members_by_name:
        # 改名の描画規則は正規化済みの名前から推定する
        pattern = detect_pattern([t.normalized_name for t in tokens], log=log)
    taken = {t.normalized_name for t in tokens}
    warnings: list[str] = []
    audit_trail: list[ResolutionAudit] = []
    output: list[NormalizedToken] = []

    for token in tokens:
        name = token.normalized_name
        if name not in group_reports:
            output.append(token)
            continue
        members = members_by_name.pop(name, None)
        if members is None:
            # グループは先頭メンバーの位置で出力済み
            continue

        report = group_reports[name]
        resolved, result = _resolve_group(members, report, strategy, taken, pattern or DetectedPattern())
        output.extend(resolved)

        action = _ACTIONS[result].format(name=name)
        audit_trail.append(
            ResolutionAudit(
                conflict_name=name,
                strategy=strategy,
                result=result,
                action=action,
                timestamp=clock(),
                conflict=report,
            )
        )
        if result == ResolutionResult.KEPT_FIRST and strategy == ResolutionStrategy.NEWEST:
            msg = f'No timestamps for "{name}"; kept first member (policy: {NEWEST_FALLBACK_POLICY})'
        else:
            msg = f'Resolved conflict for "{name}" using {strategy.value} strategy ({result.value})'
        warnings.append(msg)
        log.debug(msg)

    for name in unmatched:
        msg = f'No tokens found for conflict "{name}"; nothing to resolve'
        warnings.append(msg)
        log.warning(msg)

    for report in near_reports:
        implicated = set(report.names)
        for i, token in enumerate(output):
            if token.was_conflicted:
                continue
            if token.normalized_name in implicated:
                output[i] = _mark(token, ResolutionStrategy.MANUAL, report)
        audit_trail.append(
            ResolutionAudit(
                conflict_name=report.name,
                strategy=strategy,
                result=ResolutionResult.MANUAL_REQUIRED,
                action=f'Deferred near-duplicate names "{report.name}" for manual review',
                timestamp=clock(),
                conflict=report,
            )
        )
        msg = f'Near-duplicate names "{report.name}" deferred for manual review'
        warnings.append(msg)
        log.debug(msg)

    if audit_trail:
        manual = sum(1 for a in audit_trail if a.result == ResolutionResult.MANUAL_REQUIRED)
        log.info(
            f"Resolved {len(audit_trail) - manual} conflict groups with {strategy.value} "
            f"({manual} pending manual review); {len(tokens)} -> {len(output)} tokens"
        )

    return ConflictResolutionResult(
        tokens=tuple(output),
        conflicts=tuple(conflicts),
        warnings=tuple(warnings),
        strategy=strategy,
        audit_trail=tuple(audit_trail),
    )
