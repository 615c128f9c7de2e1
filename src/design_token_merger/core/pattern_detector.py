"""命名規則の推定.

名前サンプルを8種類の形状（slash/dot/SCREAMING_SNAKE/snake/kebab/Pascal/camel/mixed）に
分類し、最も多い形状を目標パターン（separator + case）として推定する。

判定は決定的（deterministic）で、同数の場合は固定の形状順で先勝ちとする。
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from typing import TYPE_CHECKING

from loguru import logger

from .normalize import split_words
from .types import (
    SEPARATOR_NONE,
    VALID_SEPARATORS,
    CaseStyle,
    DetectedPattern,
    NamingShape,
    NameType,
    PatternDetectionResult,
)

if TYPE_CHECKING:
    from loguru import Logger

_SCREAMING_SNAKE = re.compile(r"^[A-Z0-9_]+$")
_SNAKE = re.compile(r"^[a-z0-9_]+$")
_KEBAB = re.compile(r"^[a-z0-9-]+$")
_PASCAL = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_CAMEL = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_HAS_LOWER = re.compile(r"[a-z]")
_HAS_UPPER = re.compile(r"[A-Z]")
_HAS_SPACE = re.compile(r"\s")

# 同数時の優先順
SHAPE_ORDER: tuple[NamingShape, ...] = (
    NamingShape.KEBAB,
    NamingShape.CAMEL,
    NamingShape.PASCAL,
    NamingShape.SNAKE,
    NamingShape.SCREAMING_SNAKE,
    NamingShape.SLASH,
    NamingShape.DOT,
    NamingShape.MIXED,
)

SHAPE_STYLES: dict[NamingShape, tuple[str, CaseStyle]] = {
    NamingShape.SLASH: ("/", CaseStyle.KEBAB),
    NamingShape.DOT: (".", CaseStyle.KEBAB),
    NamingShape.SCREAMING_SNAKE: ("_", CaseStyle.SCREAMING_SNAKE),
    NamingShape.SNAKE: ("_", CaseStyle.SNAKE),
    NamingShape.KEBAB: ("-", CaseStyle.KEBAB),
    NamingShape.PASCAL: (SEPARATOR_NONE, CaseStyle.PASCAL),
    NamingShape.CAMEL: (SEPARATOR_NONE, CaseStyle.CAMEL),
    NamingShape.MIXED: ("-", CaseStyle.KEBAB),
}

MAX_EXAMPLES = 3

_SEMANTIC_KEYWORDS = frozenset(
    {
        "primary",
        "secondary",
        "tertiary",
        "success",
        "warning",
        "error",
        "danger",
        "info",
        "brand",
        "accent",
        "neutral",
        "base",
        "surface",
        "background",
        "foreground",
        "border",
        "text",
        "heading",
        "body",
        "small",
        "large",
        "medium",
    }
)
_LITERAL_SEGMENT = re.compile(
    r"^(?:red|blue|green|yellow|purple|pink|orange|gray|grey|black|white|cyan|magenta|indigo|teal"
    r"|lime|amber|rose|sky|violet|fuchsia|emerald|slate|zinc|stone|\d+)$"
)


def classify_name(name: str) -> NamingShape:
    """単一の名前を形状に分類する（上から順に判定）."""
    if "/" in name:
        return NamingShape.SLASH
    if "." in name and not _HAS_SPACE.search(name):
        return NamingShape.DOT
    if _SCREAMING_SNAKE.match(name):
        return NamingShape.SCREAMING_SNAKE
    if _SNAKE.match(name):
        return NamingShape.SNAKE
    if _KEBAB.match(name):
        return NamingShape.KEBAB
    if _PASCAL.match(name) and _HAS_LOWER.search(name):
        return NamingShape.PASCAL
    if _CAMEL.match(name) and _HAS_UPPER.search(name):
        return NamingShape.CAMEL
    return NamingShape.MIXED


def detect_name_type(name: str) -> NameType:
    """名前が意味的（primary 等）かリテラル（blue/500 等）かを判定する."""
    semantic = 0
    literal = 0
    for segment in split_words(name):
        if segment in _SEMANTIC_KEYWORDS:
            semantic += 1
        elif _LITERAL_SEGMENT.match(segment):
            literal += 1

    if literal and not semantic:
        return NameType.LITERAL
    if semantic and literal:
        return NameType.MIXED
    # 判別材料が無い場合は semantic 扱い
    return NameType.SEMANTIC


def _aggregate_name_type(names: list[str]) -> NameType:
    counts = Counter(detect_name_type(n) for n in names)
    semantic = counts[NameType.SEMANTIC]
    literal = counts[NameType.LITERAL]
    if semantic > literal * 2:
        return NameType.SEMANTIC
    if literal > semantic * 2:
        return NameType.LITERAL
    return NameType.MIXED


def _modal_depth(names: list[str]) -> int:
    depths = Counter(len(split_words(n)) for n in names)
    # 最頻値（同数なら浅い方）
    depth, _ = max(depths.items(), key=lambda item: (item[1], -item[0]))
    return depth


def _coerce_names(values: Iterable[object]) -> list[str]:
    out: list[str] = []
    for v in values:
        if v is None:
            out.append("")
        elif isinstance(v, str):
            out.append(v)
        else:
            out.append(str(v))
    return out


def detect_patterns(names: Iterable[object], *, log: Logger = logger) -> PatternDetectionResult:
    """全形状の集計結果を件数順に返す.

    Args:
        names: 名前サンプル
        log: ログ出力先

    Returns:
        PatternDetectionResult（patterns は件数の多い順、recommended は先頭）
        空入力の場合は patterns=() / recommended=デフォルト（kebab, confidence 0）
    """
    samples = _coerce_names(names)
    if not samples:
        return PatternDetectionResult(patterns=(), total_names=0, recommended=DetectedPattern())

    by_shape: dict[NamingShape, list[str]] = {shape: [] for shape in SHAPE_ORDER}
    for name in samples:
        by_shape[classify_name(name)].append(name)

    tallies = {shape: len(members) for shape, members in by_shape.items()}
    total = len(samples)

    patterns: list[DetectedPattern] = []
    for shape in SHAPE_ORDER:
        members = by_shape[shape]
        if not members:
            continue
        separator, case = SHAPE_STYLES[shape]
        patterns.append(
            DetectedPattern(
                separator=separator,
                case=case,
                depth=_modal_depth(members),
                confidence=len(members) / total,
                sample_count=len(members),
                examples=tuple(members[:MAX_EXAMPLES]),
                shape=shape,
                name_type=_aggregate_name_type(members),
                tallies=dict(tallies),
            )
        )

    # 安定ソートなので同数は SHAPE_ORDER 順のまま
    patterns.sort(key=lambda p: p.sample_count, reverse=True)
    recommended = patterns[0]
    assert recommended.sample_count == max(tallies.values())

    log.debug(
        f"Detected naming pattern {recommended.shape.value} "
        f"({recommended.sample_count}/{total}, confidence={recommended.confidence:.2f})"
    )
    return PatternDetectionResult(patterns=tuple(patterns), total_names=total, recommended=recommended)


def detect_pattern(names: Iterable[object], *, log: Logger = logger) -> DetectedPattern:
    """支配的な命名規則を推定する.

    Examples:
        >>> p = detect_pattern(["primary/blue/500", "primary/blue/600", "secondaryRed"])
        >>> p.separator, p.case.value, p.depth, round(p.confidence, 2)
        ('/', 'kebab', 3, 0.67)
    """
    return detect_patterns(names, log=log).recommended


def pattern_from_style(separator: str, case: CaseStyle | str) -> DetectedPattern:
    """明示指定された separator/case から目標パターンを作る（検出の上書き用）.

    Raises:
        ValueError: separator または case が不正な場合
    """
    if separator not in VALID_SEPARATORS:
        msg = f"Invalid separator {separator!r}. Valid separators: {VALID_SEPARATORS}"
        raise ValueError(msg)
    try:
        case_style = CaseStyle(case)
    except ValueError as e:
        msg = f"Invalid case style {case!r}. Valid styles: {[c.value for c in CaseStyle]}"
        raise ValueError(msg) from e

    shape = next(
        (
            s
            for s, style in SHAPE_STYLES.items()
            if s != NamingShape.MIXED and style == (separator, case_style)
        ),
        NamingShape.MIXED,
    )
    return DetectedPattern(separator=separator, case=case_style, confidence=1.0, shape=shape)
