"""トークン名の正規化（raw name → normalized_name / path）.

設計方針:
    - 名前はまず小文字の単語列（path）に分解し、その単語列を目標パターンで描画する
    - 階層配置には描画後の文字列ではなく path（単語列）を使う
    - 不正な名前でもバッチ全体は止めない（警告 + validate 時は除外）
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from .hierarchy import TokenNode, build_hierarchy
from .overrides import CustomRules
from .types import (
    SEPARATOR_NONE,
    CaseStyle,
    DetectedPattern,
    NormalizationOptions,
    NormalizedToken,
    RawToken,
)

if TYPE_CHECKING:
    from loguru import Logger

# "/", ".", "_", "-", 空白、その他の記号はすべて境界（リテラルとしては残さない）
_EXPLICIT_BOUNDARY = re.compile(r"[\W_]+")
_LOWER_TO_UPPER = re.compile(r"(?<=[a-z])(?=[A-Z])")
_LETTER_DIGIT = re.compile(r"(?<=[A-Za-z])(?=[0-9])|(?<=[0-9])(?=[A-Za-z])")
_VALID_SEGMENT = re.compile(r"^[^\W_]+$")


@dataclass(frozen=True)
class NormalizationResult:
    tokens: tuple[NormalizedToken, ...]
    hierarchy: dict[str, TokenNode]
    warnings: tuple[str, ...]
    pattern: DetectedPattern


def split_words(raw: str) -> list[str]:
    """名前を小文字の単語列に分解する.

    Examples:
        >>> split_words("Primary/Blue/500")
        ['primary', 'blue', '500']
        >>> split_words("primaryBlue500")
        ['primary', 'blue', '500']
        >>> split_words("PRIMARY_BLUE")
        ['primary', 'blue']
        >>> split_words("")
        []
    """
    s = _EXPLICIT_BOUNDARY.sub(" ", raw)
    s = _LOWER_TO_UPPER.sub(" ", s)
    s = _LETTER_DIGIT.sub(" ", s)
    return [word.lower() for word in s.split()]


def _capitalize(word: str) -> str:
    # 数字のみのセグメントはそのまま
    return word[:1].upper() + word[1:]


def render_name(words: Sequence[str], pattern: DetectedPattern) -> str:
    """単語列を目標パターンで描画する.

    separator が "none" の場合は pascal なら全単語、それ以外は先頭以外を大文字化（camel）。
    区切り付きの pascal/camel も同じ大文字化を区切りで連結する。
    """
    if not words:
        return ""

    if pattern.case == CaseStyle.SCREAMING_SNAKE:
        cased = [w.upper() for w in words]
    elif pattern.case == CaseStyle.PASCAL:
        cased = [_capitalize(w) for w in words]
    elif pattern.case == CaseStyle.CAMEL or pattern.separator == SEPARATOR_NONE:
        cased = [words[0], *(_capitalize(w) for w in words[1:])]
    else:
        cased = list(words)

    if pattern.separator == SEPARATOR_NONE:
        return "".join(cased)
    return pattern.separator.join(cased)


def normalize_token_name(raw: str, target_pattern: DetectedPattern) -> str:
    """生の名前を目標パターンへ書き換える.

    Examples:
        >>> from design_token_merger.core.types import DetectedPattern
        >>> normalize_token_name("Primary/Blue/500", DetectedPattern(separator="-"))
        'primary-blue-500'
    """
    return render_name(split_words(raw), target_pattern)


def transform_token_structure(raw: str, pattern: DetectedPattern | None = None) -> list[str]:
    """生の名前を階層配置用の path（単語列）に分解する.

    分解は目標パターンに依存しない。pattern は normalize_token_name と引数を揃えるために受け取る。
    """
    _ = pattern
    return split_words(raw)


def validate_path(path: Sequence[str]) -> bool:
    """path が空でなく、全セグメントが英数字のみであるか."""
    if not path:
        return False
    return all(_VALID_SEGMENT.match(segment) for segment in path)


def _coerce_name(name: object) -> str:
    if name is None:
        return ""
    if isinstance(name, str):
        return name.strip()
    return str(name).strip()


def normalize_tokens(
    raw_tokens: Iterable[RawToken],
    options: NormalizationOptions,
    *,
    build_tree: bool = True,
    log: Logger = logger,
) -> NormalizationResult:
    """RawToken 群を正規化し、フラットリストと階層を返す.

    Args:
        raw_tokens: Extractor からの入力トークン
        options: 正規化設定（目標パターン、custom_rules 等）
        build_tree: 階層も構築するか（衝突解決前で不要なら False、hierarchy は空になる）
        log: ログ出力先（bind 済みの logger を渡せる）

    Returns:
        NormalizationResult（tokens / hierarchy / warnings / pattern）
    """
    pattern = options.target_pattern
    rules = CustomRules(options.custom_rules)
    warnings: list[str] = []
    tokens: list[NormalizedToken] = []
    total = 0

    for token in raw_tokens:
        total += 1
        raw_name = _coerce_name(token.name)
        name = raw_name

        forced = rules.get(raw_name)
        if forced is not None:
            msg = f"Applied custom rule: {raw_name} -> {forced}"
            warnings.append(msg)
            log.warning(msg)
            name = forced

        path = tuple(split_words(name))
        if not validate_path(path):
            msg = f"Invalid path for token: {raw_name!r} -> {'/'.join(path)!r}"
            warnings.append(msg)
            log.warning(msg)
            if options.validate:
                continue

        tokens.append(
            NormalizedToken(
                original_name=raw_name,
                normalized_name=render_name(path, pattern),
                path=path,
                value=token.value,
                type=token.type,
                source=token.source,
                metadata=token.metadata if options.preserve_metadata else None,
            )
        )

    hierarchy = build_hierarchy(tokens, log=log) if build_tree else {}

    log.info(
        f"Normalized {len(tokens)}/{total} tokens "
        f"(separator={pattern.separator!r}, case={pattern.case.value})"
    )
    return NormalizationResult(
        tokens=tuple(tokens),
        hierarchy=hierarchy,
        warnings=tuple(warnings),
        pattern=pattern,
    )
