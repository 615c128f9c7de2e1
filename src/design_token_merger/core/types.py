"""トークン正規化・衝突解決で扱うデータ型.

入力（RawToken）から出力（NormalizedToken + 監査ログ）までの型をここに集約します。
すべて immutable（frozen dataclass）で、各処理は新しいインスタンスを返します。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NamingShape(str, Enum):
    """単一の名前から判定される命名形状."""

    KEBAB = "kebab-case"
    CAMEL = "camelCase"
    PASCAL = "PascalCase"
    SNAKE = "snake_case"
    SCREAMING_SNAKE = "SCREAMING_SNAKE_CASE"
    SLASH = "slash/case"
    DOT = "dot.case"
    MIXED = "mixed"  # 判定不能


class CaseStyle(str, Enum):
    KEBAB = "kebab"
    CAMEL = "camel"
    PASCAL = "pascal"
    SNAKE = "snake"
    SCREAMING_SNAKE = "screaming_snake"


class NameType(str, Enum):
    """意味的な名前（primary 等）か、リテラルな名前（blue-500 等）か."""

    SEMANTIC = "semantic"
    LITERAL = "literal"
    MIXED = "mixed"


class ConflictType(str, Enum):
    DUPLICATE_NAME = "duplicate_name"  # 同名・値違い
    TYPE_MISMATCH = "type_mismatch"  # 同名・型違い
    NEAR_DUPLICATE = "near_duplicate"  # 類似名（typo等）


class ConflictSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResolutionStrategy(str, Enum):
    VARIABLES_PRIORITY = "variables_priority"
    STYLES_PRIORITY = "styles_priority"
    NEWEST = "newest"
    RENAME_BOTH = "rename_both"
    MANUAL = "manual"


class ResolutionResult(str, Enum):
    """監査ログに記録する解決結果タグ."""

    KEPT_VARIABLE = "kept_variable"
    KEPT_STYLE = "kept_style"
    KEPT_NEWEST = "kept_newest"
    KEPT_FIRST = "kept_first"  # 優先ソース/タイムスタンプが無い場合の先頭採用
    KEPT_BOTH = "kept_both"
    MANUAL_REQUIRED = "manual_required"


class NodeKind(str, Enum):
    LEAF = "leaf"
    BRANCH = "branch"
    BOTH = "both"  # prefix 位置のデフォルト値 + 子ノード


SEPARATOR_NONE = "none"
VALID_SEPARATORS = ("/", ".", "_", "-", SEPARATOR_NONE)


@dataclass(frozen=True)
class RawToken:
    """Extractor から渡される未処理トークン."""

    name: str
    value: Any
    type: str
    source: str  # "variable" / "style" など
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class DetectedPattern:
    """名前サンプルから推定した命名規則.

    Attributes:
        separator: 区切り文字（"none" は区切り無し = camel/pascal）
        case: ケーススタイル
        depth: 支配的な形状の名前における最頻セグメント数
        confidence: 支配的形状の件数 / サンプル数（0..1）
        sample_count: 支配的形状に一致した件数
        examples: 支配的形状に一致した名前（最大3件）
        shape: 支配的形状
        name_type: semantic / literal / mixed
        tallies: 形状ごとの件数
    """

    separator: str = "-"
    case: CaseStyle = CaseStyle.KEBAB
    depth: int = 1
    confidence: float = 0.0
    sample_count: int = 0
    examples: tuple[str, ...] = ()
    shape: NamingShape = NamingShape.KEBAB
    name_type: NameType = NameType.MIXED
    tallies: dict[NamingShape, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PatternDetectionResult:
    patterns: tuple[DetectedPattern, ...]
    total_names: int
    recommended: DetectedPattern


@dataclass(frozen=True)
class ConflictSource:
    """衝突レポート内の各トークン情報."""

    source: str
    value: Any
    token_type: str
    original_name: str
    normalized_name: str
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class ConflictReport:
    type: ConflictType
    name: str
    severity: ConflictSeverity
    sources: tuple[ConflictSource, ...]
    recommendation: str
    names: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, object]:
        return {
            "type": self.type.value,
            "name": self.name,
            "severity": self.severity.value,
            "names": list(self.names),
            "sources": [
                {
                    "source": s.source,
                    "value": s.value,
                    "type": s.token_type,
                    "originalName": s.original_name,
                    "normalizedName": s.normalized_name,
                    "metadata": s.metadata,
                }
                for s in self.sources
            ],
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class NormalizedToken:
    """正規化済みトークン.

    path は小文字のセグメント列。`render_name(path, pattern)` が normalized_name を再現する。
    was_conflicted 以降は衝突解決後の記録用フィールド。
    """

    original_name: str
    normalized_name: str
    path: tuple[str, ...]
    value: Any
    type: str
    source: str
    metadata: dict[str, Any] | None = None
    was_conflicted: bool = False
    resolution_strategy: ResolutionStrategy | None = None
    pre_resolution_name: str | None = None
    conflict_details: ConflictReport | None = None

    def as_dict(self) -> dict[str, object]:
        record: dict[str, object] = {
            "originalName": self.original_name,
            "normalizedName": self.normalized_name,
            "path": list(self.path),
            "value": self.value,
            "type": self.type,
            "source": self.source,
            "wasConflicted": self.was_conflicted,
        }
        if self.metadata is not None:
            record["metadata"] = self.metadata
        if self.resolution_strategy is not None:
            record["resolutionStrategy"] = self.resolution_strategy.value
        if self.pre_resolution_name is not None:
            record["preResolutionName"] = self.pre_resolution_name
        if self.conflict_details is not None:
            record["conflictDetails"] = self.conflict_details.as_dict()
        return record


@dataclass(frozen=True)
class ConflictStatistics:
    duplicate_names: int = 0
    near_duplicates: int = 0
    type_mismatches: int = 0
    low_severity: int = 0
    medium_severity: int = 0
    high_severity: int = 0


@dataclass(frozen=True)
class ConflictDetectionResult:
    conflicts: tuple[ConflictReport, ...]
    total_tokens: int
    unique_names: int
    statistics: ConflictStatistics


@dataclass(frozen=True)
class ResolutionAudit:
    """衝突グループ1件ごとの解決記録."""

    conflict_name: str
    strategy: ResolutionStrategy
    result: ResolutionResult
    action: str
    timestamp: float
    conflict: ConflictReport | None = None


@dataclass(frozen=True)
class ConflictResolutionResult:
    tokens: tuple[NormalizedToken, ...]
    conflicts: tuple[ConflictReport, ...]
    warnings: tuple[str, ...]
    strategy: ResolutionStrategy
    audit_trail: tuple[ResolutionAudit, ...]


@dataclass(frozen=True)
class NormalizationOptions:
    """normalize_tokens() の設定.

    Attributes:
        target_pattern: 正規化先の命名規則
        preserve_metadata: metadata を出力に残すか
        custom_rules: 生の名前 → 強制する名前（パターン正規化の前に適用し、必ず警告を残す）
        validate: 不正な path のトークンを除外するか（False なら警告のみで通す）
    """

    target_pattern: DetectedPattern
    preserve_metadata: bool = True
    custom_rules: dict[str, str] = field(default_factory=dict)
    validate: bool = True
