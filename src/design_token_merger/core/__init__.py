"""デザイントークン統合のコア処理群.

- 命名規則の推定（名前サンプル → separator/case）
- 正規化（raw name → normalized_name / path）と階層化
- 衝突検出（duplicate_name / type_mismatch / near_duplicate）
- 衝突解決（戦略の適用と監査ログ）
"""

from .conflicts import detect_conflicts, export_conflict_reports
from .hierarchy import TokenNode, build_hierarchy, flatten_hierarchy, hierarchy_to_dict
from .normalize import (
    NormalizationResult,
    normalize_token_name,
    normalize_tokens,
    transform_token_structure,
)
from .pattern_detector import classify_name, detect_pattern, detect_patterns, pattern_from_style
from .resolve import NEWEST_FALLBACK_POLICY, resolve_conflicts

__all__ = [
    "classify_name",
    "detect_pattern",
    "detect_patterns",
    "pattern_from_style",
    "normalize_token_name",
    "transform_token_structure",
    "normalize_tokens",
    "NormalizationResult",
    "TokenNode",
    "build_hierarchy",
    "flatten_hierarchy",
    "hierarchy_to_dict",
    "detect_conflicts",
    "export_conflict_reports",
    "resolve_conflicts",
    "NEWEST_FALLBACK_POLICY",
]
