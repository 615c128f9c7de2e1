"""統合処理の設定（merge.yml）の読み込み.

設定例:
    strategy: variables_priority
    target_pattern:
      separator: "/"
      case: kebab
    preserve_metadata: true
    validate: true
    similarity_threshold: 0.9
    custom_rules_path: custom_rules.json   # 設定ファイルからの相対パス
    custom_rules:
      "Old Primary": "color/primary"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from loguru import logger

from design_token_merger.core.conflicts import DEFAULT_SIMILARITY_THRESHOLD
from design_token_merger.core.overrides import CustomRules, load_custom_rules
from design_token_merger.core.pattern_detector import pattern_from_style
from design_token_merger.core.resolve import coerce_strategy
from design_token_merger.core.types import DetectedPattern, ResolutionStrategy

_KNOWN_KEYS = {
    "strategy",
    "target_pattern",
    "preserve_metadata",
    "validate",
    "similarity_threshold",
    "custom_rules",
    "custom_rules_path",
}


@dataclass(frozen=True)
class MergeOptions:
    """merge_tokens() の設定.

    Attributes:
        strategy: 衝突解決戦略
        target_pattern: 目標パターン（None なら入力名から推定）
        preserve_metadata: metadata を出力に残すか
        validate: 不正な名前のトークンを除外するか
        custom_rules: 生の名前 → 強制する名前
        similarity_threshold: near_duplicate 判定の類似度
    """

    strategy: ResolutionStrategy = ResolutionStrategy.VARIABLES_PRIORITY
    target_pattern: DetectedPattern | None = None
    preserve_metadata: bool = True
    validate: bool = True
    custom_rules: dict[str, str] = field(default_factory=dict)
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD


def _require_bool(data: dict, key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        msg = f"Config '{key}' must be a boolean, got {value!r}"
        raise ValueError(msg)
    return value


def _parse_threshold(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"Config 'similarity_threshold' must be a number, got {value!r}"
        raise ValueError(msg)
    if not 0.0 < float(value) <= 1.0:
        msg = f"Config 'similarity_threshold' must be in (0, 1], got {value}"
        raise ValueError(msg)
    return float(value)


def parse_merge_config(data: dict, base_dir: Path | None = None) -> MergeOptions:
    """設定 dict を MergeOptions に変換する.

    Args:
        data: YAML から読み込んだ dict
        base_dir: custom_rules_path の相対パス解決に使うディレクトリ

    Raises:
        ValueError: 未知のキー、または不正な値
    """
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        msg = f"Unknown config keys: {sorted(unknown)}. Valid keys: {sorted(_KNOWN_KEYS)}"
        raise ValueError(msg)

    strategy = coerce_strategy(data.get("strategy", ResolutionStrategy.VARIABLES_PRIORITY))

    target_pattern = None
    pattern_cfg = data.get("target_pattern")
    if pattern_cfg is not None:
        if not isinstance(pattern_cfg, dict) or "separator" not in pattern_cfg:
            msg = f"Config 'target_pattern' must be a mapping with 'separator' and 'case', got {pattern_cfg!r}"
            raise ValueError(msg)
        target_pattern = pattern_from_style(str(pattern_cfg["separator"]), pattern_cfg.get("case", "kebab"))

    rules: dict[str, str] = {}
    rules_path = data.get("custom_rules_path")
    if rules_path is not None:
        path = Path(rules_path)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        rules.update(load_custom_rules(path).as_dict())
    inline_rules = data.get("custom_rules")
    if inline_rules is not None:
        if not isinstance(inline_rules, dict):
            msg = f"Config 'custom_rules' must be a mapping, got {type(inline_rules)}"
            raise ValueError(msg)
        # インライン指定はファイル指定より優先
        rules.update(CustomRules(inline_rules).as_dict())

    return MergeOptions(
        strategy=strategy,
        target_pattern=target_pattern,
        preserve_metadata=_require_bool(data, "preserve_metadata", True),
        validate=_require_bool(data, "validate", True),
        custom_rules=rules,
        similarity_threshold=_parse_threshold(data.get("similarity_threshold", DEFAULT_SIMILARITY_THRESHOLD)),
    )


def load_merge_config(config_path: Path | str) -> MergeOptions:
    """merge.yml を読み込む.

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ValueError: YAML が不正、または設定値が不正な場合
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in config file: {config_path}"
        raise ValueError(msg) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"Config file must contain a mapping, got {type(data)}"
        raise ValueError(msg)

    options = parse_merge_config(data, base_dir=config_path.parent)
    logger.info(f"Loaded merge config from {config_path} (strategy={options.strategy.value})")
    return options
