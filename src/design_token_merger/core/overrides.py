"""名前の手動オーバーライド（custom rules）.

自動正規化では意図通りにならない名前に対して、正規化前の名前を強制的に差し替える。
適用されたルールは normalize_tokens() が必ず警告として記録する。

使用例:
    >>> rules = load_custom_rules(Path("custom_rules.json"))
    >>> options = NormalizationOptions(target_pattern=pattern, custom_rules=rules.as_dict())
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

from loguru import logger


class CustomRules:
    """生の名前 → 強制する名前 のルール集合.

    JSON形式:
        {
            "Primary Blue (old)": "color/primary/blue",
            "BTN_BG": "button/background"
        }
    """

    def __init__(self, rules: Mapping[str, str]) -> None:
        """ルールを初期化.

        Args:
            rules: 生の名前 → 強制する名前

        Raises:
            ValueError: キー/値が文字列でない、または強制先が空の場合
        """
        self._rules = dict(rules)
        self._validate()
        # 前後空白を除いたキーでも引けるようにする（先に定義された方を優先）
        self._stripped: dict[str, str] = {}
        for key, forced_name in self._rules.items():
            self._stripped.setdefault(key.strip(), forced_name)

    def _validate(self) -> None:
        for raw_name, forced_name in self._rules.items():
            if not isinstance(raw_name, str) or not isinstance(forced_name, str):
                msg = (
                    f"Invalid custom rule {raw_name!r} -> {forced_name!r}: "
                    f"expected str -> str, got {type(raw_name).__name__} -> {type(forced_name).__name__}"
                )
                raise ValueError(msg)
            if not forced_name.strip():
                msg = f"Invalid custom rule for {raw_name!r}: target name is empty"
                raise ValueError(msg)

    def get(self, raw_name: str) -> str | None:
        """ルールがあれば強制する名前を返す（前後空白は無視して照合）."""
        if raw_name in self._rules:
            return self._rules[raw_name]
        return self._stripped.get(raw_name.strip())

    def as_dict(self) -> dict[str, str]:
        return dict(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


def load_custom_rules(rules_path: Path | str) -> CustomRules:
    """JSONファイルから custom rules を読み込む.

    Args:
        rules_path: ルールJSONファイルのパス

    Returns:
        CustomRules

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ValueError: JSON形式が不正、またはルールが不正な場合
    """
    rules_path = Path(rules_path)

    if not rules_path.exists():
        raise FileNotFoundError(f"Custom rules file not found: {rules_path}")

    try:
        with open(rules_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in custom rules file: {rules_path}"
        raise ValueError(msg) from e

    if not isinstance(data, dict):
        msg = f"Custom rules file must contain a JSON object, got {type(data)}"
        raise ValueError(msg)

    rules = CustomRules(data)
    logger.info(f"Loaded {len(rules)} custom rules from {rules_path}")
    return rules
