"""Design token merger exceptions.

カスタム例外クラスを定義します。
"""

from .types import ResolutionStrategy


class UnknownResolutionStrategyError(ValueError):
    """未知の衝突解決戦略が指定された場合の例外.

    入力データの問題ではなく呼び出し側の指定ミスなので、バッチ処理中でも握りつぶさない。

    Attributes:
        strategy: 指定された戦略名
    """

    def __init__(self, strategy: object) -> None:
        self.strategy = strategy
        valid = [s.value for s in ResolutionStrategy]
        super().__init__(f"Unknown resolution strategy: {strategy!r}. Valid strategies: {valid}")


class InvalidTokenRecordError(ValueError):
    """入力ソースのトークンレコードが必須項目を欠いている場合の例外.

    Attributes:
        file_path: 入力ファイルのパス
        index: レコード位置（0始まり）
        reason: 不正の理由
    """

    def __init__(self, file_path: str, index: int, reason: str) -> None:
        """例外初期化.

        Args:
            file_path: 入力ファイルのパス
            index: レコード位置
            reason: 不正の理由
        """
        self.file_path = file_path
        self.index = index
        self.reason = reason
        message = (
            f"Invalid token record #{index} in {file_path}: {reason}. "
            "Use repair() to drop malformed records."
        )
        super().__init__(message)
