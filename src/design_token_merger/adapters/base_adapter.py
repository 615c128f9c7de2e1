"""入力ソースアダプタ（基底クラス）.

Extractor が出力したトークンダンプ（JSON など）を共通インターフェースで RawToken 列に変換するための
抽象基底クラスを定義します。
"""

from abc import ABC, abstractmethod
from typing import Any

from design_token_merger.core.types import RawToken


class BaseAdapter(ABC):
    """入力ソースアダプタの基底クラス.

    全ての入力アダプタはこのクラスを継承し、
    read()/validate()/repair() を実装します。
    """

    @abstractmethod
    def read(self) -> list[RawToken]:
        """入力を読み込み、RawToken のリストに変換する.

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: データ形式が不正な場合
        """
        ...

    @abstractmethod
    def validate(self, records: list[dict[str, Any]]) -> bool:
        """レコードの整合性を検証する."""
        ...

    @abstractmethod
    def repair(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """壊れたレコードを修復（または除外）する."""
        ...
