"""トークン統合用の入力アダプタ群."""

from .base_adapter import BaseAdapter
from .json_adapter import JSON_Adapter

__all__ = [
    "BaseAdapter",
    "JSON_Adapter",
]
