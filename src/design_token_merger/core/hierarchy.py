"""path による階層構造の構築と平坦化.

1つのノードは値（leaf）と子ノード（branch）の両方を持てる。
例: "color/primary" と "color/primary/hover" が共存する場合、"primary" ノードは
デフォルト値と子ノードの両方を持つ（NodeKind.BOTH）。
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from loguru import logger

from .types import NodeKind, NormalizedToken

if TYPE_CHECKING:
    from loguru import Logger


@dataclass
class TokenNode:
    token: NormalizedToken | None = None
    children: dict[str, TokenNode] = field(default_factory=dict)

    @property
    def kind(self) -> NodeKind:
        if self.token is not None and self.children:
            return NodeKind.BOTH
        if self.token is not None:
            return NodeKind.LEAF
        return NodeKind.BRANCH


def build_hierarchy(
    tokens: Iterable[NormalizedToken],
    *,
    log: Logger = logger,
) -> dict[str, TokenNode]:
    """フラットなトークン列からセグメントをキーとする木を作る.

    Args:
        tokens: 正規化済みトークン
        log: ログ出力先

    Returns:
        ルート直下のセグメント → TokenNode

    Note:
        path が空のトークンは配置できないためスキップする。
        同一 path が複数ある場合は後勝ち（警告ログのみ）。
    """
    root: dict[str, TokenNode] = {}

    for token in tokens:
        if not token.path:
            log.warning(f"Skipped token with empty path: {token.original_name!r}")
            continue

        children = root
        for segment in token.path[:-1]:
            children = children.setdefault(segment, TokenNode()).children

        node = children.setdefault(token.path[-1], TokenNode())
        if node.token is not None:
            log.warning(
                f"Duplicate path {'/'.join(token.path)!r}: "
                f"{node.token.original_name!r} replaced by {token.original_name!r}"
            )
        node.token = token

    return root


def _walk(tree: dict[str, TokenNode], prefix: tuple[str, ...]) -> Iterator[tuple[tuple[str, ...], TokenNode]]:
    for segment, node in tree.items():
        path = (*prefix, segment)
        yield path, node
        yield from _walk(node.children, path)


def flatten_hierarchy(tree: dict[str, TokenNode], separator: str = "/") -> list[NormalizedToken]:
    """木を深さ優先でたどり、値を持つノードをトークンに戻す.

    normalized_name は path を separator で連結した文字列になる。
    """
    return [
        replace(node.token, path=path, normalized_name=separator.join(path))
        for path, node in _walk(tree, ())
        if node.token is not None
    ]


def hierarchy_to_dict(tree: dict[str, TokenNode]) -> dict[str, dict[str, object]]:
    """下流（JSON出力など）向けに素の dict へ変換する."""
    out: dict[str, dict[str, object]] = {}
    for segment, node in tree.items():
        entry: dict[str, object] = {}
        token = node.token
        if token is not None:
            entry["value"] = token.value
            entry["type"] = token.type
            entry["source"] = token.source
            entry["originalName"] = token.original_name
            if token.was_conflicted:
                entry["wasConflicted"] = True
                if token.resolution_strategy is not None:
                    entry["resolutionStrategy"] = token.resolution_strategy.value
            if token.metadata is not None:
                entry["metadata"] = token.metadata
        if node.children:
            entry["children"] = hierarchy_to_dict(node.children)
        out[segment] = entry
    return out
