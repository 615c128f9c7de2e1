"""Unit tests for hierarchy building and flattening."""

from design_token_merger.core.hierarchy import build_hierarchy, flatten_hierarchy, hierarchy_to_dict
from design_token_merger.core.types import NodeKind, NormalizedToken, ResolutionStrategy


def _token(name: str, value: object, source: str = "variable") -> NormalizedToken:
    path = tuple(name.split("/")) if name else ()
    return NormalizedToken(
        original_name=name,
        normalized_name=name,
        path=path,
        value=value,
        type="color",
        source=source,
    )


class TestBuildHierarchy:
    """build_hierarchy() のテスト."""

    def test_nested_paths(self) -> None:
        tree = build_hierarchy([_token("color/primary", "#00f"), _token("color/secondary", "#0f0")])

        assert list(tree) == ["color"]
        color = tree["color"]
        assert color.kind == NodeKind.BRANCH
        assert color.children["primary"].kind == NodeKind.LEAF
        assert color.children["primary"].token.value == "#00f"

    def test_prefix_path_holds_value_and_children(self) -> None:
        """あるトークンの path が別トークンの prefix でもエラーにならない."""
        tree = build_hierarchy([_token("color/primary/hover", "#00a"), _token("color/primary", "#00f")])

        primary = tree["color"].children["primary"]
        assert primary.kind == NodeKind.BOTH
        assert primary.token.value == "#00f"
        assert primary.children["hover"].token.value == "#00a"

    def test_empty_path_is_skipped(self) -> None:
        tree = build_hierarchy([_token("", "#000"), _token("color", "#fff")])

        assert list(tree) == ["color"]

    def test_duplicate_path_later_wins(self) -> None:
        tree = build_hierarchy([_token("color/primary", "#00f"), _token("color/primary", "#f00", "style")])

        assert tree["color"].children["primary"].token.value == "#f00"


class TestFlattenHierarchy:
    """flatten_hierarchy() と往復のテスト."""

    def test_round_trip_preserves_tokens(self) -> None:
        tokens = [
            _token("color/primary", "#00f"),
            _token("color/primary/hover", "#00a"),
            _token("color/secondary", "#0f0"),
            _token("spacing/sm", "4px"),
            _token("spacing/md", "8px"),
            _token("radius", "2px"),
        ]

        flat = flatten_hierarchy(build_hierarchy(tokens))

        assert len(flat) == len(tokens)
        assert {t.path: t.value for t in flat} == {t.path: t.value for t in tokens}

    def test_depth_first_order(self) -> None:
        tokens = [_token("a/b/c", 1), _token("a", 2), _token("d", 3)]

        flat = flatten_hierarchy(build_hierarchy(tokens))

        assert [t.normalized_name for t in flat] == ["a", "a/b/c", "d"]

    def test_custom_separator(self) -> None:
        flat = flatten_hierarchy(build_hierarchy([_token("color/primary", "#00f")]), separator=".")

        assert flat[0].normalized_name == "color.primary"
        assert flat[0].path == ("color", "primary")

    def test_empty_tree(self) -> None:
        assert flatten_hierarchy({}) == []


class TestHierarchyToDict:
    def test_plain_dict(self) -> None:
        conflicted = NormalizedToken(
            original_name="Color/Primary",
            normalized_name="color/primary",
            path=("color", "primary"),
            value="#00f",
            type="color",
            source="variable",
            was_conflicted=True,
            resolution_strategy=ResolutionStrategy.VARIABLES_PRIORITY,
        )
        tree = build_hierarchy([conflicted, _token("color/primary/hover", "#00a")])

        data = hierarchy_to_dict(tree)

        primary = data["color"]["children"]["primary"]
        assert primary["value"] == "#00f"
        assert primary["originalName"] == "Color/Primary"
        assert primary["wasConflicted"] is True
        assert primary["resolutionStrategy"] == "variables_priority"
        assert primary["children"]["hover"] == {
            "value": "#00a",
            "type": "color",
            "source": "variable",
            "originalName": "color/primary/hover",
        }
        assert "value" not in data["color"]
