"""Tests for the option tree arena and plugin records."""

import pytest

from wcm.core.options import (
    Option,
    OptionKind,
    OptionTree,
    Origin,
    Plugin,
)
from wcm.core.values import OptionValue, ValueType


@pytest.fixture
def tree() -> OptionTree:
    tree = OptionTree()
    general = tree.add(Option(name="General", kind=OptionKind.GROUP))
    tree.add(Option(name="delay", kind=OptionKind.INT), general)
    sub = tree.add(Option(name="Colors", kind=OptionKind.SUBGROUP), general)
    tree.add(Option(name="tint", kind=OptionKind.COLOR), sub)
    tree.add(Option(name="other", kind=OptionKind.GROUP))
    return tree


class TestOptionTree:
    def test_walk_is_document_order(self, tree: OptionTree) -> None:
        assert [o.name for o in tree.walk()] == ["General", "delay", "Colors", "tint", "other"]

    def test_parent_and_children(self, tree: OptionTree) -> None:
        tint = tree.find("tint")
        assert tree.parent(tint).name == "Colors"
        assert [c.name for c in tree.children(0)] == ["delay", "Colors"]
        assert tree.qualified_name(tint) == "General/Colors/tint"

    def test_remove_tombstones_subtree(self, tree: OptionTree) -> None:
        colors = tree.children(0)[1]
        tint_index = tree.find("tint").index
        tree.remove(colors)
        assert not tree.contains(tint_index)
        assert [c.name for c in tree.children(0)] == ["delay"]
        with pytest.raises(KeyError):
            tree.get(tint_index)
        assert len(tree) == 3

    def test_indices_survive_removal(self, tree: OptionTree) -> None:
        other = tree.roots[-1]
        tree.remove(tree.roots[0])
        assert tree.get(other).name == "other"
        assert tree.roots == [other]

    def test_clear_children(self, tree: OptionTree) -> None:
        tree.clear_children(0)
        assert tree.children(0) == []
        assert tree.find("delay") is None

    def test_find_skips_structural_nodes(self, tree: OptionTree) -> None:
        assert tree.find("General") is None


class TestOption:
    def test_defaults_from_kind(self) -> None:
        option = Option(name="speed", kind=OptionKind.DOUBLE)
        assert option.default_value == OptionValue.of_double(0.0)
        assert option.display_name == "speed"

    def test_structural_kinds_have_no_value(self) -> None:
        assert Option(name="g", kind=OptionKind.GROUP).default_value is None

    def test_binding_kinds(self) -> None:
        for kind in (OptionKind.KEY, OptionKind.BUTTON, OptionKind.ACTIVATOR, OptionKind.GESTURE):
            assert kind.value_type is ValueType.BINDING

    def test_clamp(self) -> None:
        option = Option(name="delay", kind=OptionKind.INT, minimum=0, maximum=10)
        assert option.clamp(OptionValue.of_int(11)) == OptionValue.of_int(10)
        assert option.clamp(OptionValue.of_int(-3)) == OptionValue.of_int(0)
        assert not option.in_range(OptionValue.of_int(11))

    def test_clamp_unbounded(self) -> None:
        option = Option(name="n", kind=OptionKind.INT)
        assert option.clamp(OptionValue.of_int(10**9)).data == 10**9


class TestPlugin:
    @pytest.mark.parametrize("name", ["core", "input", "workarounds"])
    def test_core_plugins_not_toggleable(self, name: str) -> None:
        assert not Plugin(name=name).toggleable

    def test_shell_plugins_not_toggleable(self) -> None:
        assert not Plugin(name="panel", origin=Origin.SHELL).toggleable

    def test_regular_plugin(self) -> None:
        plugin = Plugin(name="expo")
        assert plugin.toggleable
        assert plugin.category == "Uncategorized"
