import math
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any, Iterator, List, Optional, Tuple, Union

from wcm.core.values import OptionValue, ValueType, zero_value

CORE_PLUGINS = frozenset({"core", "input", "workarounds"})

DEFAULT_CATEGORY = "Uncategorized"

# Order matters: it is the order categories are listed in. Plugins with a
# category outside this list are shown under the last one.
CATEGORIES = (
    "General",
    "Accessibility",
    "Desktop",
    "Shell",
    "Effects",
    "Window Management",
    "Utility",
    "Other",
)

GENERAL_GROUP = "General"


class OptionKind(Enum):
    UNDEFINED = "undefined"
    INT = "int"
    BOOL = "bool"
    DOUBLE = "double"
    STRING = "string"
    KEY = "key"
    BUTTON = "button"
    ACTIVATOR = "activator"
    GESTURE = "gesture"
    COLOR = "color"
    ANIMATION = "animation"
    GROUP = "group"
    SUBGROUP = "subgroup"
    DYNAMIC_LIST = "dynamic-list"

    @property
    def value_type(self) -> Optional[ValueType]:
        """The tag of values stored for this kind, None for structural kinds."""
        return _KIND_VALUE_TYPES.get(self)

    @property
    def is_structural(self) -> bool:
        return self in (OptionKind.GROUP, OptionKind.SUBGROUP)

    @property
    def is_numeric(self) -> bool:
        return self in (OptionKind.INT, OptionKind.DOUBLE)


_KIND_VALUE_TYPES = {
    OptionKind.INT: ValueType.INT,
    OptionKind.BOOL: ValueType.BOOL,
    OptionKind.DOUBLE: ValueType.DOUBLE,
    OptionKind.STRING: ValueType.STRING,
    OptionKind.ANIMATION: ValueType.STRING,
    OptionKind.KEY: ValueType.BINDING,
    OptionKind.BUTTON: ValueType.BINDING,
    OptionKind.ACTIVATOR: ValueType.BINDING,
    OptionKind.GESTURE: ValueType.BINDING,
    OptionKind.COLOR: ValueType.COLOR,
}

# Schema "type" attribute -> kind. Group/subgroup come from element names.
SCHEMA_TYPES = {
    kind.value: kind
    for kind in OptionKind
    if kind not in (OptionKind.UNDEFINED, OptionKind.GROUP, OptionKind.SUBGROUP)
}


class Hint(IntFlag):
    NONE = 0
    FILE = 1
    DIRECTORY = 2


class Origin(Enum):
    """Which configuration store owns a plugin's section."""

    PRIMARY = "wayfire"
    SHELL = "wf-shell"


@dataclass(frozen=True)
class CompoundField:
    """One column of a dynamic-list option: the key prefix and its value tag."""

    prefix: str
    value_type: ValueType
    kind: OptionKind = OptionKind.STRING


@dataclass(eq=False)
class Option:
    """
    One node of a plugin's option tree: either a configurable field or a
    structural node (group, subgroup, dynamic list).
    ``parent`` and ``children`` are indices into the owning ``OptionTree``.
    """

    name: str
    kind: OptionKind
    display_name: str = ""
    tooltip: str = ""
    default_value: Optional[OptionValue] = None
    minimum: float = -math.inf
    maximum: float = math.inf
    precision: Optional[float] = None
    hints: Hint = Hint.NONE
    labeled_choices: List[Tuple[str, Any]] = field(default_factory=list)
    entries: List[CompoundField] = field(default_factory=list)
    type_hint: str = ""
    hidden: bool = False
    dynamic: bool = False
    index: int = -1
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.name
        value_type = self.kind.value_type
        if self.default_value is None and value_type is not None:
            self.default_value = zero_value(value_type)

    @property
    def value_type(self) -> Optional[ValueType]:
        return self.kind.value_type

    @property
    def has_choices(self) -> bool:
        return bool(self.labeled_choices)

    def clamp(self, value: OptionValue) -> OptionValue:
        """Clamp a numeric value into the declared range; other values pass through."""
        if value.type is ValueType.INT:
            low = self.minimum if math.isfinite(self.minimum) else value.data
            high = self.maximum if math.isfinite(self.maximum) else value.data
            return OptionValue.of_int(int(max(low, min(high, value.data))))
        if value.type is ValueType.DOUBLE:
            return OptionValue.of_double(max(self.minimum, min(self.maximum, value.data)))
        return value

    def in_range(self, value: OptionValue) -> bool:
        if value.type in (ValueType.INT, ValueType.DOUBLE):
            return self.minimum <= value.data <= self.maximum
        return True


class OptionTree:
    """
    Arena holding every option node of one plugin.
    Nodes refer to each other by index. Removing a node tombstones it and
    its subtree; indices of the remaining nodes never change.
    """

    def __init__(self) -> None:
        self._nodes: List[Optional[Option]] = []
        self.roots: List[int] = []

    def __len__(self) -> int:
        return sum(1 for node in self._nodes if node is not None)

    def __iter__(self) -> Iterator[Option]:
        return self.walk()

    def add(self, option: Option, parent: Optional[Union[int, Option]] = None) -> int:
        parent_index = self._index_of(parent) if parent is not None else None
        if parent_index is not None:
            self.get(parent_index)
        option.index = len(self._nodes)
        option.parent = parent_index
        option.children = []
        self._nodes.append(option)
        if parent_index is None:
            self.roots.append(option.index)
        else:
            self._nodes[parent_index].children.append(option.index)
        return option.index

    def get(self, index: int) -> Option:
        if index < 0 or index >= len(self._nodes) or self._nodes[index] is None:
            raise KeyError(f"No live option at index {index}")
        return self._nodes[index]

    def contains(self, index: int) -> bool:
        return 0 <= index < len(self._nodes) and self._nodes[index] is not None

    def children(self, node: Union[int, Option]) -> List[Option]:
        return [self._nodes[i] for i in self.get(self._index_of(node)).children]

    def parent(self, node: Union[int, Option]) -> Optional[Option]:
        option = self.get(self._index_of(node))
        if option.parent is None:
            return None
        return self.get(option.parent)

    def remove(self, node: Union[int, Option]) -> None:
        index = self._index_of(node)
        option = self.get(index)
        if option.parent is None:
            self.roots = [i for i in self.roots if i != index]
        elif self.contains(option.parent):
            siblings = self._nodes[option.parent].children
            siblings[:] = [i for i in siblings if i != index]
        stack = [index]
        while stack:
            current = stack.pop()
            dead = self._nodes[current]
            if dead is None:
                continue
            stack.extend(dead.children)
            dead.children = []
            dead.index = -1
            self._nodes[current] = None

    def clear_children(self, node: Union[int, Option]) -> None:
        for child in list(self.get(self._index_of(node)).children):
            self.remove(child)

    def walk(self, start: Optional[Union[int, Option]] = None) -> Iterator[Option]:
        """Depth-first, document-order traversal of live nodes."""
        if start is None:
            stack = list(reversed(self.roots))
        else:
            stack = [self._index_of(start)]
        while stack:
            option = self._nodes[stack.pop()]
            if option is None:
                continue
            yield option
            stack.extend(reversed(option.children))

    def find(self, name: str) -> Optional[Option]:
        """First non-structural option called ``name``."""
        for option in self.walk():
            if option.name == name and not option.kind.is_structural:
                return option
        return None

    def qualified_name(self, node: Union[int, Option]) -> str:
        option = self.get(self._index_of(node))
        parts = [option.name]
        while option.parent is not None:
            option = self.get(option.parent)
            parts.append(option.name)
        return "/".join(reversed(parts))

    @staticmethod
    def _index_of(node: Union[int, Option]) -> int:
        return node.index if isinstance(node, Option) else node


@dataclass(eq=False)
class Plugin:
    """The root record of one schema document."""

    name: str = ""
    display_name: str = ""
    tooltip: str = ""
    category: str = DEFAULT_CATEGORY
    origin: Origin = Origin.PRIMARY
    enabled: bool = False
    tree: OptionTree = field(default_factory=OptionTree)

    @property
    def groups(self) -> List[Option]:
        return [self.tree.get(i) for i in self.tree.roots]

    @property
    def is_core_plugin(self) -> bool:
        return self.name in CORE_PLUGINS

    @property
    def toggleable(self) -> bool:
        return not self.is_core_plugin and self.origin is Origin.PRIMARY

    def options(self) -> Iterator[Option]:
        """Every value-carrying option and dynamic list, in document order."""
        for option in self.tree.walk():
            if option.kind.is_structural or option.dynamic:
                continue
            yield option

    def find_option(self, name: str) -> Optional[Option]:
        return self.tree.find(name)

    def dynamic_lists(self) -> List[Option]:
        return [o for o in self.options() if o.kind is OptionKind.DYNAMIC_LIST]

    def __repr__(self) -> str:
        return f"Plugin(name={self.name!r}, origin={self.origin.value}, enabled={self.enabled})"
