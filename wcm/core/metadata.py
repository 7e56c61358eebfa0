"""
Builds ``Plugin`` records and their option trees from Wayfire XML metadata.

Each metadata document describes one plugin:

    <wayfire>
      <plugin name="move">
        <_short>Move</_short>
        <category>Window Management</category>
        <option name="activate" type="button">...</option>
        <group>
          <_short>Snap</_short>
          <option .../>
          <subgroup><_short>Edges</_short><option .../></subgroup>
        </group>
      </plugin>
    </wayfire>

Problems inside a document (unknown option types, annotations on the wrong
kind of option) are logged as warnings and never stop the rest of the
document from loading.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from xml.etree import ElementTree as ET

from wcm.core.errors import MetadataDirectoryError
from wcm.core.options import (
    GENERAL_GROUP,
    SCHEMA_TYPES,
    CompoundField,
    Hint,
    Option,
    OptionKind,
    Origin,
    Plugin,
)
from wcm.core.values import OptionValue, ValueType, parse_color

logger = logging.getLogger(__name__)

RECOGNIZED_ROOTS = {origin.value: origin for origin in Origin}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(
    r"^\s*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


def _atoi(text: str) -> Tuple[int, bool]:
    """C ``atoi``: the leading integer of ``text``, or 0 when there is none."""
    match = _LEADING_INT.match(text or "")
    if not match:
        return 0, False
    return int(match.group(1)), True


def _atof(text: str) -> Tuple[float, bool]:
    """C ``atof``: the leading float of ``text``, or 0.0 when there is none."""
    match = _LEADING_FLOAT.match(text or "")
    if not match:
        return 0.0, False
    return float(match.group(1)), True


def _text(element: ET.Element) -> Optional[str]:
    """Element text, or None for an empty element."""
    if element.text is None:
        return None
    return element.text.strip()


def _warn(plugin_name: str, message: str) -> None:
    logger.warning(f"[{plugin_name}] {message}")


def _parse_default(option: Option, text: str, plugin_name: str) -> None:
    kind = option.kind
    if kind is OptionKind.INT:
        value, ok = _atoi(text)
        if not ok:
            _warn(plugin_name, f"invalid int default '{text}' for {option.name}")
        option.default_value = OptionValue.of_int(value)
    elif kind is OptionKind.BOOL:
        if text == "true":
            option.default_value = OptionValue.of_bool(True)
            return
        if text == "false":
            option.default_value = OptionValue.of_bool(False)
            return
        value, _ = _atoi(text)
        _warn(
            plugin_name,
            f"bool default '{text}' for {option.name} is not true/false, read as {value}",
        )
        if value not in (0, 1):
            _warn(plugin_name, f"unknown bool option default for {option.name}")
        option.default_value = OptionValue.of_bool(value != 0)
    elif kind is OptionKind.DOUBLE:
        value, ok = _atof(text)
        if not ok:
            _warn(plugin_name, f"invalid double default '{text}' for {option.name}")
        option.default_value = OptionValue.of_double(value)
    elif kind is OptionKind.COLOR:
        color = parse_color(text)
        if color is None:
            _warn(plugin_name, f"invalid color default '{text}' for {option.name}")
            return
        option.default_value = OptionValue(ValueType.COLOR, color)
    elif kind.value_type is not None:
        option.default_value = OptionValue(kind.value_type, text)


def _parse_labels(option: Option, desc: ET.Element, plugin_name: str) -> None:
    if option.kind not in (OptionKind.INT, OptionKind.STRING):
        _warn(plugin_name, f"desc defined for option type !int && !string ({option.name})")
        return
    raw_value = None
    label = None
    for child in desc:
        if child.tag == "value":
            raw_value = _text(child) or ""
        elif child.tag == "_name":
            label = _text(child) or ""
    if raw_value is None:
        return
    if option.kind is OptionKind.INT:
        stored, _ = _atoi(raw_value)
    else:
        stored = raw_value
    option.labeled_choices.append((label if label is not None else raw_value, stored))
    if (
        option.kind is OptionKind.STRING
        and len(option.labeled_choices) == 1
        and option.default_value.data == ""
    ):
        option.default_value = OptionValue.of_string(stored)


def _parse_entry(option: Option, entry: ET.Element, plugin_name: str) -> None:
    type_name = entry.get("type", "string")
    kind = SCHEMA_TYPES.get(type_name)
    if kind is None or kind.value_type is None:
        _warn(plugin_name, f"unknown entry type '{type_name}' in {option.name}")
        kind = OptionKind.STRING
    option.entries.append(
        CompoundField(prefix=entry.get("prefix", ""), value_type=kind.value_type, kind=kind)
    )


def parse_option(element: ET.Element, plugin_name: str = "") -> Option:
    """Build a single option from an ``<option>`` element."""
    name = element.get("name")
    if not name:
        _warn(plugin_name, "option without a name")
        name = ""
    type_name = element.get("type")
    if type_name is None:
        _warn(plugin_name, f"no option type found for {name}")
        kind = OptionKind.UNDEFINED
    else:
        kind = SCHEMA_TYPES.get(type_name, OptionKind.UNDEFINED)
        if kind is OptionKind.UNDEFINED:
            _warn(plugin_name, f"unknown option type '{type_name}' for {name}")
    option = Option(name=name, kind=kind)
    option.hidden = element.get("hidden", "false").lower() == "true"
    option.type_hint = element.get("type-hint", "")
    if kind is OptionKind.DOUBLE:
        option.precision = 0.1

    for child in element:
        tag = child.tag
        text = _text(child)
        if tag == "_short":
            if text:
                option.display_name = text
        elif tag == "_long":
            option.tooltip = text or ""
        elif tag == "default":
            if text is None:
                continue
            _parse_default(option, text, plugin_name)
        elif tag in ("min", "max"):
            if text is None:
                continue
            if not kind.is_numeric:
                _warn(plugin_name, f"{tag} defined for option type !int && !double ({name})")
            bound, ok = _atof(text)
            if not ok:
                _warn(plugin_name, f"invalid {tag} '{text}' for {name}")
            if tag == "min":
                option.minimum = bound
            else:
                option.maximum = bound
        elif tag == "precision":
            if text is None:
                continue
            if kind is not OptionKind.DOUBLE:
                _warn(plugin_name, f"precision defined for option type !double ({name})")
            option.precision, _ = _atof(text)
        elif tag == "hint":
            if kind is not OptionKind.STRING:
                _warn(plugin_name, f"hint defined for option type !string ({name})")
            if text == "file":
                option.hints |= Hint.FILE
            elif text == "directory":
                option.hints |= Hint.DIRECTORY
            else:
                _warn(plugin_name, f"unknown hint '{text}' for {name}")
        elif tag == "desc":
            _parse_labels(option, child, plugin_name)
        elif tag == "entry":
            if kind is OptionKind.DYNAMIC_LIST:
                _parse_entry(option, child, plugin_name)
            else:
                _warn(plugin_name, f"entry defined for option type !dynamic-list ({name})")
    return option


@dataclass(frozen=True)
class _WalkState:
    group: Optional[int] = None
    subgroup: Optional[int] = None


class _PluginBuilder:
    def __init__(self, origin: Origin):
        self.plugin = Plugin(origin=origin)
        self.general: Optional[int] = None

    @property
    def label(self) -> str:
        return self.plugin.name or "?"

    def container_for_option(self, state: _WalkState) -> int:
        if state.subgroup is not None:
            return state.subgroup
        if state.group is not None:
            return state.group
        if self.general is None:
            self.general = self.plugin.tree.add(
                Option(name=GENERAL_GROUP, kind=OptionKind.GROUP)
            )
        return self.general

    def set_short(self, text: str, state: _WalkState) -> None:
        target = state.subgroup if state.subgroup is not None else state.group
        if target is None:
            self.plugin.display_name = text
            return
        node = self.plugin.tree.get(target)
        node.name = text
        node.display_name = text

    def walk(self, root: ET.Element) -> None:
        stack: List[Tuple[ET.Element, _WalkState]] = [
            (child, _WalkState()) for child in reversed(list(root))
        ]
        while stack:
            element, state = stack.pop()
            tag = element.tag
            text = _text(element)
            descend_state: Optional[_WalkState] = state

            if tag == "plugin":
                name = element.get("name")
                if name:
                    self.plugin.name = name
            elif tag == "_short":
                if text:
                    self.set_short(text, state)
                descend_state = None
            elif tag == "_long":
                if state.group is None:
                    self.plugin.tooltip = text or ""
                descend_state = None
            elif tag == "category":
                if text and state.group is None:
                    self.plugin.category = text
                descend_state = None
            elif tag == "option":
                self.plugin.tree.add(
                    parse_option(element, self.label), self.container_for_option(state)
                )
                descend_state = None
            elif tag == "group":
                index = self.plugin.tree.add(Option(name="", kind=OptionKind.GROUP))
                descend_state = _WalkState(group=index)
            elif tag == "subgroup":
                if state.group is None:
                    # Its options join the plugin level; its label names nothing.
                    logger.debug(f"[{self.label}] subgroup outside of a group flattened")
                    stack.extend(
                        (child, state)
                        for child in reversed(list(element))
                        if child.tag != "_short"
                    )
                    descend_state = None
                else:
                    index = self.plugin.tree.add(
                        Option(name="", kind=OptionKind.SUBGROUP), state.group
                    )
                    descend_state = _WalkState(group=state.group, subgroup=index)

            if descend_state is not None:
                stack.extend((child, descend_state) for child in reversed(list(element)))


def parse_document(root: ET.Element) -> Optional[Plugin]:
    """
    Build a plugin from the root element of a metadata document.
    Returns:
        The plugin, or None when the root element is not a recognized schema
        root or the document declares no plugin name.
    """
    origin = RECOGNIZED_ROOTS.get(root.tag)
    if origin is None:
        logger.debug(f"Skipping document with root element <{root.tag}>")
        return None
    builder = _PluginBuilder(origin)
    builder.walk(root)
    plugin = builder.plugin
    if not plugin.name:
        logger.warning(f"<{root.tag}> document without a plugin name skipped")
        return None
    if not plugin.display_name:
        plugin.display_name = plugin.name
    return plugin


def parse_string(text: str) -> Optional[Plugin]:
    return parse_document(ET.fromstring(text))


def parse_file(path: str) -> Optional[Plugin]:
    """Parse one metadata file; unreadable or malformed files yield None."""
    try:
        tree = ET.parse(path)
    except (ET.ParseError, OSError) as e:
        logger.error(f"Could not parse file {path}: {e}")
        return None
    plugin = parse_document(tree.getroot())
    if plugin is not None:
        logger.debug(f"Loading {plugin.origin.value} plugin: {plugin.name}")
    return plugin


def load_plugins(directories: Iterable[str], required: bool = True) -> List[Plugin]:
    """
    Parse every ``*.xml`` file in the given schema directories.
    Directories are consulted in order; the first one defining a plugin name
    wins and later definitions are ignored.
    Args:
        directories: Schema directories, highest priority first.
        required: Raise if none of the directories can be opened.
    Returns:
        The plugins in load order.
    Raises:
        MetadataDirectoryError: ``required`` is set and no directory could be opened.
    """
    directories = [d for d in directories if d]
    plugins: List[Plugin] = []
    seen = set()
    opened = 0
    for directory in directories:
        try:
            filenames = sorted(os.listdir(directory))
        except OSError as e:
            logger.warning(f"Could not open metadata directory {directory}: {e}")
            continue
        opened += 1
        for filename in filenames:
            if len(filename) <= 4 or not filename.endswith(".xml"):
                continue
            plugin = parse_file(os.path.join(directory, filename))
            if plugin is None:
                continue
            if plugin.name in seen:
                logger.debug(f"Plugin {plugin.name} already loaded, ignoring {directory}/{filename}")
                continue
            seen.add(plugin.name)
            plugins.append(plugin)
    if required and opened == 0:
        raise MetadataDirectoryError(directories)
    return plugins
