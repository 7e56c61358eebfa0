"""
Dynamic lists: ordered collections stored as flat keys named ``prefix + slot``.

A list has no index key of its own. Its entries are whatever keys of the
plugin section carry the family prefix, e.g. ``command_0``, ``command_3`` and
a hand-written ``command_terminal``. Numeric slots may have gaps; a new
entry takes the lowest free slot. Named entries are kept as they are and
never renumbered.

Command entries additionally own one binding key whose prefix selects how
the binding fires (``binding_``, ``repeatable_binding_``, ``always_binding_``).

Every structural change (add, remove, relocate) is saved and followed by a
full reload of the stores, so the returned entries always match the file.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from wcm.core.options import Option, OptionKind, Plugin
from wcm.core.values import OptionValue
from wcm.shared.config_store import Section

if TYPE_CHECKING:
    from wcm.core.context import AppContext


class BindingKind(Enum):
    REGULAR = "binding_"
    REPEATABLE = "repeatable_binding_"
    ALWAYS = "always_binding_"

    @property
    def prefix(self) -> str:
        return self.value

    def key(self, token: str) -> str:
        return self.value + token


# Precedence when more than one binding key exists for a slot.
ACTIVE_KIND_ORDER = (BindingKind.ALWAYS, BindingKind.REPEATABLE, BindingKind.REGULAR)


@dataclass(frozen=True)
class ListFamily:
    """Key naming of one dynamic-list option."""

    option_name: str
    slot_prefix: str
    discovery_prefix: Optional[str] = None
    placeholder: str = ""
    value_kind: OptionKind = OptionKind.STRING
    has_companions: bool = False
    companion_placeholder: str = "<binding>"
    first_slot: int = 0

    @property
    def prefix(self) -> str:
        """Prefix a key must carry to be considered part of the list."""
        return self.slot_prefix if self.discovery_prefix is None else self.discovery_prefix

    def slot_key(self, slot: int) -> str:
        return f"{self.slot_prefix}{slot}"

    def slot_of(self, key: str) -> Optional[int]:
        """The numeric slot of ``key``, None for named entries."""
        if not key.startswith(self.slot_prefix):
            return None
        rest = key[len(self.slot_prefix) :]
        if rest and rest.isascii() and rest.isdigit():
            return int(rest)
        return None

    def token_of(self, key: str) -> str:
        return key[len(self.prefix) :]

    def is_companion(self, key: str) -> bool:
        return self.has_companions and any(key.startswith(kind.prefix) for kind in BindingKind)


FAMILIES: Dict[str, ListFamily] = {
    family.option_name: family
    for family in (
        ListFamily(
            option_name="autostart",
            slot_prefix="autostart",
            discovery_prefix="",
            placeholder="<command>",
        ),
        ListFamily(
            option_name="bindings",
            slot_prefix="command_",
            placeholder="<command>",
            has_companions=True,
        ),
        ListFamily(
            option_name="workspace_bindings",
            slot_prefix="binding_",
            value_kind=OptionKind.ACTIVATOR,
            first_slot=1,
        ),
        ListFamily(
            option_name="workspace_bindings_win",
            slot_prefix="with_win_",
            value_kind=OptionKind.ACTIVATOR,
            first_slot=1,
        ),
        ListFamily(
            option_name="bindings_win",
            slot_prefix="send_win_",
            value_kind=OptionKind.ACTIVATOR,
            first_slot=1,
        ),
    )
}


@dataclass(frozen=True)
class ListEntry:
    key: str
    token: str
    value: str
    slot: Optional[int] = None
    binding_kind: Optional[BindingKind] = None
    binding_key: Optional[str] = None
    binding: Optional[str] = None
    option_index: int = -1

    @property
    def is_named(self) -> bool:
        return self.slot is None


class DynamicListManager:
    """Discovers and edits the entries of dynamic-list options."""

    def __init__(self, context: "AppContext"):
        self.context = context
        self.logger = context.logger

    def family_for(self, option: Option) -> Optional[ListFamily]:
        if option.kind is not OptionKind.DYNAMIC_LIST:
            return None
        return FAMILIES.get(option.name)

    def _locate(
        self, plugin: Plugin, option: Option
    ) -> Tuple[Optional[Section], Optional[ListFamily]]:
        family = self.family_for(option)
        if family is None:
            return None, None
        section = self.context.config.section(plugin)
        if section is None:
            self.logger.debug(f"No config section for {plugin.name}, list {option.name} is empty")
            return None, None
        return section, family

    def _discover(self, section: Section, family: ListFamily) -> List[ListEntry]:
        numbered: List[ListEntry] = []
        named: List[ListEntry] = []
        for stored in section.registered_options():
            key = stored.name
            if stored.schema or not key.startswith(family.prefix) or family.is_companion(key):
                continue
            token = family.token_of(key)
            binding_kind = binding_key = binding = None
            if family.has_companions:
                binding_kind = BindingKind.REGULAR
                for kind in ACTIVE_KIND_ORDER:
                    companion = section.get_option(kind.key(token))
                    if companion is not None:
                        binding_kind = kind
                        binding = companion.value
                        break
                binding_key = binding_kind.key(token)
            entry = ListEntry(
                key=key,
                token=token,
                value=stored.value,
                slot=family.slot_of(key),
                binding_kind=binding_kind,
                binding_key=binding_key,
                binding=binding,
            )
            (named if entry.is_named else numbered).append(entry)
        numbered.sort(key=lambda e: e.slot)
        return numbered + named

    def _mirror(
        self, plugin: Plugin, option: Option, family: ListFamily, entries: List[ListEntry]
    ) -> List[ListEntry]:
        """Replace the synthetic children of ``option`` with one per entry."""
        tree = plugin.tree
        tree.clear_children(option)
        mirrored = []
        for entry in entries:
            child = Option(
                name=entry.key,
                kind=family.value_kind,
                default_value=OptionValue(family.value_kind.value_type, entry.value),
                dynamic=True,
            )
            index = tree.add(child, option)
            if entry.binding_key is not None:
                tree.add(
                    Option(
                        name=entry.binding_key,
                        kind=OptionKind.ACTIVATOR,
                        default_value=OptionValue.of_binding(entry.binding or ""),
                        dynamic=True,
                    ),
                    index,
                )
            mirrored.append(replace(entry, option_index=index))
        return mirrored

    def entries(self, plugin: Plugin, option: Option) -> List[ListEntry]:
        """
        The current entries of a dynamic list, numeric slots first.
        The entries are also mirrored into the option tree as children of
        ``option``.
        Returns:
            An empty list if the list is unknown or its section is unavailable.
        """
        section, family = self._locate(plugin, option)
        if section is None:
            return []
        return self._mirror(plugin, option, family, self._discover(section, family))

    def next_slot(self, plugin: Plugin, option: Option) -> Optional[int]:
        """Lowest unused slot at or above the family's first slot."""
        section, family = self._locate(plugin, option)
        if section is None:
            return None
        used = {entry.slot for entry in self._discover(section, family) if not entry.is_named}
        slot = family.first_slot
        while slot in used or section.get_option(family.slot_key(slot)) is not None:
            slot += 1
        return slot

    def _find(self, plugin: Plugin, option: Option, key: str) -> Optional[ListEntry]:
        for entry in self.entries(plugin, option):
            if entry.key == key:
                return entry
        return None

    def _commit(self, plugin: Plugin) -> None:
        self.context.save_config(plugin)
        self.context.reload()

    def add(
        self, plugin: Plugin, option: Option, kind: BindingKind = BindingKind.REGULAR
    ) -> Optional[ListEntry]:
        """
        Append an entry at the lowest free slot, filled with placeholders.
        Args:
            kind: Binding kind of the new entry, for lists with binding keys.
        Returns:
            The new entry as read back after the reload, or None if the list
            is unavailable.
        """
        section, family = self._locate(plugin, option)
        if section is None:
            return None
        slot = self.next_slot(plugin, option)
        key = family.slot_key(slot)
        section.register_string(key, family.placeholder)
        if family.has_companions:
            token = family.token_of(key)
            for stale in BindingKind:
                section.unregister(stale.key(token))
            section.register_string(kind.key(token), family.companion_placeholder)
        self.logger.info(f"Added {plugin.name}/{key}")
        self._commit(plugin)
        return self._find(plugin, option, key)

    def remove(self, plugin: Plugin, option: Option, entry: ListEntry) -> bool:
        """Delete an entry together with every binding key of its slot."""
        section, family = self._locate(plugin, option)
        if section is None:
            return False
        removed = section.unregister(entry.key)
        if family.has_companions:
            for kind in BindingKind:
                section.unregister(kind.key(entry.token))
        if not removed:
            self.logger.warning(f"{plugin.name}/{entry.key} is not registered")
            return False
        self.logger.info(f"Removed {plugin.name}/{entry.key}")
        self._commit(plugin)
        return True

    def set_binding_kind(
        self, plugin: Plugin, option: Option, entry: ListEntry, kind: BindingKind
    ) -> Optional[ListEntry]:
        """
        Move the binding of a command entry under another binding kind.
        The binding string is carried over to the new key.
        """
        section, family = self._locate(plugin, option)
        if section is None or not family.has_companions:
            return None
        if entry.binding_kind is kind:
            return entry
        old = section.get_option(entry.binding_key) if entry.binding_key else None
        value = old.value if old is not None else family.companion_placeholder
        if entry.binding_key:
            section.unregister(entry.binding_key)
        new_key = kind.key(entry.token)
        section.register_string(new_key, value)
        self.context.save_config(plugin)
        return replace(entry, binding_kind=kind, binding_key=new_key, binding=value)

    def relocate(
        self, plugin: Plugin, option: Option, entry: ListEntry, slot: int
    ) -> Optional[ListEntry]:
        """
        Move an entry to another free slot, keeping its value.
        Only lists without binding keys can be relocated.
        Returns:
            The moved entry, or None if the slot is taken or out of range.
        """
        section, family = self._locate(plugin, option)
        if section is None or family.has_companions:
            return None
        if slot < family.first_slot:
            return None
        new_key = family.slot_key(slot)
        if new_key == entry.key:
            return entry
        if section.get_option(new_key) is not None:
            self.logger.warning(f"Slot {slot} of {plugin.name}/{option.name} is already in use")
            return None
        stored = section.get_option(entry.key)
        value = stored.value if stored is not None else entry.value
        section.unregister(entry.key)
        section.register_string(new_key, value)
        self._commit(plugin)
        return self._find(plugin, option, new_key)

    def set_value(self, plugin: Plugin, entry: ListEntry, text: str) -> bool:
        return self.context.config.write(plugin, entry.key, text)

    def set_binding(self, plugin: Plugin, entry: ListEntry, binding: str) -> bool:
        if entry.binding_key is None:
            return False
        return self.context.config.write(plugin, entry.binding_key, binding)
