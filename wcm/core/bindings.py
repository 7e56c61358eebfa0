"""Composing and displaying Wayfire key/button binding strings."""

from enum import IntFlag
from typing import Optional


class Modifier(IntFlag):
    NONE = 0
    SHIFT = 1
    CTRL = 2
    ALT = 4
    SUPER = 8


# Order modifiers are written in: "<shift> <ctrl> <alt> <super> KEY_X"
MODIFIER_ORDER = (
    (Modifier.SHIFT, "shift"),
    (Modifier.CTRL, "ctrl"),
    (Modifier.ALT, "alt"),
    (Modifier.SUPER, "super"),
)

_DISPLAY_MODIFIERS = {name: name.capitalize() for _, name in MODIFIER_ORDER}

BUTTON_NAMES = {
    1: "BTN_LEFT",
    2: "BTN_MIDDLE",
    3: "BTN_RIGHT",
    4: "BTN_SIDE",
    5: "BTN_EXTRA",
}


def button_name(number: int) -> Optional[str]:
    """Evdev name of pointer button ``number`` (1-5), None for other buttons."""
    return BUTTON_NAMES.get(number)


def compose_binding(modifiers: Modifier, key: str = "") -> str:
    """
    Build a binding string from a modifier mask and a key or button name.
    Args:
        modifiers: The held modifiers.
        key: ``KEY_*`` or ``BTN_*`` name; empty for a modifier-only binding.
    """
    parts = [f"<{name}>" for flag, name in MODIFIER_ORDER if modifiers & flag]
    if key:
        parts.append(key)
    return " ".join(parts)


def lacks_modifier(binding: str) -> bool:
    """
    Whether a binding fires on a bare key or button.
    Such bindings shadow normal typing or clicking, so callers usually ask
    before storing one.
    """
    stripped = binding.strip()
    if not stripped or stripped.startswith("<"):
        return False
    return "KEY" in stripped or "BTN" in stripped


def describe_binding(binding: str) -> str:
    """Convert a binding string (e.g. '<super> KEY_T') into readable form."""
    modifiers = []
    key = None
    for part in binding.strip().split():
        part = part.strip("<>")
        if part.startswith("KEY_"):
            key = part[4:].upper()
        elif part.startswith("BTN_"):
            key = f"{part[4:].capitalize()} Button"
        elif part in _DISPLAY_MODIFIERS:
            modifiers.append(_DISPLAY_MODIFIERS[part])
    if not key:
        return "[Unset]"
    return " + ".join(modifiers + [key])
