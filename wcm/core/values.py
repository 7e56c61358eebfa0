"""
Typed option values and their string codecs.

Every value in the configuration store is a string. This module converts
between that string form and an ``OptionValue``: a tag (``ValueType``) plus
a payload whose Python type is fixed by the tag. The tag of an option is
decided when its schema is parsed and never changes afterwards.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional, Union


class ValueType(Enum):
    INT = "int"
    BOOL = "bool"
    DOUBLE = "double"
    STRING = "string"
    COLOR = "color"
    BINDING = "binding"


class Color(NamedTuple):
    r: float
    g: float
    b: float
    a: float = 1.0


Payload = Union[int, bool, float, str, Color]

_PAYLOAD_TYPES: Dict[ValueType, tuple] = {
    ValueType.INT: (int,),
    ValueType.BOOL: (bool,),
    ValueType.DOUBLE: (float, int),
    ValueType.STRING: (str,),
    ValueType.COLOR: (Color,),
    ValueType.BINDING: (str,),
}

_TRUE_TOKENS = ("true", "1", "yes", "on")
_FALSE_TOKENS = ("false", "0", "no", "off")
_HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


@dataclass(frozen=True)
class OptionValue:
    """A value together with the type tag it was parsed under."""

    type: ValueType
    data: Payload

    def __post_init__(self) -> None:
        expected = _PAYLOAD_TYPES[self.type]
        # bool is a subclass of int; keep the two tags apart.
        if self.type is not ValueType.BOOL and isinstance(self.data, bool):
            raise TypeError(f"{self.type.value} value cannot hold a bool")
        if not isinstance(self.data, expected):
            raise TypeError(
                f"{self.type.value} value cannot hold {type(self.data).__name__}"
            )
        if self.type is ValueType.DOUBLE and isinstance(self.data, int):
            object.__setattr__(self, "data", float(self.data))

    @classmethod
    def of_int(cls, value: int) -> "OptionValue":
        return cls(ValueType.INT, value)

    @classmethod
    def of_bool(cls, value: bool) -> "OptionValue":
        return cls(ValueType.BOOL, value)

    @classmethod
    def of_double(cls, value: float) -> "OptionValue":
        return cls(ValueType.DOUBLE, float(value))

    @classmethod
    def of_string(cls, value: str) -> "OptionValue":
        return cls(ValueType.STRING, value)

    @classmethod
    def of_color(cls, r: float, g: float, b: float, a: float = 1.0) -> "OptionValue":
        return cls(ValueType.COLOR, Color(float(r), float(g), float(b), float(a)))

    @classmethod
    def of_binding(cls, value: str) -> "OptionValue":
        return cls(ValueType.BINDING, value)

    def __str__(self) -> str:
        return format_value(self)


def _parse_int(text: str) -> Optional[OptionValue]:
    try:
        return OptionValue.of_int(int(text.strip()))
    except ValueError:
        return None


def _parse_bool(text: str) -> Optional[OptionValue]:
    token = text.strip().lower()
    if token in _TRUE_TOKENS:
        return OptionValue.of_bool(True)
    if token in _FALSE_TOKENS:
        return OptionValue.of_bool(False)
    return None


def _parse_double(text: str) -> Optional[OptionValue]:
    try:
        value = float(text.strip())
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return OptionValue.of_double(value)


def _parse_string(text: str) -> Optional[OptionValue]:
    return OptionValue.of_string(text)


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def parse_color(text: str) -> Optional[Color]:
    """
    Parse a Wayfire color string.
    Accepts ``#RRGGBB``, ``#RRGGBBAA`` and three or four whitespace separated
    floats (``0.5 0.5 1 0.5``). Channels are clamped to 0.0-1.0; a missing
    alpha channel means opaque.
    Returns:
        The parsed color, or None when the text is not a color.
    """
    stripped = text.strip()
    match = _HEX_COLOR.match(stripped)
    if match:
        digits = match.group(1)
        if len(digits) == 6:
            digits += "ff"
        channels = [int(digits[i : i + 2], 16) / 255.0 for i in range(0, 8, 2)]
        return Color(*channels)
    parts = stripped.split()
    if len(parts) not in (3, 4):
        return None
    try:
        channels = [float(part) for part in parts]
    except ValueError:
        return None
    if any(math.isnan(c) for c in channels):
        return None
    if len(channels) == 3:
        channels.append(1.0)
    return Color(*(_clamp_unit(c) for c in channels))


def _parse_color(text: str) -> Optional[OptionValue]:
    color = parse_color(text)
    if color is None:
        return None
    return OptionValue(ValueType.COLOR, color)


def _parse_binding(text: str) -> Optional[OptionValue]:
    return OptionValue.of_binding(text)


def _format_int(value: OptionValue) -> str:
    return str(value.data)


def _format_bool(value: OptionValue) -> str:
    return "true" if value.data else "false"


def _format_double(value: OptionValue) -> str:
    return repr(float(value.data))


def _format_string(value: OptionValue) -> str:
    return str(value.data)


def _format_color(value: OptionValue) -> str:
    return " ".join(repr(float(channel)) for channel in value.data)


_PARSERS: Dict[ValueType, Callable[[str], Optional[OptionValue]]] = {
    ValueType.INT: _parse_int,
    ValueType.BOOL: _parse_bool,
    ValueType.DOUBLE: _parse_double,
    ValueType.STRING: _parse_string,
    ValueType.COLOR: _parse_color,
    ValueType.BINDING: _parse_binding,
}

_FORMATTERS: Dict[ValueType, Callable[[OptionValue], str]] = {
    ValueType.INT: _format_int,
    ValueType.BOOL: _format_bool,
    ValueType.DOUBLE: _format_double,
    ValueType.STRING: _format_string,
    ValueType.COLOR: _format_color,
    ValueType.BINDING: _format_string,
}

_ZERO_VALUES: Dict[ValueType, Payload] = {
    ValueType.INT: 0,
    ValueType.BOOL: False,
    ValueType.DOUBLE: 0.0,
    ValueType.STRING: "",
    ValueType.COLOR: Color(0.0, 0.0, 0.0, 0.0),
    ValueType.BINDING: "",
}

for _table in (_PARSERS, _FORMATTERS, _ZERO_VALUES, _PAYLOAD_TYPES):
    assert set(_table) == set(ValueType), "value codec table is missing a type"


def parse_value(value_type: ValueType, text: str) -> Optional[OptionValue]:
    """
    Parse the string form of a value.
    Args:
        value_type: The tag the option was declared with.
        text: The raw string as stored in the configuration file.
    Returns:
        The typed value, or None if ``text`` is not valid for ``value_type``.
    """
    if text is None:
        return None
    return _PARSERS[value_type](text)


def format_value(value: OptionValue) -> str:
    """Format a value into the string form used by the configuration store."""
    return _FORMATTERS[value.type](value)


def is_parsable(value_type: ValueType, text: str) -> bool:
    return parse_value(value_type, text) is not None


def zero_value(value_type: ValueType) -> OptionValue:
    """The value an option of ``value_type`` holds when its schema gives no default."""
    return OptionValue(value_type, _ZERO_VALUES[value_type])
