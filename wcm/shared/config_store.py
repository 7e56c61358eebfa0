"""
A section/option configuration store with a file backend.

The store keeps every value as a string. Options registered from plugin
metadata carry a default and a value type; options that only exist because
the backing file contains them are plain strings. Dynamic-list options are
held as ``CompoundOption`` rows and written out as flat ``prefix + suffix``
keys.

Paths ending in ``.toml`` are read and written with ``toml``; everything
else uses Wayfire's INI layout through ``configparser``.
"""

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import toml

from wcm.core.errors import StoreLoadError
from wcm.core.options import CompoundField, OptionKind, Origin, Plugin
from wcm.core.values import ValueType, format_value, is_parsable

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class StoreOption:
    """A single flat key."""

    name: str
    value: str = ""
    default: str = ""
    value_type: Optional[ValueType] = None
    schema: bool = False
    explicit: bool = False

    def accepts(self, text: str) -> bool:
        return self.value_type is None or is_parsable(self.value_type, text)

    def set(self, text: str) -> bool:
        """Store ``text`` if it is valid for this option's type."""
        if not self.accepts(text):
            return False
        self.value = text
        self.explicit = True
        return True

    def reset(self) -> None:
        self.value = self.default
        self.explicit = False

    @property
    def is_default(self) -> bool:
        return self.value == self.default


@dataclass(eq=False)
class CompoundOption:
    """A multi-field option whose rows are ``[suffix, v1, ..., vn]``."""

    name: str
    entries: List[CompoundField] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    @property
    def prefixes(self) -> List[str]:
        return [entry.prefix for entry in self.entries]

    def flat_items(self) -> Iterator[tuple]:
        """The rows expanded into ``(prefix + suffix, value)`` pairs."""
        for row in self.rows:
            suffix = row[0]
            for entry, value in zip(self.entries, row[1:]):
                yield entry.prefix + suffix, value


AnyOption = Union[StoreOption, CompoundOption]


class Section:
    def __init__(self, name: str):
        self.name = name
        self._options: Dict[str, StoreOption] = {}
        self._compounds: Dict[str, CompoundOption] = {}

    def __repr__(self) -> str:
        return f"Section({self.name!r}, options={len(self._options)})"

    def __contains__(self, name: str) -> bool:
        return name in self._options

    def get_option(self, name: str) -> Optional[StoreOption]:
        return self._options.get(name)

    def get_compound(self, name: str) -> Optional[CompoundOption]:
        return self._compounds.get(name)

    def registered_options(self) -> List[StoreOption]:
        """Flat options in registration order."""
        return list(self._options.values())

    def compounds(self) -> List[CompoundOption]:
        return list(self._compounds.values())

    def register(self, option: AnyOption) -> AnyOption:
        """
        Register an option, replacing any option with the same name.
        Returns:
            The registered option.
        """
        if isinstance(option, CompoundOption):
            self._compounds[option.name] = option
        else:
            self._options[option.name] = option
        return option

    def register_string(self, name: str, value: str) -> StoreOption:
        """Register a plain, non-schema string option holding ``value``."""
        return self.register(StoreOption(name=name, value=value, explicit=True))

    def unregister(self, name: str) -> bool:
        if name in self._options:
            del self._options[name]
            return True
        if name in self._compounds:
            del self._compounds[name]
            return True
        return False

    def matches_compound(self, name: str) -> bool:
        """Whether a flat key is written through one of this section's compounds."""
        return any(
            name.startswith(prefix)
            for compound in self._compounds.values()
            for prefix in compound.prefixes
        )


class ConfigStore:
    """
    One configuration file and the sections read from it.
    A store whose file failed to load keeps defaults and refuses to save,
    so a broken file on disk is never overwritten.
    """

    def __init__(self, path: Union[str, Path], origin: Origin = Origin.PRIMARY):
        self.path = Path(path)
        self.origin = origin
        self._sections: Dict[str, Section] = {}
        self.load_successful: bool = True
        self.last_mod_time: float = 0.0

    def __repr__(self) -> str:
        return f"ConfigStore({str(self.path)!r}, origin={self.origin.value})"

    @property
    def is_toml(self) -> bool:
        return self.path.suffix == ".toml"

    def sections(self) -> List[Section]:
        return list(self._sections.values())

    def get_section(self, name: str) -> Optional[Section]:
        return self._sections.get(name)

    def ensure_section(self, name: str) -> Section:
        section = self._sections.get(name)
        if section is None:
            section = self._sections[name] = Section(name)
        return section

    def register_schema(self, plugin: Plugin) -> Section:
        """Register every option of ``plugin`` with its metadata default."""
        section = self.ensure_section(plugin.name)
        for option in plugin.options():
            if option.kind is OptionKind.DYNAMIC_LIST:
                if option.entries:
                    section.register(
                        CompoundOption(name=option.name, entries=list(option.entries))
                    )
                continue
            if option.value_type is None:
                continue
            default = format_value(option.default_value)
            section.register(
                StoreOption(
                    name=option.name,
                    value=default,
                    default=default,
                    value_type=option.value_type,
                    schema=True,
                )
            )
        return section

    def _read_file(self, path: Path) -> Dict[str, Dict[str, str]]:
        """
        Read a backing file into ``{section: {key: value}}``.
        Raises:
            StoreLoadError: The file exists but cannot be read or parsed.
        """
        try:
            if path.suffix == ".toml":
                with open(path, "r") as f:
                    data = toml.load(f)
                return {
                    name: {key: _toml_to_string(value) for key, value in table.items()}
                    for name, table in data.items()
                    if isinstance(table, dict)
                }
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
            parser = _ini_parser()
            parser.read_string(_clean_ini(text, path), source=str(path))
            return {name: dict(parser.items(name)) for name in parser.sections()}
        except (OSError, UnicodeDecodeError, configparser.Error, toml.TomlDecodeError) as e:
            raise StoreLoadError(str(path), str(e)) from e

    def load_defaults(self, path: Union[str, Path]) -> None:
        """
        Override registered defaults with a system defaults file.
        Keys that are not registered are ignored; a missing file is not an error.
        """
        path = Path(path)
        if not path.is_file():
            return
        try:
            data = self._read_file(path)
        except StoreLoadError as e:
            logger.warning(f"Ignoring defaults file: {e}")
            return
        for section_name, values in data.items():
            section = self._sections.get(section_name)
            if section is None:
                continue
            for key, text in values.items():
                option = section.get_option(key)
                if option is None or not option.accepts(text):
                    continue
                option.default = text
                if not option.explicit:
                    option.value = text
        logger.debug(f"Loaded defaults from {path}")

    def load(self) -> bool:
        """
        Read the backing file into the registered sections.
        Values that do not parse under a registered option's type are logged
        and kept verbatim, so they are written back unchanged. Readers fall
        back to the default for them. Unknown keys become plain string
        options. Compound rows are rebuilt from the flat keys afterwards.
        Returns:
            False if the file exists but could not be read.
        """
        from wcm.core.compound import update_compounds

        if not self.path.exists():
            logger.info(f"Config file {self.path} is missing, using defaults.")
            self.load_successful = True
            update_compounds(self)
            return True
        try:
            data = self._read_file(self.path)
        except StoreLoadError as e:
            logger.error(
                f"{e}. Using defaults and skipping saves to preserve the file."
            )
            self.load_successful = False
            return False
        for section_name, values in data.items():
            section = self.ensure_section(section_name)
            for key, text in values.items():
                option = section.get_option(key)
                if option is None:
                    section.register_string(key, text)
                elif not option.set(text):
                    logger.warning(
                        f"Invalid value '{text}' for {section_name}/{key}, keeping it as written"
                    )
                    option.value = text
                    option.explicit = True
        self.load_successful = True
        self.last_mod_time = os.path.getmtime(self.path)
        update_compounds(self)
        logger.debug(f"Loaded {self.path}")
        return True

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        """The flat ``{section: {key: value}}`` mapping that ``save`` writes."""
        result: Dict[str, Dict[str, str]] = {}
        for section in self._sections.values():
            values: Dict[str, str] = {}
            for option in section.registered_options():
                if option.schema:
                    if option.explicit or not option.is_default:
                        values[option.name] = option.value
                elif not section.matches_compound(option.name):
                    values[option.name] = option.value
            for compound in section.compounds():
                for key, value in compound.flat_items():
                    values[key] = value
            if values:
                result[section.name] = values
        return result

    def save(self) -> bool:
        """
        Rebuild every compound option and write the store to its file.
        Returns:
            True if the file was written.
        """
        from wcm.core.compound import update_compounds

        if not self.load_successful:
            logger.warning(
                f"Skipping save of {self.path}: the file failed to load and is in an untrusted state."
            )
            return False
        update_compounds(self)
        data = self.to_dict()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                if self.is_toml:
                    toml.dump(data, f)
                else:
                    parser = _ini_parser()
                    parser.read_dict(
                        {
                            name: {key: _escape(value) for key, value in values.items()}
                            for name, values in data.items()
                        }
                    )
                    parser.write(f)
            self.last_mod_time = os.path.getmtime(self.path)
        except OSError as e:
            logger.error(f"Failed to save configuration to {self.path}: {e}")
            return False
        logger.debug(f"Saved {self.path}")
        return True

    def is_modified(self) -> bool:
        """Whether the backing file changed on disk since the last load or save."""
        try:
            return os.path.getmtime(self.path) > self.last_mod_time
        except FileNotFoundError:
            return False


def _toml_to_string(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return " ".join(_toml_to_string(item) for item in value)
    return str(value)


def _ini_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None, delimiters=("=",), comment_prefixes=(), strict=False
    )
    parser.optionxform = str
    return parser


def _strip_comment(line: str) -> str:
    """Cut ``line`` at the first unescaped ``#`` and turn ``\\#`` into ``#``."""
    chars: List[str] = []
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\\" and line[i + 1 : i + 2] == "#":
            chars.append("#")
            i += 2
            continue
        if char == "#":
            break
        chars.append(char)
        i += 1
    return "".join(chars)


def _escape(value: str) -> str:
    return value.replace("#", "\\#")


def _clean_ini(text: str, source: Path) -> str:
    """
    Reduce Wayfire INI text to plain ``[section]`` and ``key = value`` lines.

    An unescaped ``#`` starts a comment and ``\\#`` stands for a literal
    ``#``. A line ending in a backslash continues on the next line. Lines
    that are neither a section header nor an assignment inside a section are
    logged and skipped, so one bad line never makes the whole file unusable.
    """
    lines: List[str] = []
    in_section = False
    pending = ""
    pending_start = 0
    raw_lines = text.splitlines()
    for number, raw in enumerate(raw_lines, start=1):
        line = pending + _strip_comment(raw).strip()
        if line.endswith("\\") and number < len(raw_lines):
            if not pending:
                pending_start = number
            pending = line[:-1]
            continue
        start = pending_start if pending else number
        pending = ""
        line = line.rstrip("\\").strip()
        if not line:
            continue
        if line.startswith("[") and line.endswith("]") and len(line) > 2:
            in_section = True
            lines.append(line)
            continue
        key, sep, value = line.partition("=")
        if sep and key.strip() and in_section:
            lines.append(f"{key.strip()} = {value.strip()}")
            continue
        logger.warning(f"{source}:{start}: skipping malformed line '{raw.strip()}'")
    return "\n".join(lines) + "\n"
