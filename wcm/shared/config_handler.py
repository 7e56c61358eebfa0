import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import toml

from wcm.core.options import Option, Origin, Plugin
from wcm.core.values import OptionValue, format_value, parse_value
from wcm.shared import config_template
from wcm.shared.config_store import Section

if TYPE_CHECKING:
    from wcm.core.context import AppContext


class ConfigHandler:
    """
    Reads and writes plugin options in the configuration store that owns the
    plugin: the primary store for ``wayfire`` plugins, the shell store for
    ``wf-shell`` plugins.
    Every write or removal is flushed to the backing file right away unless
    the caller passes ``flush=False`` and flushes itself.
    """

    def __init__(self, context: "AppContext"):
        """
        Args:
            context: The application context owning the stores.
        """
        self.context = context
        self.logger = context.logger

    def section(self, plugin: Plugin, create: bool = False) -> Optional[Section]:
        """
        The store section of ``plugin``.
        Returns:
            None if the plugin's store is unavailable, or the section does not
            exist and ``create`` is not set.
        """
        store = self.context.store_for(plugin)
        if store is None:
            return None
        if create:
            return store.ensure_section(plugin.name)
        return store.get_section(plugin.name)

    def _writable_section(self, plugin: Plugin, name: str, create: bool = False) -> Optional[Section]:
        store = self.context.store_for(plugin)
        if store is not None and not store.load_successful:
            self.logger.warning(
                f"Update to {plugin.name}/{name} skipped: {store.path} failed to load. Please fix it manually."
            )
            return None
        return self.section(plugin, create=create)

    def read(self, plugin: Plugin, name: str) -> Optional[str]:
        section = self.section(plugin)
        if section is None:
            return None
        option = section.get_option(name)
        return option.value if option is not None else None

    def exists(self, plugin: Plugin, name: str) -> bool:
        section = self.section(plugin)
        return section is not None and section.get_option(name) is not None

    def write(self, plugin: Plugin, name: str, text: str, flush: bool = True) -> bool:
        """
        Set ``plugin/name`` to ``text``, registering the key on first write.
        Returns:
            False if the store is unavailable or failed to load, or if
            ``text`` is not valid for the option's type.
        """
        section = self._writable_section(plugin, name, create=True)
        if section is None:
            return False
        option = section.get_option(name)
        if option is None:
            section.register_string(name, text)
        elif not option.set(text):
            self.logger.warning(f"Rejected value '{text}' for {plugin.name}/{name}")
            return False
        if flush:
            self.flush(plugin)
        self._push(plugin, name, text)
        return True

    def remove(self, plugin: Plugin, name: str, flush: bool = True) -> bool:
        section = self._writable_section(plugin, name)
        if section is None or not section.unregister(name):
            return False
        if flush:
            self.flush(plugin)
        return True

    def flush(self, plugin: Plugin) -> bool:
        return self.context.save_config(plugin)

    def read_value(self, plugin: Plugin, option: Option) -> OptionValue:
        """
        The typed value of ``option``.
        A missing key or a stored string that does not parse yields the
        option's default.
        """
        text = self.read(plugin, option.name)
        if text is None or option.value_type is None:
            return option.default_value
        value = parse_value(option.value_type, text)
        if value is None:
            self.logger.debug(
                f"Unparsable value '{text}' for {plugin.name}/{option.name}, using default"
            )
            return option.default_value
        return value

    def write_value(
        self, plugin: Plugin, option: Option, value: OptionValue, flush: bool = True
    ) -> bool:
        if option.value_type is not None and value.type is not option.value_type:
            self.logger.warning(
                f"{plugin.name}/{option.name} holds {option.value_type.value} values, got {value.type.value}"
            )
            return False
        return self.write(plugin, option.name, format_value(value), flush=flush)

    def reset(self, plugin: Plugin, option: Option, flush: bool = True) -> bool:
        """Restore the registered default of ``option``."""
        section = self._writable_section(plugin, option.name)
        if section is None:
            return False
        stored = section.get_option(option.name)
        if stored is None:
            return False
        stored.reset()
        if flush:
            self.flush(plugin)
        self._push(plugin, option.name, stored.value)
        return True

    def _push(self, plugin: Plugin, name: str, text: str) -> None:
        ipc = self.context.ipc
        if ipc is None or plugin.origin is not Origin.PRIMARY:
            return
        ipc.set_option(plugin.name, name, text)


class AppSettings:
    """
    wcm's own settings, read from ``config.toml`` and merged over
    ``config_template.default_config``.
    The file is never created implicitly. A file that fails to parse is
    logged and the defaults are used.
    """

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)
        self.default_config = config_template.default_config
        self.config_data: Dict[str, Any] = {}

    def _strip_hints(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Drop ``*_hint`` keys, recursively."""
        stripped_data = {}
        for key, value in data.items():
            if key.endswith("_hint"):
                continue
            if isinstance(value, dict):
                stripped_data[key] = self._strip_hints(value)
            else:
                stripped_data[key] = copy.deepcopy(value)
        return stripped_data

    @property
    def default_config_stripped(self) -> Dict[str, Any]:
        return self._strip_hints(self.default_config)

    def _recursive_merge(
        self, user_config: Dict[str, Any], default_config: Dict[str, Any]
    ) -> None:
        """Fill keys missing from ``user_config`` with ``default_config`` values."""
        for key, default_value in default_config.items():
            if key not in user_config:
                user_config[key] = default_value
            elif isinstance(default_value, dict) and isinstance(
                user_config.get(key), dict
            ):
                self._recursive_merge(user_config[key], default_value)

    def load(self) -> Dict[str, Any]:
        config_from_file: Dict[str, Any] = {}
        if self.path.exists():
            try:
                with open(self.path, "r") as f:
                    config_from_file = toml.load(f)
                self.logger.debug(f"Loaded settings from {self.path}")
            except (OSError, toml.TomlDecodeError) as e:
                self.logger.error(f"Error loading settings file {self.path}: {e}. Using defaults.")
                config_from_file = {}
        self._recursive_merge(config_from_file, self.default_config_stripped)
        self.config_data = config_from_file
        return self.config_data

    def get_root_setting(self, key_path: List[str], default_value: Any = None) -> Any:
        """
        Look up a nested setting.
        Args:
            key_path: Keys from the root, e.g. ``["logging", "level"]``.
            default_value: Returned when the path does not exist.
        """
        current_data: Any = self.config_data
        for key in key_path:
            if isinstance(current_data, dict) and key in current_data:
                current_data = current_data[key]
            else:
                return default_value
        return current_data

    @property
    def log_level(self) -> int:
        name = str(self.get_root_setting(["logging", "level"], "INFO")).upper()
        level = logging.getLevelName(name)
        return level if isinstance(level, int) else logging.INFO

    @property
    def live_sync(self) -> bool:
        return bool(self.get_root_setting(["compositor", "live_sync"], False))

    @property
    def extra_metadata_dirs(self) -> List[str]:
        dirs = self.get_root_setting(["metadata", "extra_dirs"], [])
        if isinstance(dirs, str):
            return [dirs]
        return [str(d) for d in dirs]
