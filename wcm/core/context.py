from typing import Any, Dict, List, Optional

import structlog

from wcm.core.compositor.ipc import IPC
from wcm.core.dynamic_list import DynamicListManager
from wcm.core.enablement import is_enabled, set_enabled
from wcm.core.metadata import load_plugins
from wcm.core.options import CATEGORIES, Origin, Plugin
from wcm.shared.config_handler import ConfigHandler
from wcm.shared.config_store import ConfigStore, Section
from wcm.shared.path_handler import ConfigPaths

CORE_SECTION = "core"
PLUGINS_OPTION = "plugins"


class AppContext:
    """
    Owns everything an editing session works on: the parsed plugins, the
    primary and shell configuration stores, and the helpers that read and
    write them. Components receive the context explicitly.
    """

    def __init__(
        self,
        paths: ConfigPaths,
        logger: Any = None,
        ipc: Optional[IPC] = None,
    ):
        """
        Args:
            paths: Config files, defaults files and metadata directories.
            logger: Logger shared by all components.
            ipc: Compositor link used to mirror writes into a running
                session; None disables live sync.
        """
        self.paths = paths
        self.logger = logger or structlog.get_logger(__name__)
        self.ipc = ipc
        self.plugins: List[Plugin] = []
        self.primary_store: Optional[ConfigStore] = None
        self.shell_store: Optional[ConfigStore] = None
        self.config = ConfigHandler(self)
        self.lists = DynamicListManager(self)

    def load(self) -> None:
        """
        Parse all plugin metadata and load both configuration stores.
        Raises:
            MetadataDirectoryError: None of the primary metadata directories
                could be opened.
        """
        plugins = load_plugins(self.paths.metadata_dirs, required=True)
        names = {plugin.name for plugin in plugins}
        shell_plugins = load_plugins(self.paths.shell_metadata_dirs, required=False)
        if not shell_plugins:
            self.logger.warning("No wf-shell metadata found, shell plugins unavailable")
        for plugin in shell_plugins:
            if plugin.name not in names:
                names.add(plugin.name)
                plugins.append(plugin)
        self.plugins = plugins
        self.logger.info(f"Loaded metadata for {len(self.plugins)} plugins")
        self._load_stores()

    def _build_store(self, origin: Origin) -> Optional[ConfigStore]:
        owned = [plugin for plugin in self.plugins if plugin.origin is origin]
        if origin is Origin.PRIMARY:
            path, defaults = self.paths.config_file, self.paths.defaults_file
        else:
            if not owned:
                return None
            path, defaults = self.paths.shell_config_file, self.paths.shell_defaults_file
        store = ConfigStore(path, origin)
        for plugin in owned:
            store.register_schema(plugin)
        if defaults is not None:
            store.load_defaults(defaults)
        store.load()
        return store

    def _load_stores(self) -> None:
        self.primary_store = self._build_store(Origin.PRIMARY)
        self.shell_store = self._build_store(Origin.SHELL)
        enabled_plugins = self.enabled_plugins_string()
        for plugin in self.plugins:
            plugin.enabled = is_enabled(plugin, enabled_plugins)

    def reload(self, schemas: bool = False) -> None:
        """
        Re-read the configuration files, and the metadata too if ``schemas``.
        Option trees are kept unless ``schemas`` is set.
        """
        if schemas:
            self.load()
        else:
            self._load_stores()
        self.logger.debug("Configuration reloaded")

    def reload_if_modified(self) -> bool:
        """Reload when either backing file changed on disk since it was last read or written."""
        stores = [s for s in (self.primary_store, self.shell_store) if s is not None]
        if not any(store.is_modified() for store in stores):
            return False
        self.logger.info("Configuration file modified. Reloading...")
        self.reload()
        return True

    def store_for(self, plugin: Plugin) -> Optional[ConfigStore]:
        if plugin.origin is Origin.SHELL:
            return self.shell_store
        return self.primary_store

    def get_config_section(self, plugin: Plugin) -> Optional[Section]:
        store = self.store_for(plugin)
        if store is None:
            return None
        return store.get_section(plugin.name)

    def save_config(self, plugin: Plugin) -> bool:
        """Flush the store owning ``plugin`` to its file."""
        store = self.store_for(plugin)
        if store is None:
            return False
        return store.save()

    def save_store(self, origin: Origin) -> bool:
        store = self.primary_store if origin is Origin.PRIMARY else self.shell_store
        if store is None:
            return False
        return store.save()

    def enabled_plugins_string(self) -> str:
        if self.primary_store is None:
            return ""
        section = self.primary_store.get_section(CORE_SECTION)
        option = section.get_option(PLUGINS_OPTION) if section is not None else None
        return option.value if option is not None else ""

    def set_plugin_enabled(self, plugin: Plugin, enabled: bool) -> bool:
        """
        Add ``plugin`` to or remove it from ``core/plugins`` and save.
        Returns:
            False for plugins that cannot be toggled or when the write fails.
        """
        if not plugin.toggleable:
            self.logger.debug(f"{plugin.name} cannot be enabled or disabled")
            return False
        current = self.enabled_plugins_string()
        updated = set_enabled(plugin, enabled, current)
        core = self.find_plugin(CORE_SECTION) or Plugin(name=CORE_SECTION)
        if updated != current and not self.config.write(core, PLUGINS_OPTION, updated):
            return False
        plugin.enabled = enabled
        self.logger.info(f"{'Enabled' if enabled else 'Disabled'} plugin {plugin.name}")
        return True

    def find_plugin(self, name: str) -> Optional[Plugin]:
        for plugin in self.plugins:
            if plugin.name == name:
                return plugin
        return None

    def plugins_by_category(self) -> Dict[str, List[Plugin]]:
        """
        Plugins grouped by category, in the fixed category order.
        Plugins with a category outside the known set are listed under the
        last category.
        """
        grouped: Dict[str, List[Plugin]] = {category: [] for category in CATEGORIES}
        fallback = CATEGORIES[-1]
        for plugin in self.plugins:
            grouped.get(plugin.category, grouped[fallback]).append(plugin)
        for members in grouped.values():
            members.sort(key=lambda p: p.display_name.lower())
        return grouped

    def filter_plugins(self, text: str) -> List[Plugin]:
        """Plugins whose name, display name or tooltip contains ``text``, ignoring case."""
        needle = text.lower()
        return [
            plugin
            for plugin in self.plugins
            if needle in plugin.name.lower()
            or needle in plugin.display_name.lower()
            or needle in plugin.tooltip.lower()
        ]
