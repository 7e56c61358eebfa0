"""
Plugin enablement as a space-separated list of names (``core/plugins``).

A plugin is enabled only when its name appears as a whole token: ``move``
is not enabled by ``automove`` or ``move2``.
"""

import re
from typing import Optional

from wcm.core.options import Origin, Plugin

_SPACE_RUN = re.compile(" {2,}")


def find_plugin_token(name: str, plugins: str, start: int = 0) -> int:
    """
    Position of the first whole-token occurrence of ``name`` in ``plugins``.
    Returns:
        The index of the match, or -1.
    """
    if not name:
        return -1
    pos = plugins.find(name, start)
    while pos != -1:
        end = pos + len(name)
        if (pos == 0 or plugins[pos - 1] == " ") and (
            end == len(plugins) or plugins[end] == " "
        ):
            return pos
        pos = plugins.find(name, pos + 1)
    return -1


def _always_enabled(plugin: Plugin) -> bool:
    return plugin.is_core_plugin or plugin.origin is Origin.SHELL


def is_enabled(plugin: Plugin, plugins: Optional[str]) -> bool:
    if _always_enabled(plugin):
        return True
    return find_plugin_token(plugin.name, plugins or "") != -1


def set_enabled(plugin: Plugin, enabled: bool, plugins: Optional[str]) -> str:
    """
    The plugin list with ``plugin`` added or removed.
    Disabling drops every whole-token occurrence and normalizes spacing;
    enabling appends the name when it is not already present. Core and
    shell plugins leave the list unchanged.
    """
    plugins = plugins or ""
    if _always_enabled(plugin):
        return plugins
    name = plugin.name
    if enabled:
        if find_plugin_token(name, plugins) != -1:
            return plugins
        return f"{plugins} {name}" if plugins else name
    pos = find_plugin_token(name, plugins)
    while pos != -1:
        plugins = plugins[:pos] + plugins[pos + len(name) :]
        pos = find_plugin_token(name, plugins, pos)
    return _SPACE_RUN.sub(" ", plugins).strip()
