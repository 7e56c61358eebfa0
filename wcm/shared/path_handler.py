import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Tuple

APP_NAME = "wcm"
METADATA_DIR = "/usr/share/wayfire/metadata"
SHELL_METADATA_DIR = "/usr/share/wayfire/metadata/wf-shell"
DEFAULTS_FILE = "/etc/wayfire/defaults.ini"
SHELL_DEFAULTS_FILE = "/etc/wayfire/wf-shell-defaults.ini"
DEFAULT_CONFIG_FILE = "~/.config/wayfire.ini"
DEFAULT_SHELL_CONFIG_FILE = "~/.config/wf-shell.ini"


def expand_path(path: str) -> Path:
    """Expand ``~`` and ``$VARS`` the way a shell would."""
    return Path(os.path.expandvars(os.path.expanduser(path)))


def _xdg_base_dir(env_var: str, default: str) -> Path:
    value = os.getenv(env_var)
    if value:
        return Path(value)
    return Path(default).expanduser()


def settings_file() -> Path:
    """$XDG_CONFIG_HOME/wcm/config.toml"""
    return _xdg_base_dir("XDG_CONFIG_HOME", "~/.config") / APP_NAME / "config.toml"


def log_file() -> Path:
    """$XDG_STATE_HOME/wcm/wcm.log"""
    return _xdg_base_dir("XDG_STATE_HOME", "~/.local/state") / APP_NAME / "wcm.log"


@dataclass(frozen=True)
class ConfigPaths:
    """Every file and directory an application context reads or writes."""

    config_file: Path
    shell_config_file: Path
    metadata_dirs: Tuple[str, ...] = (METADATA_DIR,)
    shell_metadata_dirs: Tuple[str, ...] = (SHELL_METADATA_DIR,)
    defaults_file: Optional[Path] = Path(DEFAULTS_FILE)
    shell_defaults_file: Optional[Path] = Path(SHELL_DEFAULTS_FILE)
    settings_file: Path = field(default_factory=settings_file)

    @classmethod
    def from_environment(
        cls,
        config_file: Optional[str] = None,
        shell_config_file: Optional[str] = None,
        extra_metadata_dirs: Iterable[str] = (),
    ) -> "ConfigPaths":
        """
        Resolve paths from command line overrides and the environment.
        Explicit arguments win over ``WAYFIRE_CONFIG_FILE`` and
        ``WF_SHELL_CONFIG_FILE``, which win over the defaults in ``~/.config``.
        ``WAYFIRE_PLUGIN_XML_PATH`` is a colon-separated list of metadata
        directories searched before ``extra_metadata_dirs`` and the system
        directory.
        """
        config = config_file or os.getenv("WAYFIRE_CONFIG_FILE") or DEFAULT_CONFIG_FILE
        shell_config = (
            shell_config_file
            or os.getenv("WF_SHELL_CONFIG_FILE")
            or DEFAULT_SHELL_CONFIG_FILE
        )
        xml_path = os.getenv("WAYFIRE_PLUGIN_XML_PATH", "")
        dirs = [d for d in xml_path.split(":") if d]
        dirs.extend(str(expand_path(d)) for d in extra_metadata_dirs if d)
        dirs.append(METADATA_DIR)
        return cls(
            config_file=expand_path(config),
            shell_config_file=expand_path(shell_config),
            metadata_dirs=tuple(dirs),
        )
