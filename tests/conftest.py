"""
Shared pytest fixtures for wcm tests.

Provides small metadata directories modelled on Wayfire's own plugin XML,
temporary config files and a loaded application context.
"""

import configparser
import logging
from pathlib import Path
from typing import Callable, Dict

import pytest

from wcm.core.context import AppContext
from wcm.shared.path_handler import ConfigPaths

# -----------------------------------------------------------------------------
# Metadata
# -----------------------------------------------------------------------------

CORE_XML = """<?xml version="1.0"?>
<wayfire>
  <plugin name="core">
    <_short>Core</_short>
    <_long>Core Wayfire options.</_long>
    <category>General</category>
    <option name="plugins" type="string">
      <_short>Plugins</_short>
      <default></default>
    </option>
    <option name="vwidth" type="int">
      <default>3</default>
      <min>1</min>
      <max>20</max>
    </option>
  </plugin>
</wayfire>
"""

AUTOSTART_XML = """<?xml version="1.0"?>
<wayfire>
  <plugin name="autostart">
    <_short>Autostart</_short>
    <_long>Runs commands when Wayfire starts.</_long>
    <category>Utility</category>
    <option name="autostart_wf_shell" type="bool">
      <default>true</default>
    </option>
    <option name="autostart" type="dynamic-list">
      <_short>Commands</_short>
      <entry prefix="" type="string"/>
    </option>
  </plugin>
</wayfire>
"""

COMMAND_XML = """<?xml version="1.0"?>
<wayfire>
  <plugin name="command">
    <_short>Command</_short>
    <_long>Runs shell commands on bindings.</_long>
    <category>Utility</category>
    <option name="bindings" type="dynamic-list" type-hint="dict">
      <entry prefix="command_" type="string"/>
      <entry prefix="binding_" type="activator"/>
    </option>
    <option name="repeatable_bindings" type="dynamic-list" hidden="true">
      <entry prefix="command_" type="string"/>
      <entry prefix="repeatable_binding_" type="activator"/>
    </option>
    <option name="always_bindings" type="dynamic-list" hidden="true">
      <entry prefix="command_" type="string"/>
      <entry prefix="always_binding_" type="activator"/>
    </option>
  </plugin>
</wayfire>
"""

VSWITCH_XML = """<?xml version="1.0"?>
<wayfire>
  <plugin name="vswitch">
    <_short>Viewport Switcher</_short>
    <category>Desktop</category>
    <option name="binding_left" type="activator">
      <default>&lt;super&gt; KEY_LEFT</default>
    </option>
    <option name="workspace_bindings" type="dynamic-list">
      <entry prefix="binding_" type="activator"/>
    </option>
    <option name="workspace_bindings_win" type="dynamic-list">
      <entry prefix="with_win_" type="activator"/>
    </option>
    <option name="bindings_win" type="dynamic-list">
      <entry prefix="send_win_" type="activator"/>
    </option>
  </plugin>
</wayfire>
"""

DEMO_XML = """<?xml version="1.0"?>
<wayfire>
  <plugin name="demo">
    <_short>Demo</_short>
    <_long>Plugin exercising every option kind.</_long>
    <category>Effects</category>
    <option name="delay" type="int">
      <_short>Delay</_short>
      <default>5</default>
      <min>0</min>
      <max>10</max>
    </option>
    <group>
      <_short>Look</_short>
      <option name="speed" type="double">
        <default>0.5</default>
        <min>0</min>
        <max>1</max>
        <precision>0.05</precision>
      </option>
      <option name="mode" type="string">
        <desc><value>slow</value><_name>Slow</_name></desc>
        <desc><value>fast</value><_name>Fast</_name></desc>
      </option>
      <subgroup>
        <_short>Colors</_short>
        <option name="tint" type="color">
          <default>#FF000080</default>
        </option>
        <option name="enabled" type="bool">
          <default>false</default>
        </option>
      </subgroup>
    </group>
  </plugin>
</wayfire>
"""

SIMPLE_XML = """<?xml version="1.0"?>
<wayfire>
  <plugin name="{name}">
    <_short>{short}</_short>
    <_long>{long}</_long>
    <category>{category}</category>
    <option name="duration" type="int"><default>300</default></option>
  </plugin>
</wayfire>
"""

PANEL_XML = """<?xml version="1.0"?>
<wf-shell>
  <plugin name="panel">
    <_short>Panel</_short>
    <category>Shell</category>
    <option name="position" type="string">
      <default>top</default>
    </option>
  </plugin>
</wf-shell>
"""

PRIMARY_DOCUMENTS: Dict[str, str] = {
    "core.xml": CORE_XML,
    "autostart.xml": AUTOSTART_XML,
    "command.xml": COMMAND_XML,
    "vswitch.xml": VSWITCH_XML,
    "demo.xml": DEMO_XML,
    "expo.xml": SIMPLE_XML.format(
        name="expo", short="Expo", long="Shows all workspaces.", category="Desktop"
    ),
    "cube.xml": SIMPLE_XML.format(
        name="cube", short="Desktop Cube", long="Rotating cube.", category="Desktop"
    ),
    "move.xml": SIMPLE_XML.format(
        name="move", short="Move", long="Move windows.", category="Window Management"
    ),
    "strange.xml": SIMPLE_XML.format(
        name="strange", short="Strange", long="Odd category.", category="Nonexistent"
    ),
}


@pytest.fixture
def metadata_dir(tmp_path: Path) -> Path:
    """A primary metadata directory with a handful of plugins."""
    directory = tmp_path / "metadata"
    directory.mkdir()
    for filename, content in PRIMARY_DOCUMENTS.items():
        (directory / filename).write_text(content)
    (directory / "README").write_text("not metadata")
    return directory


@pytest.fixture
def shell_metadata_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "metadata-shell"
    directory.mkdir()
    (directory / "panel.xml").write_text(PANEL_XML)
    return directory


# -----------------------------------------------------------------------------
# Context
# -----------------------------------------------------------------------------


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    return tmp_path / "wayfire.ini"


@pytest.fixture
def shell_config_file(tmp_path: Path) -> Path:
    return tmp_path / "wf-shell.ini"


@pytest.fixture
def paths(
    tmp_path: Path,
    metadata_dir: Path,
    shell_metadata_dir: Path,
    config_file: Path,
    shell_config_file: Path,
) -> ConfigPaths:
    return ConfigPaths(
        config_file=config_file,
        shell_config_file=shell_config_file,
        metadata_dirs=(str(metadata_dir),),
        shell_metadata_dirs=(str(shell_metadata_dir),),
        defaults_file=None,
        shell_defaults_file=None,
        settings_file=tmp_path / "wcm" / "config.toml",
    )


@pytest.fixture
def make_context(paths: ConfigPaths) -> Callable[..., AppContext]:
    """Factory building a loaded context, optionally from initial config text."""

    def _make(config_text: str = "", **overrides) -> AppContext:
        if config_text:
            paths.config_file.write_text(config_text)
        context = AppContext(
            overrides.pop("paths", paths), logger=logging.getLogger("wcm.test"), **overrides
        )
        context.load()
        return context

    return _make


@pytest.fixture
def context(make_context) -> AppContext:
    return make_context()


@pytest.fixture
def read_ini() -> Callable[[Path], Dict[str, Dict[str, str]]]:
    """Parse a written config file back into plain dicts."""

    def _read(path: Path) -> Dict[str, Dict[str, str]]:
        parser = configparser.ConfigParser(interpolation=None, delimiters=("=",))
        parser.optionxform = str
        parser.read(path)
        return {name: dict(parser.items(name)) for name in parser.sections()}

    return _read
