import argparse
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from wcm import __version__
from wcm.core.compositor.ipc import IPC
from wcm.core.context import AppContext
from wcm.core.errors import MetadataDirectoryError
from wcm.core.log_setup import setup_logging
from wcm.shared.config_handler import AppSettings
from wcm.shared.path_handler import ConfigPaths, settings_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wcm", description="Wayfire Config Manager"
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Wayfire config file to use (default: $WAYFIRE_CONFIG_FILE or ~/.config/wayfire.ini)",
    )
    parser.add_argument(
        "-s",
        "--shell-config",
        metavar="FILE",
        help="wf-shell config file to use (default: $WF_SHELL_CONFIG_FILE or ~/.config/wf-shell.ini)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def print_catalog(context: AppContext, console: Console) -> None:
    """Print every plugin grouped by category, with its enabled state."""
    for category, plugins in context.plugins_by_category().items():
        if not plugins:
            continue
        table = Table(title=category, title_justify="left", expand=True)
        table.add_column("Plugin", no_wrap=True)
        table.add_column("Name")
        table.add_column("Enabled", justify="center")
        table.add_column("Description")
        for plugin in plugins:
            if not plugin.toggleable:
                state = "[dim]always[/dim]"
            elif plugin.enabled:
                state = "[green]yes[/green]"
            else:
                state = "[red]no[/red]"
            table.add_row(plugin.name, plugin.display_name, state, plugin.tooltip)
        console.print(table)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = AppSettings(settings_file())
    settings.load()
    logger = setup_logging(level=settings.log_level)
    settings.logger = logger
    paths = ConfigPaths.from_environment(
        config_file=args.config,
        shell_config_file=args.shell_config,
        extra_metadata_dirs=settings.extra_metadata_dirs,
    )
    ipc = IPC() if settings.live_sync else None
    if ipc is not None and not ipc.connected:
        logger.warning("Live sync is enabled but the compositor is not reachable")
    context = AppContext(paths, logger=logger, ipc=ipc)
    try:
        context.load()
    except MetadataDirectoryError as e:
        logger.critical(str(e))
        return 1
    logger.debug(f"Using {paths.config_file} and {paths.shell_config_file}")
    print_catalog(context, Console())
    return 0


if __name__ == "__main__":
    sys.exit(main())
