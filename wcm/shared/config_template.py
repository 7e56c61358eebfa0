default_config = {
    "_section_hint": (
        "Settings for wcm itself. The Wayfire and wf-shell configuration "
        "files it edits are chosen with WAYFIRE_CONFIG_FILE, "
        "WF_SHELL_CONFIG_FILE or the -c/-s command line flags."
    ),
    "logging": {
        "_section_hint": "Log output of wcm.",
        "level": "INFO",
        "level_hint": (
            "Minimum level written to the console and to "
            "$XDG_STATE_HOME/wcm/wcm.log (DEBUG, INFO, WARNING, ERROR)."
        ),
    },
    "compositor": {
        "_section_hint": "Interaction with a running Wayfire session.",
        "live_sync": False,
        "live_sync_hint": (
            "Also push every edited option to the running compositor over "
            "the IPC socket named by WAYFIRE_SOCKET. File writes happen "
            "either way."
        ),
    },
    "metadata": {
        "_section_hint": "Where plugin metadata (XML) is looked up.",
        "extra_dirs": [],
        "extra_dirs_hint": (
            "Additional metadata directories, searched after "
            "WAYFIRE_PLUGIN_XML_PATH and before the system directory."
        ),
    },
}
