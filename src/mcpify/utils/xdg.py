"""XDG Base Directory helpers for mcpify.

Logs go to the XDG state directory so the stdio transport keeps stdout clean.
"""

import os
from pathlib import Path

APP_DIR_NAME = "mcpify"


def get_xdg_state_home() -> Path:
    """Get the XDG state home directory.

    Returns:
        Path to XDG_STATE_HOME, defaults to ~/.local/state
    """
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))


def get_state_dir() -> Path:
    """Get the mcpify state directory.

    Creates the directory if it doesn't exist.

    Returns:
        Path to $XDG_STATE_HOME/mcpify
    """
    state_dir = get_xdg_state_home() / APP_DIR_NAME
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir


def get_log_file_path() -> Path:
    """Get the default log file location.

    Returns:
        Path to $XDG_STATE_HOME/mcpify/logs/mcpify.log
    """
    log_dir = get_state_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / "mcpify.log"
