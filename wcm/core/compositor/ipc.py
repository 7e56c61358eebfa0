import logging
import os
import socket
from functools import wraps
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def handle_ipc_error(func):
    """Decorator to handle common IPC-related errors."""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if self.sock is None:
            return None
        try:
            return func(self, *args, **kwargs)
        except (socket.error, ConnectionRefusedError, BrokenPipeError) as e:
            logger.error(f"IPC connection error in '{func.__name__}': {e}")
            self.is_compositor_socket_set_up = False
            self.sock = None
            return None
        except Exception as e:
            logger.error(f"An unexpected error occurred in '{func.__name__}': {e}")
            return None

    return wrapper


class IPC:
    """
    Pushes option changes to a running Wayfire instance over its IPC socket.
    Nothing here is required for editing files: when ``WAYFIRE_SOCKET`` is
    unset or the connection drops, every call becomes a logged no-op.
    """

    def __init__(self, sock: Any = None):
        """
        Args:
            sock: An already connected ``WayfireSocket``; when omitted a
                connection is attempted if ``WAYFIRE_SOCKET`` is set.
        """
        self.sock = sock
        self.is_compositor_socket_set_up = sock is not None
        if sock is None and os.getenv("WAYFIRE_SOCKET"):
            self.connect_wayfire_ipc()

    def connect_wayfire_ipc(self) -> None:
        """Initializes the connection to the Wayfire IPC socket."""
        try:
            from wayfire import WayfireSocket

            self.sock = WayfireSocket()
            self.is_compositor_socket_set_up = True
        except Exception as e:
            logger.error(f"Failed to connect to Wayfire IPC: {e}")
            self.sock = None
            self.is_compositor_socket_set_up = False

    @property
    def connected(self) -> bool:
        return self.sock is not None and self.is_compositor_socket_set_up

    @handle_ipc_error
    def set_option_values(self, values: Dict[str, Any]) -> Any:
        """Set several ``section/option`` values in the compositor at once."""
        return self.sock.set_option_values(values)

    def set_option(self, section: str, name: str, value: str) -> Optional[Any]:
        logger.debug(f"Pushing {section}/{name} = {value} to the compositor")
        return self.set_option_values({f"{section}/{name}": value})
