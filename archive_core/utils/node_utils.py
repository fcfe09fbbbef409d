"""
Node identification utilities.

Every lock row and log line is tagged with the host and process that
produced it, so these helpers are the single place that decides how a
processing node names itself.
"""

import os
import socket
from typing import Optional

_hostname: Optional[str] = None


def get_hostname() -> str:
    """Get the lower-cased hostname of this machine."""
    global _hostname
    if _hostname is None:
        try:
            _hostname = socket.gethostname().lower()
        except OSError:
            _hostname = "unknown-host"
    return _hostname


def get_process_id() -> int:
    """Get the operating system process id of this process."""
    return os.getpid()


def get_node_tag() -> str:
    """Get a host:pid tag identifying this processing node."""
    return f"{get_hostname()}:{get_process_id()}"
