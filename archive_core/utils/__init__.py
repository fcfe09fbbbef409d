"""
Shared utilities: configuration, paths, logging, node identity and media tools.
"""

from .config import load_config, get_credential, ConfigError
from .logger import setup_worker_logger
from .node_utils import get_hostname, get_process_id

__all__ = [
    'load_config',
    'get_credential',
    'ConfigError',
    'setup_worker_logger',
    'get_hostname',
    'get_process_id',
]
