"""
Configuration utilities for loading and managing config files.

This module provides centralized configuration loading with:
- YAML config file parsing
- Environment variable substitution (${VAR} syntax)
- Automatic .env file loading
- Built-in defaults for every section the pipeline reads

Usage:
    from archive_core.utils.config import load_config, get_credential

    config = load_config()  # Loads config with env substitution
    api_key = get_credential('RESEND_API_KEY')  # Get credential from .env
"""
import copy
from pathlib import Path
import yaml
import os
import re
from typing import Dict, Optional, Any
import logging
from dotenv import load_dotenv

# Use standard logging to avoid circular import
logger = logging.getLogger(__name__)

# Track if .env has been loaded
_env_loaded = False


DEFAULT_CONFIG: Dict[str, Any] = {
    'database': {
        'url': None,
        'host': 'localhost',
        'port': 5432,
        'database': 'archive',
        'user': 'archive',
        'password': '',
        'pool': {
            'enabled': True,
            'size': 5,
            'max_overflow': 5,
            'timeout': 30,
            'recycle': 1800,
            'pre_ping': True,
        },
        'connection': {
            'timeout': 10,
            'application_name': 'archive-core',
        },
    },
    'paths': {
        'build_path': 'build',
        'log_dir': 'logs',
    },
    'tools': {
        'ffmpeg': 'ffmpeg',
        'ffprobe': 'ffprobe',
        'gentle_command': None,
        'spacy_command': None,
        'stanford_command': None,
        'timeout_seconds': 3600,
    },
    'transcoding': {
        'maximum_allowable_delta_ms': 500,
        'video_bitrate': '1000k',
        'audio_bitrate': '128k',
        'resolution_mappings': [],
    },
    'captioning': {
        'max_cue_length': 64,
        'max_cue_duration_ms': 6000,
    },
    'entity_resolution': {
        'data_path': 'data/entities',
    },
    'processing': {
        'auto_publish': True,
        'semaphores': {
            'stale_after_minutes': None,
        },
    },
    'email': {
        'sender': None,
        'recipients': [],
        'message_level': 'all',
        'api_key': None,
    },
    'environments': {
        'processing': {},
        'production': {},
    },
}


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or parsed."""
    pass


def _ensure_env_loaded():
    """Ensure .env file is loaded (once)."""
    global _env_loaded
    if not _env_loaded:
        from .paths import get_env_path
        env_path = get_env_path()
        if env_path.exists():
            load_dotenv(env_path, override=True)
            logger.debug(f"Loaded environment from {env_path}")
        _env_loaded = True


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} patterns with environment variables."""
    if isinstance(value, str):
        pattern = r'\$\{([^}]+)\}'
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.getenv(var_name, '')
            value = value.replace(f'${{{var_name}}}', env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _deep_merge(default: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries."""
    result = default.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_config(config_path: Optional[Path] = None, substitute_env: bool = True) -> Dict:
    """Load configuration from yaml file with optional env variable substitution.

    Values found in the file are merged over DEFAULT_CONFIG. When no path is
    given and the default config file does not exist, the defaults are used.

    Args:
        config_path: Optional path to config file. If not provided, will look in default location.
        substitute_env: If True, substitute ${VAR} patterns with environment variables.

    Returns:
        Dict containing configuration settings with env vars substituted.

    Raises:
        ConfigError: If an explicitly requested file is missing or the YAML is invalid.
    """
    _ensure_env_loaded()

    explicit = config_path is not None
    if config_path is None:
        from .paths import get_config_path
        config_path = get_config_path()
    config_path = Path(config_path)

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.warning(f"Config file {config_path} not found, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if substitute_env:
        loaded = _substitute_env_vars(loaded)

    return _deep_merge(copy.deepcopy(DEFAULT_CONFIG), loaded)


def get_credential(name: str, default: Optional[str] = None) -> Optional[str]:
    """Get a credential from environment variables.

    Args:
        name: Environment variable name (e.g., 'RESEND_API_KEY')
        default: Default value if not found

    Returns:
        Credential value or default
    """
    _ensure_env_loaded()
    return os.getenv(name, default)
