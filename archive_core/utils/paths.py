"""
Path utilities for consistent path resolution across the codebase.

Usage:
    from archive_core.utils.paths import get_project_root, get_config_path

    root = get_project_root()
    config = get_config_path()
"""
from pathlib import Path
from typing import Dict, Optional, Union
import os

# Cache the project root
_project_root: Optional[Path] = None


def get_project_root() -> Path:
    """Get the project root directory (where config/ lives).

    Returns:
        Path to project root
    """
    global _project_root
    if _project_root is None:
        # This file is at archive_core/utils/paths.py, so go up 3 levels
        _project_root = Path(__file__).parent.parent.parent.resolve()
    return _project_root


def get_env_path() -> Path:
    """Get the path to the .env file holding credentials."""
    return get_project_root() / '.env'


def get_config_path(filename: str = "config.yaml") -> Path:
    """Get path to a config file.

    The ARCHIVE_CORE_CONFIG environment variable overrides the default
    location of the main config file.

    Args:
        filename: Config filename (default: config.yaml)

    Returns:
        Path to config file
    """
    override = os.environ.get('ARCHIVE_CORE_CONFIG')
    if override and filename == "config.yaml":
        return Path(override)
    return get_project_root() / "config" / filename


def resolve_path(value: Union[str, Path]) -> Path:
    """Resolve a configured path, treating relative paths as project-relative."""
    path = Path(value)
    if not path.is_absolute():
        path = get_project_root() / path
    return path


def get_build_path(config: Dict) -> Path:
    """Root folder for generated media, captions and intermediate data."""
    return resolve_path(config['paths']['build_path'])


def get_segment_data_path(config: Dict, collection_id: int, segment_id: int) -> Path:
    """Folder for a segment's intermediate files: <build>/Data/<collection>/<segment>."""
    return get_build_path(config) / "Data" / str(collection_id) / str(segment_id)


def get_log_dir(config: Dict) -> Path:
    """Get the log directory from config."""
    return resolve_path(config['paths']['log_dir'])


def ensure_dir(path: Union[str, Path]) -> Path:
    """Create a directory (and parents) if missing and return it."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
