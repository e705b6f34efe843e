# src/drive_auth/utils/paths.py
"""
Centralized path management for drive_auth.

Everything lives under the per-user info directory
(~/.google-drive-upload) except the credential store itself, whose
location is selected in this order:

1. An explicit path (CLI flag or DRIVE_AUTH_CONFIG)
2. The path recorded in the config pointer file
3. ~/.googledrive.conf
"""

from pathlib import Path
from typing import Optional, Union

INFO_DIR_NAME = ".google-drive-upload"
CONFIG_POINTER_NAME = "google-drive-upload.configpath"
DEFAULT_CONFIG_NAME = ".googledrive.conf"


def get_info_dir(home: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the per-user info directory (does not create it).

    Args:
        home: Optional home directory. If None, uses Path.home().
    """
    base = Path(home) if home else Path.home()
    return base / INFO_DIR_NAME


def get_config_pointer_file(home: Optional[Union[Path, str]] = None) -> Path:
    """Path of the file that records a non-default credential store location."""
    return get_info_dir(home) / CONFIG_POINTER_NAME


def get_default_config_path(home: Optional[Union[Path, str]] = None) -> Path:
    """Credential store location used when nothing else is configured."""
    base = Path(home) if home else Path.home()
    return base / DEFAULT_CONFIG_NAME


def get_logs_dir(root: Optional[Union[Path, str]] = None) -> Path:
    """
    Get the logs directory, creating it if needed.

    Args:
        root: Optional root directory. If None, uses get_info_dir().

    Returns:
        Path to the logs directory
    """
    base = Path(root) if root else get_info_dir()
    logs_dir = base / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir
