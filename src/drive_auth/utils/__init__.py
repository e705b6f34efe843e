# src/drive_auth/utils/__init__.py

from .headless_detection import is_headless_environment
from .json_fields import extract_json_field, parse_json_object
from .paths import (
    get_info_dir,
    get_config_pointer_file,
    get_default_config_path,
    get_logs_dir,
)
from .secure_io import ensure_restricted_file, read_text, write_restricted_text

__all__ = [
    "is_headless_environment",
    "extract_json_field",
    "parse_json_object",
    "get_info_dir",
    "get_config_pointer_file",
    "get_default_config_path",
    "get_logs_dir",
    "ensure_restricted_file",
    "read_text",
    "write_restricted_text",
]
