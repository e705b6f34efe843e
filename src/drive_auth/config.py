# src/drive_auth/config.py
"""
Runtime configuration for drive_auth.

All values can be overridden via environment variables (a .env file is
loaded by the CLI before this is read):
    DRIVE_AUTH_CONFIG - Credential store path
    DRIVE_AUTH_TOKEN_URL - OAuth2 token endpoint
    DRIVE_AUTH_AUTH_URL - OAuth2 authorization endpoint (browser URL)
    DRIVE_AUTH_SCOPE - The single scope requested
    DRIVE_AUTH_REFRESH_THRESHOLD - Seconds before expiry the daemon renews (default: 300)
    DRIVE_AUTH_REFRESH_TIMEOUT - Bound on a single daemon refresh (default: 30)
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from .store import parse_assignments, format_assignment
from .utils.paths import get_config_pointer_file, get_default_config_path
from .utils.secure_io import read_text, write_restricted_text

lib_logger = logging.getLogger("drive_auth")

API_URL = "https://www.googleapis.com"
DEFAULT_SCOPE = f"{API_URL}/auth/drive"
DEFAULT_TOKEN_URL = "https://accounts.google.com/o/oauth2/token"
DEFAULT_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

CONFIG_ENV_VAR = "DRIVE_AUTH_CONFIG"


def _get_env_number(env: Mapping[str, str], key: str, default, cast):
    value = env.get(key)
    if value is not None and value != "":
        try:
            parsed = cast(value)
            if parsed > 0:
                return parsed
        except ValueError:
            pass
        lib_logger.warning(f"Invalid value for {key}: {value}. Using default: {default}")
    return default


def resolve_config_path(
    explicit: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Pick the credential store location.

    Priority: explicit argument > DRIVE_AUTH_CONFIG > pointer file > ~/.googledrive.conf
    """
    env = os.environ if env is None else env
    if explicit:
        return Path(explicit).expanduser()
    if env.get(CONFIG_ENV_VAR):
        return Path(env[CONFIG_ENV_VAR]).expanduser()

    pointer = get_config_pointer_file(home)
    if pointer.exists():
        recorded = parse_assignments(read_text(pointer)).get("CONFIG")
        if recorded:
            lib_logger.debug(f"Using credential store recorded in {pointer}")
            return Path(recorded).expanduser()

    return get_default_config_path(home)


def save_config_pointer(
    config_path: Union[str, Path], home: Optional[Union[str, Path]] = None
) -> Path:
    """Record config_path as the default credential store for later runs."""
    pointer = get_config_pointer_file(home)
    resolved = str(Path(config_path).expanduser().resolve())
    write_restricted_text(
        pointer, format_assignment("CONFIG", resolved) + "\n", lib_logger, final_mode=0o644
    )
    lib_logger.info(f"Default credential store set to {resolved}")
    return pointer


@dataclass
class AuthConfig:
    """Endpoints, scope and daemon policy for one credential check."""

    config_path: Path
    token_url: str = DEFAULT_TOKEN_URL
    auth_url: str = DEFAULT_AUTH_URL
    scope: str = DEFAULT_SCOPE
    redirect_uri: str = REDIRECT_URI
    refresh_threshold_seconds: int = 300
    refresh_timeout_seconds: float = 30.0

    @classmethod
    def from_env(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        home: Optional[Union[str, Path]] = None,
    ) -> "AuthConfig":
        env = os.environ if env is None else env
        return cls(
            config_path=resolve_config_path(config_path, env, home),
            token_url=env.get("DRIVE_AUTH_TOKEN_URL") or DEFAULT_TOKEN_URL,
            auth_url=env.get("DRIVE_AUTH_AUTH_URL") or DEFAULT_AUTH_URL,
            scope=env.get("DRIVE_AUTH_SCOPE") or DEFAULT_SCOPE,
            refresh_threshold_seconds=_get_env_number(
                env, "DRIVE_AUTH_REFRESH_THRESHOLD", 300, int
            ),
            refresh_timeout_seconds=_get_env_number(
                env, "DRIVE_AUTH_REFRESH_TIMEOUT", 30.0, float
            ),
        )
