from .config import AuthConfig
from .credential_manager import CredentialCheckResult, CredentialManager, CredentialOptions
from .errors import (
    AccountNotFoundError,
    DriveAuthError,
    InvalidInputError,
    InvalidServiceAccountFileError,
    MissingDependencyError,
    NotInteractiveError,
    StoreIOError,
    TokenExchangeError,
)
from .models import AccessTokenMode, AccountRecord, Session, TokenMirror, TokenState
from .store import CredentialStore

__all__ = [
    "AuthConfig",
    "CredentialManager",
    "CredentialOptions",
    "CredentialCheckResult",
    "CredentialStore",
    "Session",
    "AccountRecord",
    "AccessTokenMode",
    "TokenMirror",
    "TokenState",
    "DriveAuthError",
    "InvalidInputError",
    "NotInteractiveError",
    "TokenExchangeError",
    "MissingDependencyError",
    "InvalidServiceAccountFileError",
    "StoreIOError",
    "AccountNotFoundError",
]
