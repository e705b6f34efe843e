# src/drive_auth/errors.py

import os
from typing import Optional


class DriveAuthError(Exception):
    """Base class for every credential-check failure surfaced to the host."""

    pass


class InvalidInputError(DriveAuthError):
    """
    Raised when an operator-supplied value (client id/secret, refresh token,
    authorization code, account name) fails its format check.

    Always recoverable by re-prompting; only escapes the prompt loops when a
    caller validates a single value outside of one.
    """

    def __init__(self, field: str, value: str = "", message: str = ""):
        self.field = field
        self.value = value
        self.message = message or f"Invalid {field}"
        super().__init__(self.message)


class NotInteractiveError(DriveAuthError):
    """
    Raised when a prompt is required but no terminal is attached.

    Attributes:
        remediation: Text telling the operator how to fix the setup by hand
    """

    def __init__(self, message: str, remediation: str = ""):
        self.message = message
        self.remediation = remediation
        super().__init__(f"{message} {remediation}".strip())


class TokenExchangeError(DriveAuthError):
    """
    Raised when the token endpoint response lacks the expected field.

    The raw response is kept so it can be shown to the operator as-is.

    Attributes:
        raw_response: Response body exactly as received (or transport error text)
        expected_field: JSON key that was missing
    """

    def __init__(
        self,
        raw_response: str,
        expected_field: str = "access_token",
        message: str = "",
    ):
        self.raw_response = raw_response
        self.expected_field = expected_field
        self.message = (
            message or f"Token exchange failed: response has no '{expected_field}'"
        )
        super().__init__(self.message)


class MissingDependencyError(DriveAuthError):
    """Raised when the RS256 signing backend needed for service accounts is unavailable."""

    pass


class InvalidServiceAccountFileError(DriveAuthError):
    """Raised when the service-account key file cannot be read, parsed or used to sign."""

    def __init__(self, path: Optional[str], message: str = ""):
        self.path = path
        self.message = message or f"Invalid service account file: {path}"
        super().__init__(self.message)


class StoreIOError(DriveAuthError):
    """Raised when the credential store cannot be read, rewritten or chmod-ed."""

    def __init__(self, path: str, message: str = ""):
        self.path = path
        self.message = message or f"Credential store I/O failed for '{path}'"
        super().__init__(self.message)


class AccountNotFoundError(DriveAuthError):
    """Raised when an explicitly selected account has no stored credentials."""

    def __init__(self, account_name: str):
        self.account_name = account_name
        super().__init__(f"No such account ( {account_name} ) exists.")


def mask_credential(credential: str) -> str:
    """
    Mask a credential for safe display in logs and error messages.

    - For tokens and secrets: shows last 6 characters (e.g., "...xyz123")
    - For key file paths: shows just the filename (e.g., "sa-key.json")
    """
    if not credential:
        return "<empty>"
    if os.path.isfile(credential) or credential.endswith(".json"):
        return os.path.basename(credential)
    elif len(credential) > 6:
        return f"...{credential[-6:]}"
    else:
        return "***"
