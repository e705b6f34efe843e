# src/drive_auth/client_identity.py

import re
import logging
from enum import Enum

from .errors import DriveAuthError
from .prompts import ValidatedPrompt

lib_logger = logging.getLogger("drive_auth")

CLIENT_ID_REGEX = re.compile(r"\d+-[0-9A-Za-z_]{32}\.apps\.googleusercontent\.com")
CLIENT_SECRET_REGEX = re.compile(r"[0-9A-Za-z_-]+")

CREDENTIALS_REMEDIATION = (
    "Add them to the config file manually if no terminal is available: "
    "CLIENT_ID, CLIENT_SECRET and REFRESH_TOKEN are required."
)


class ClientField(str, Enum):
    ID = "ID"
    SECRET = "SECRET"

    @property
    def store_field(self) -> str:
        return f"CLIENT_{self.value}"

    @property
    def attr(self) -> str:
        return f"client_{self.value.lower()}"

    @property
    def regex(self) -> "re.Pattern":
        return CLIENT_ID_REGEX if self is ClientField.ID else CLIENT_SECRET_REGEX


def is_valid_client_field(kind: ClientField, value: str) -> bool:
    return bool(value and kind.regex.match(value))


def check_client_field(session, kind: ClientField) -> str:
    """
    Return a valid client id or secret for the session's account.

    A valid stored value is returned untouched. Otherwise the operator is
    asked until a valid value is entered, which is persisted right away.

    Raises:
        NotInteractiveError: A value is needed and no terminal is attached
    """
    account = session.account
    if account is None:
        raise DriveAuthError("No active account to check client credentials for")

    stored = getattr(account, kind.attr)
    if is_valid_client_field(kind, stored):
        return stored

    initial_error = ""
    if stored:
        lib_logger.warning(f"Stored client {kind.value.lower()} for '{account.name}' is malformed")
        initial_error = f" Invalid Client {kind.value} in config ({session.store.path}) "

    prompt = ValidatedPrompt(
        label=f"Client {kind.value}",
        question=f"Enter Client {kind.value}",
        validator=lambda value: is_valid_client_field(kind, value),
        retry_message=f" Invalid Client {kind.value} - Try again ",
        remediation=CREDENTIALS_REMEDIATION,
    )
    value = prompt.run(session.prompter, initial_error)

    session.store.set_account_field(account.name, kind.store_field, value)
    setattr(account, kind.attr, value)
    lib_logger.info(f"Saved client {kind.value.lower()} for account '{account.name}'")
    return value
