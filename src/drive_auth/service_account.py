# src/drive_auth/service_account.py
"""
Service-account authentication (JWT-bearer grant).

A service account has no refresh token: every renewal builds a fresh RS256
signed assertion from the key file and trades it for an access token.
Signing uses google-auth's RSA signer, so the key material never leaves the
process.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .errors import InvalidServiceAccountFileError, MissingDependencyError
from .models import (
    SERVICE_ACCOUNT_ROOT_FOLDER,
    SERVICE_ACCOUNT_ROOT_FOLDER_NAME,
    AccessTokenMode,
    AccountRecord,
)
from .oauth_client import TokenResponse

lib_logger = logging.getLogger("drive_auth")

ASSERTION_LIFETIME_SECONDS = 3600
REQUIRED_KEY_FIELDS = ("private_key_id", "client_email", "private_key")


@dataclass(frozen=True)
class ServiceAccountKey:
    """The parts of a service-account JSON key used for signing."""

    client_email: str
    private_key: str = field(repr=False)
    private_key_id: str
    token_uri: Optional[str] = None
    path: Optional[str] = None

    @property
    def account_name(self) -> str:
        return f"SA_{self.private_key_id}_SA"

    @classmethod
    def from_info(
        cls, info: Mapping[str, Any], path: Optional[str] = None
    ) -> "ServiceAccountKey":
        missing = [k for k in REQUIRED_KEY_FIELDS if not info.get(k)]
        if missing:
            raise InvalidServiceAccountFileError(
                path, f"Invalid service account file: missing {', '.join(missing)}"
            )
        return cls(
            client_email=str(info["client_email"]),
            private_key=str(info["private_key"]),
            private_key_id=str(info["private_key_id"]),
            token_uri=info.get("token_uri") or None,
            path=path,
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ServiceAccountKey":
        path = str(Path(path).expanduser())
        try:
            with open(path, "r", encoding="utf-8") as f:
                info = json.load(f)
        except (OSError, IOError) as e:
            raise InvalidServiceAccountFileError(
                path, f"Cannot read service account file '{path}': {e}"
            ) from e
        except json.JSONDecodeError as e:
            raise InvalidServiceAccountFileError(
                path, f"Invalid service account file '{path}': not JSON ({e})"
            ) from e
        if not isinstance(info, dict):
            raise InvalidServiceAccountFileError(path)
        return cls.from_info(info, path)


def _load_crypt():
    try:
        from google.auth import crypt, jwt
    except ImportError as e:
        raise MissingDependencyError(
            "Service account mode needs an RS256 signer: install 'google-auth' and 'cryptography'."
        ) from e
    return crypt, jwt


def build_assertion(
    key: ServiceAccountKey,
    scope: str,
    now: int,
    audience: Optional[str] = None,
) -> str:
    """
    Build the signed JWT for the jwt-bearer grant.

    Args:
        key: Parsed service-account key
        scope: Space separated scopes requested
        now: Issue time in epoch seconds
        audience: Token endpoint; defaults to the key's token_uri

    Raises:
        MissingDependencyError: google-auth / cryptography not installed
        InvalidServiceAccountFileError: The private key cannot be loaded
    """
    crypt, jwt = _load_crypt()
    audience = audience or key.token_uri
    if not audience:
        raise InvalidServiceAccountFileError(key.path, "No token audience for assertion")

    now = int(now)
    claims = {
        "iss": key.client_email,
        "scope": scope,
        "aud": audience,
        "exp": now + ASSERTION_LIFETIME_SECONDS,
        "iat": now,
    }
    try:
        # no key_id: the header stays {"typ": "JWT", "alg": "RS256"}
        signer = crypt.RSASigner.from_string(key.private_key)
        assertion = jwt.encode(signer, claims)
    except (ValueError, TypeError) as e:
        raise InvalidServiceAccountFileError(
            key.path, f"Cannot sign with service account key: {e}"
        ) from e

    return assertion.decode("ascii")


class ServiceAccountFlow:
    """Turns a key file into an account record and issues JWT-bearer exchanges."""

    @staticmethod
    def prepare(session, path: Union[str, Path]) -> AccountRecord:
        """
        Parse the key file and make its account the session's active one.

        Any cached token/expiry for the account is loaded from the store so
        a still-valid token is reused. Root folder fields are fixed: the
        service account's own drive root.
        """
        _load_crypt()
        key = ServiceAccountKey.from_file(path)
        stored = session.store.load().account(key.account_name)

        account = AccountRecord(
            name=key.account_name,
            root_folder=SERVICE_ACCOUNT_ROOT_FOLDER,
            root_folder_name=SERVICE_ACCOUNT_ROOT_FOLDER_NAME,
        )
        if stored:
            account.access_token = stored.access_token
            account.access_token_expiry = stored.access_token_expiry

        session.service_account_key = key
        session.account = account
        session.mode = AccessTokenMode.SERVICE_ACCOUNT
        lib_logger.info(
            f"Using service account {key.client_email} as '{account.name}'"
        )
        return account

    @staticmethod
    async def exchange(session) -> TokenResponse:
        key = session.service_account_key
        if key is None:
            raise InvalidServiceAccountFileError(None, "No service account key loaded")
        assertion = build_assertion(
            key,
            session.config.scope,
            session.now(),
            audience=key.token_uri or session.config.token_url,
        )
        return await session.endpoint.jwt_bearer(assertion)
