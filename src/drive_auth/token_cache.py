# src/drive_auth/token_cache.py
"""
Access-token cache.

An access token is reused while it looks like a Google access token and has
not expired; otherwise a new one is obtained with the refresh-token grant
(user accounts) or a signed JWT-bearer grant (service accounts).
"""

import re
import logging
from typing import Optional

from .errors import DriveAuthError, TokenExchangeError
from .models import AccessTokenMode, AccountRecord, TokenState
from .oauth_client import TokenResponse
from .service_account import ServiceAccountFlow
from .store import account_key

lib_logger = logging.getLogger("drive_auth")

ACCESS_TOKEN_REGEX = re.compile(r"ya29\.[0-9A-Za-z_-]+")


def needs_refresh(token: str, expiry: int, now: int, force: bool = False) -> bool:
    """True when the cached token cannot be used as-is."""
    return bool(
        force
        or not token
        or int(expiry or 0) < int(now)
        or not ACCESS_TOKEN_REGEX.match(token)
    )


async def _request_token(
    session, account: Optional[AccountRecord], mode: AccessTokenMode
) -> TokenResponse:
    if mode == AccessTokenMode.SERVICE_ACCOUNT:
        return await ServiceAccountFlow.exchange(session)

    source = account or session.account
    if source is None or not source.refresh_token:
        raise DriveAuthError("No refresh token available to obtain an access token")
    return await session.endpoint.refresh(
        source.client_id, source.client_secret, source.refresh_token
    )


async def ensure_access_token(
    session,
    account: Optional[AccountRecord] = None,
    force_refresh: bool = False,
    mode: Optional[AccessTokenMode] = None,
    response: Optional[TokenResponse] = None,
) -> str:
    """
    Return a usable access token, exchanging for a new one when needed.

    Args:
        session: Active session
        account: Record whose cached token is checked and which receives the
            new token in the store. None checks and updates only the
            in-memory mirror (used by the background refresher).
        force_refresh: Exchange even if the cached token looks valid
        mode: Grant to use; defaults to the session's mode
        response: An already received token response (from the
            authorization-code exchange) to use instead of a network call

    Raises:
        TokenExchangeError: The response carries no access_token. The raw
            body is attached for the operator; nothing is retried here.
    """
    mode = mode or session.mode
    if account is not None:
        token, expiry = account.access_token, account.access_token_expiry
    else:
        state = session.token.snapshot()
        token, expiry = state.value, state.expiry

    if response is None and not needs_refresh(token, expiry, session.now(), force_refresh):
        lib_logger.debug(
            f"Cached access token valid for {expiry - session.now()}s, no exchange needed"
        )
        if session.token.snapshot() != TokenState(token, expiry):
            session.token.update(TokenState(token, expiry))
        return token

    if response is None:
        lib_logger.debug(
            f"Requesting new access token (mode: {mode.value}, forced: {force_refresh})"
        )
        response = await _request_token(session, account, mode)

    new_token = response.access_token
    if not new_token:
        lib_logger.error("Something went wrong while fetching the access token")
        raise TokenExchangeError(response.raw, "access_token")

    new_expiry = session.now() + response.expires_in - 1
    if account is not None:
        session.store.update(
            {
                account_key(account.name, "ACCESS_TOKEN"): new_token,
                account_key(account.name, "ACCESS_TOKEN_EXPIRY"): str(new_expiry),
            }
        )
        account.access_token = new_token
        account.access_token_expiry = new_expiry

    session.token.update(TokenState(new_token, new_expiry))
    lib_logger.info(f"Obtained new access token, expires at {new_expiry}")
    return new_token
