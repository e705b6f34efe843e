# src/drive_auth/authorization_flow.py
"""
User-account authorization.

Ends with a refresh token persisted for the session's account, reached
through the first step that succeeds:

1. The stored refresh token is accepted by the token endpoint
2. The operator pastes a refresh token they already have
3. The operator authorizes in a browser and pastes the code shown
   (out-of-band redirect), which is exchanged for a refresh token
"""

import re
import logging
import webbrowser
from urllib.parse import urlencode

from .client_identity import CREDENTIALS_REMEDIATION
from .errors import DriveAuthError, NotInteractiveError, TokenExchangeError, mask_credential
from .models import AccessTokenMode
from .prompts import PromptState, ValidatedPrompt
from .token_cache import ensure_access_token
from .utils.headless_detection import is_headless_environment

lib_logger = logging.getLogger("drive_auth")

REFRESH_TOKEN_REGEX = re.compile(r"\d+//[0-9A-Za-z_-]+")
AUTHORIZATION_CODE_REGEX = re.compile(r"\d/[0-9A-Za-z_-]+")


def build_authorization_url(config, client_id: str) -> str:
    params = {
        "client_id": client_id,
        "redirect_uri": config.redirect_uri,
        "scope": config.scope,
        "response_type": "code",
        "prompt": "consent",
    }
    return f"{config.auth_url}?{urlencode(params, safe=':/')}"


async def _validate_refresh_token(session, refresh_token: str) -> bool:
    """Try the token with a forced refresh; True if it produced an access token."""
    account = session.account
    previous = account.refresh_token
    account.refresh_token = refresh_token
    try:
        await ensure_access_token(
            session, account, force_refresh=True, mode=AccessTokenMode.NORMAL
        )
        return True
    except TokenExchangeError as e:
        lib_logger.warning(
            f"Refresh token {mask_credential(refresh_token)} rejected for '{account.name}'"
        )
        lib_logger.debug(f"Token endpoint response: {e.raw_response}")
        account.refresh_token = previous
        return False


async def _prompt_existing_token(session) -> str:
    prompter = session.prompter
    prompter.notify(
        "If you have a refresh token generated, then type the token, "
        "else leave blank and press return key.."
    )
    prompt = ValidatedPrompt(
        label="Refresh token",
        question="Refresh Token",
        validator=lambda value: bool(REFRESH_TOKEN_REGEX.match(value)),
        allow_blank=True,
    )
    # one attempt only: anything but a valid token falls through to the code exchange
    state = prompt.submit(prompter.ask(prompt.question, password=True))
    entered = prompt.value
    if not entered:
        prompter.notify(" No Refresh token given, follow below steps to generate.. ")
        return ""

    prompter.notify(" Checking refresh token.. ")
    if state is PromptState.VALID and await _validate_refresh_token(session, entered):
        session.store.set_account_field(session.account.name, "REFRESH_TOKEN", entered)
        return entered

    session.account.refresh_token = ""
    prompter.notify(
        " Error: Invalid Refresh token given, follow below steps to generate.. ",
        style="bold red",
    )
    return ""


def _open_browser(url: str) -> None:
    if is_headless_environment():
        return
    try:
        webbrowser.open(url)
        lib_logger.info("Browser opened for authorization")
    except webbrowser.Error as e:
        lib_logger.warning(f"Failed to open browser automatically: {e}. Please open the URL manually.")


async def _exchange_authorization_code(session) -> str:
    account = session.account
    prompter = session.prompter

    url = build_authorization_url(session.config, account.client_id)
    prompter.notify("Visit the below URL, tap on allow and then enter the code obtained")
    prompter.notify(url, style="bold")
    _open_browser(url)

    code = ValidatedPrompt(
        label="Authorization code",
        question="Enter the authorization code",
        validator=lambda value: bool(AUTHORIZATION_CODE_REGEX.match(value)),
        retry_message=" Invalid CODE given, try again.. ",
        remediation=CREDENTIALS_REMEDIATION,
    ).run(prompter)

    lib_logger.info("Exchanging authorization code for tokens...")
    response = await session.endpoint.exchange_authorization_code(
        account.client_id, account.client_secret, code, session.config.redirect_uri
    )
    refresh_token = response.refresh_token
    if not refresh_token:
        raise TokenExchangeError(
            response.raw,
            "refresh_token",
            message="Authorization code exchange returned no refresh_token",
        )

    account.refresh_token = refresh_token
    session.store.set_account_field(account.name, "REFRESH_TOKEN", refresh_token)
    await ensure_access_token(
        session,
        account,
        force_refresh=True,
        mode=AccessTokenMode.NORMAL,
        response=response,
    )
    lib_logger.info(f"Account '{account.name}' authorized")
    return refresh_token


async def check_refresh_token(session) -> str:
    """
    Make sure the session's account has a working refresh token.

    Raises:
        NotInteractiveError: The stored token is missing or unusable and
            there is no terminal to obtain a new one
        TokenExchangeError: The authorization code exchange failed
    """
    account = session.account
    if account is None:
        raise DriveAuthError("No active account to authorize")
    prompter = session.prompter

    stored = account.refresh_token
    if stored:
        if REFRESH_TOKEN_REGEX.match(stored):
            if await _validate_refresh_token(session, stored):
                return stored
            prompter.notify(
                " Error: Refresh token in config file was rejected, follow below steps.. ",
                style="bold red",
            )
        else:
            prompter.notify(
                " Error: Invalid Refresh token in config file, follow below steps.. ",
                style="bold red",
            )
        account.refresh_token = ""

    if not prompter.is_interactive():
        raise NotInteractiveError(
            "Refresh token is required but no terminal is attached.",
            CREDENTIALS_REMEDIATION,
        )

    entered = await _prompt_existing_token(session)
    if entered:
        return entered
    return await _exchange_authorization_code(session)
