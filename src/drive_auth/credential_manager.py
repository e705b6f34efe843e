# src/drive_auth/credential_manager.py

import logging
from dataclasses import dataclass, field
from typing import Optional

from .accounts import AccountResolver
from .authorization_flow import check_refresh_token
from .background_refresher import BackgroundRefresher
from .client_identity import CREDENTIALS_REMEDIATION, ClientField, check_client_field
from .errors import AccountNotFoundError, NotInteractiveError
from .models import AccessTokenMode
from .service_account import ServiceAccountFlow
from .token_cache import ensure_access_token

lib_logger = logging.getLogger("drive_auth")


@dataclass
class CredentialOptions:
    """
    What the host asks of a credential check.

    Attributes:
        no_token_service: Do not start the background refresher
        new_account_name: Create and use a new account ("" asks for the name)
        custom_account_name: Use this existing account instead of the default
        delete_account_name: Delete this account before anything else
        list_accounts: Print the configured accounts
        service_account_file: Authenticate with this key file instead
        force_refresh: Exchange for a new access token even if the cached one is valid
    """

    no_token_service: bool = False
    new_account_name: Optional[str] = None
    custom_account_name: Optional[str] = None
    delete_account_name: Optional[str] = None
    list_accounts: bool = False
    service_account_file: Optional[str] = None
    force_refresh: bool = False


@dataclass
class CredentialCheckResult:
    account_name: str
    access_token: str = field(repr=False)
    expiry: int
    mode: AccessTokenMode = AccessTokenMode.NORMAL
    is_new_account: bool = False
    refresh_token: str = field(default="", repr=False)
    refresher: Optional[BackgroundRefresher] = None


class CredentialManager:
    """
    Runs the whole credential check for a host operation: account selection,
    long-lived secrets, a usable access token and, unless suppressed, the
    background refresher.
    """

    def __init__(self, session):
        self.session = session
        self.accounts = AccountResolver(session)

    async def _check_user_account(self, options: CredentialOptions):
        session = self.session
        resolved = self.accounts.resolve_active_account(
            new_account_name=options.new_account_name,
            custom_account_name=options.custom_account_name,
        )

        if options.list_accounts:
            self.accounts.show_accounts()

        account = self.accounts.load_account(resolved.name)
        session.account = account
        session.mode = AccessTokenMode.NORMAL
        lib_logger.info(f"Using account '{account.name}'")

        if not account.is_complete:
            if options.custom_account_name and not resolved.is_new:
                raise AccountNotFoundError(options.custom_account_name)
            if not session.prompter.is_interactive():
                raise NotInteractiveError(
                    "Not running in a terminal, cannot ask for credentials.",
                    CREDENTIALS_REMEDIATION,
                )

        check_client_field(session, ClientField.ID)
        check_client_field(session, ClientField.SECRET)
        await check_refresh_token(session)

        if resolved.persist_default:
            self.accounts.set_default(account.name)
        return resolved

    async def check_credentials(
        self, options: Optional[CredentialOptions] = None
    ) -> CredentialCheckResult:
        """
        Establish credentials and return a usable access token.

        Raises:
            DriveAuthError: Any unrecoverable failure; the host operation
                should be aborted.
        """
        options = options or CredentialOptions()
        session = self.session
        session.store.ensure_exists()

        if options.delete_account_name:
            self.accounts.delete_account(options.delete_account_name)

        is_new = False
        if options.service_account_file:
            ServiceAccountFlow.prepare(session, options.service_account_file)
        else:
            resolved = await self._check_user_account(options)
            is_new = resolved.is_new

        account = session.account
        token = await ensure_access_token(
            session, account, force_refresh=options.force_refresh
        )

        refresher = None
        if not options.no_token_service:
            refresher = BackgroundRefresher(session)
            refresher.start()

        return CredentialCheckResult(
            account_name=account.name,
            access_token=token,
            expiry=account.access_token_expiry,
            mode=session.mode,
            is_new_account=is_new,
            refresh_token=account.refresh_token,
            refresher=refresher,
        )
