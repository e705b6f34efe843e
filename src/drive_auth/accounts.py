# src/drive_auth/accounts.py

import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import NotInteractiveError
from .models import AccountRecord
from .store import (
    ACCOUNT_NAME_REGEX,
    DEFAULT_ACCOUNT_KEY,
    StoreSnapshot,
    account_key,
)

lib_logger = logging.getLogger("drive_auth")

LEGACY_BASE_NAME = "default"
# Unnamespaced fields copied into the migrated account
LEGACY_MIGRATED_FIELDS = (
    "CLIENT_ID",
    "CLIENT_SECRET",
    "REFRESH_TOKEN",
    "ROOT_FOLDER",
    "ROOT_FOLDER_NAME",
)


@dataclass
class ResolvedAccount:
    """
    Outcome of account resolution.

    Attributes:
        name: Account the credential check will use
        is_new: The name was just chosen for a new account
        persist_default: No default existed; write DEFAULT_ACCOUNT once the
            credentials for `name` are established
    """

    name: str
    is_new: bool = False
    persist_default: bool = False


class AccountResolver:
    """Selects, creates, lists and deletes accounts in the session's store."""

    def __init__(self, session):
        self.session = session

    @property
    def store(self):
        return self.session.store

    @property
    def prompter(self):
        return self.session.prompter

    def _snapshot(self) -> StoreSnapshot:
        return self.store.load()

    def account_exists(self, name: str, snapshot: Optional[StoreSnapshot] = None) -> bool:
        record = (snapshot or self._snapshot()).account(name)
        return bool(record and record.is_complete)

    def load_account(self, name: str) -> AccountRecord:
        """The stored record for `name`, or an empty one for a new account."""
        return self._snapshot().account(name) or AccountRecord(name=name)

    def list_accounts(self, snapshot: Optional[StoreSnapshot] = None) -> List[str]:
        """Complete accounts, in the order they appear in the store."""
        snapshot = snapshot or self._snapshot()
        return [n for n in snapshot.account_names() if self.account_exists(n, snapshot)]

    def show_accounts(self, names: Optional[List[str]] = None) -> List[str]:
        names = self.list_accounts() if names is None else names
        if not names:
            self.prompter.notify(" No accounts configured yet. ")
            return names
        self.prompter.notify(" All available accounts. ")
        for index, name in enumerate(names, start=1):
            self.prompter.notify(f"{index}. {name}")
        return names

    def choose_new_account_name(self, hint: Optional[str] = "") -> str:
        """
        Return a valid account name that is not in use yet.

        Raises:
            NotInteractiveError: `hint` is unusable and there is no terminal
        """
        name = (hint or "").strip()
        if not name or self.account_exists(name):
            self.show_accounts()
            self.prompter.notify(" New account name: ")
            self.prompter.notify(
                "Info: Account names can only contain alphabets / numbers / underscores."
            )

        while True:
            if name:
                if not ACCOUNT_NAME_REGEX.match(name):
                    self.prompter.notify(
                        f" Given account name ( {name} ) invalid, input different name. "
                    )
                    name = ""
                    continue
                if self.account_exists(name):
                    self.prompter.notify(
                        f" Given account ( {name} ) already exists, input different name. "
                    )
                    name = ""
                    continue
                break

            if not self.prompter.is_interactive():
                raise NotInteractiveError(
                    "Not running in an interactive terminal, cannot ask for new account name.",
                    "Pass an unused account name made of letters, digits and underscores.",
                )
            name = (self.prompter.ask("->") or "").strip()

        self.prompter.notify(f" Given account name: {name} ")
        return name

    def delete_account(self, name: str) -> bool:
        if not self.account_exists(name):
            lib_logger.warning(f"Cannot delete account '{name}': no such account")
            self.prompter.notify(
                f" Error: Cannot delete account ( {name} ) from config. No such account exists ",
                style="bold red",
            )
            return False
        self.store.delete(name)
        lib_logger.info(f"Deleted account '{name}'")
        self.prompter.notify(f" Successfully deleted account ( {name} ) from config. ")
        return True

    def set_default(self, name: str) -> None:
        self.store.upsert(DEFAULT_ACCOUNT_KEY, name)
        lib_logger.info(f"Default account set to '{name}'")

    def clear_default(self) -> None:
        self.store.remove([DEFAULT_ACCOUNT_KEY])

    def migrate_legacy(self) -> Optional[str]:
        """
        Move single-account credentials into a namespaced account.

        The new account is named "default", or default1, default2, ... when
        that name is taken. All unnamespaced account fields are dropped.

        Returns:
            The new account's name, or None if there was nothing to migrate
        """
        snapshot = self._snapshot()
        legacy = snapshot.legacy_fields
        if not (
            legacy.get("CLIENT_ID")
            and legacy.get("CLIENT_SECRET")
            and legacy.get("REFRESH_TOKEN")
        ):
            return None

        taken = snapshot.accounts
        name = LEGACY_BASE_NAME
        counter = 0
        while name in taken:
            counter += 1
            name = f"{LEGACY_BASE_NAME}{counter}"

        changes = {
            account_key(name, store_field): legacy.get(store_field, "")
            for store_field in LEGACY_MIGRATED_FIELDS
        }
        self.store.update(changes, remove=list(legacy))
        lib_logger.info(f"Migrated single-account config into account '{name}'")
        return name

    def _choose_from(self, names: List[str]) -> str:
        self.show_accounts(names)
        self.prompter.notify(" Above accounts are configured, but default one not set. ")
        if not self.prompter.is_interactive():
            lib_logger.warning(
                "Not running in a terminal, choosing first account as default."
            )
            self.prompter.notify(
                "Warning: Script is not running in a terminal, choosing first account as default.",
                style="yellow",
            )
            return names[0]

        self.prompter.notify(" Choose default account: ")
        while True:
            answer = (self.prompter.ask("->") or "").strip()
            if answer.isdigit() and 1 <= int(answer) <= len(names):
                return names[int(answer) - 1]
            self.prompter.notify(" Invalid choice, try again.. ", style="bold red")

    def resolve_active_account(
        self,
        new_account_name: Optional[str] = None,
        custom_account_name: Optional[str] = None,
    ) -> ResolvedAccount:
        """
        Pick the account for this run.

        new_account_name="" asks for the new name.

        Priority: new account > custom account > stored default > migrated
        legacy account > the only complete account > operator's choice among
        several > a new account.
        """
        snapshot = self._snapshot()
        had_default = bool(snapshot.default_account)
        migrated = self.migrate_legacy()

        if new_account_name is not None:
            name = self.choose_new_account_name(new_account_name)
            return ResolvedAccount(name, is_new=True, persist_default=not had_default)

        if custom_account_name:
            return ResolvedAccount(custom_account_name, persist_default=not had_default)

        if had_default:
            default = snapshot.default_account
            if self.account_exists(default):
                return ResolvedAccount(default)
            lib_logger.warning(f"Default account '{default}' does not exist, clearing it")
            self.clear_default()

        if migrated:
            return ResolvedAccount(migrated, persist_default=True)

        names = self.list_accounts()
        if len(names) == 1:
            return ResolvedAccount(names[0], persist_default=True)
        if names:
            return ResolvedAccount(self._choose_from(names), persist_default=True)

        name = self.choose_new_account_name("")
        return ResolvedAccount(name, is_new=True, persist_default=True)
