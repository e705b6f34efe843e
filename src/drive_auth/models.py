# src/drive_auth/models.py

import time
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Mapping, Optional

if TYPE_CHECKING:
    from .config import AuthConfig
    from .oauth_client import TokenEndpoint
    from .prompts import InputProvider
    from .service_account import ServiceAccountKey
    from .store import CredentialStore

# Store field name -> AccountRecord attribute
ACCOUNT_FIELDS: Dict[str, str] = {
    "CLIENT_ID": "client_id",
    "CLIENT_SECRET": "client_secret",
    "REFRESH_TOKEN": "refresh_token",
    "ROOT_FOLDER": "root_folder",
    "ROOT_FOLDER_NAME": "root_folder_name",
    "ACCESS_TOKEN": "access_token",
    "ACCESS_TOKEN_EXPIRY": "access_token_expiry",
}

SERVICE_ACCOUNT_ROOT_FOLDER = "root"
SERVICE_ACCOUNT_ROOT_FOLDER_NAME = "SA Bot Drive"


class AccessTokenMode(str, Enum):
    """How a fresh access token is obtained."""

    NORMAL = "normal"  # refresh-token grant
    SERVICE_ACCOUNT = "sa"  # signed JWT-bearer grant


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass
class AccountRecord:
    """A named credential bundle as stored in the credential store."""

    name: str
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    root_folder: str = ""
    root_folder_name: str = ""
    access_token: str = field(default="", repr=False)
    access_token_expiry: int = 0

    @property
    def is_complete(self) -> bool:
        """True iff the three long-lived user-flow secrets are all present."""
        return bool(self.client_id and self.client_secret and self.refresh_token)

    @classmethod
    def from_fields(cls, name: str, values: Mapping[str, str]) -> "AccountRecord":
        """Build a record from store field names (CLIENT_ID, ...) to values."""
        kwargs = {}
        for store_field, attr in ACCOUNT_FIELDS.items():
            if store_field in values:
                raw = values[store_field]
                kwargs[attr] = _to_int(raw) if attr == "access_token_expiry" else raw
        return cls(name=name, **kwargs)

    def to_fields(self) -> Dict[str, str]:
        """Inverse of from_fields; empty values are kept so they overwrite."""
        out = {}
        for store_field, attr in ACCOUNT_FIELDS.items():
            value = getattr(self, attr)
            if attr == "access_token_expiry":
                value = str(value) if value else ""
            out[store_field] = value
        return out


@dataclass(frozen=True)
class TokenState:
    """An access token and the epoch second after which it must not be used."""

    value: str = field(default="", repr=False)
    expiry: int = 0

    def remaining(self, now: float) -> int:
        return int(self.expiry - int(now))


class TokenMirror:
    """
    Mutex-guarded holder of the current access token.

    Written by the foreground flow and the background refresher, read by the
    host whenever it needs a bearer token. Plain threading lock so hosts that
    move transfer work into threads can read it too.
    """

    def __init__(self, state: Optional[TokenState] = None):
        self._lock = threading.Lock()
        self._state = state or TokenState()
        self._version = 0

    def snapshot(self) -> TokenState:
        with self._lock:
            return self._state

    def update(self, state: TokenState) -> None:
        with self._lock:
            self._state = state
            self._version += 1

    @property
    def version(self) -> int:
        """Incremented on every update; lets readers notice a renewal cheaply."""
        with self._lock:
            return self._version

    @property
    def access_token(self) -> str:
        return self.snapshot().value


@dataclass
class Session:
    """
    Everything one credential check needs, passed explicitly to every component.

    The store is the durable owner of account data; `account` is an advisory
    in-memory copy refreshed by the components that write to the store.
    """

    config: "AuthConfig"
    store: "CredentialStore"
    prompter: "InputProvider"
    endpoint: "TokenEndpoint"
    mode: AccessTokenMode = AccessTokenMode.NORMAL
    account: Optional[AccountRecord] = None
    service_account_key: Optional["ServiceAccountKey"] = None
    token: TokenMirror = field(default_factory=TokenMirror)
    clock: Callable[[], float] = time.time

    def now(self) -> int:
        return int(self.clock())

    @property
    def account_name(self) -> Optional[str]:
        return self.account.name if self.account else None

    @classmethod
    def create(
        cls,
        config: "AuthConfig",
        prompter: Optional["InputProvider"] = None,
        transport=None,
        clock: Callable[[], float] = time.time,
    ) -> "Session":
        """Wire a session with the default store, console prompter and HTTP client."""
        from .oauth_client import TokenEndpoint
        from .prompts import ConsoleInputProvider
        from .store import CredentialStore

        return cls(
            config=config,
            store=CredentialStore(config.config_path),
            prompter=prompter or ConsoleInputProvider(),
            endpoint=TokenEndpoint(config.token_url, transport=transport),
            clock=clock,
        )

