# src/drive_auth/store.py
"""
On-disk account registry.

The file is a list of shell-style assignments, one per line:

    DEFAULT_ACCOUNT="work"
    ACCOUNT_work_CLIENT_ID="1234-....apps.googleusercontent.com"
    ACCOUNT_work_REFRESH_TOKEN="1//0g..."

Account fields are namespaced ACCOUNT_<name>_<FIELD>. Unnamespaced
CLIENT_ID / CLIENT_SECRET / REFRESH_TOKEN lines come from the single-account
layout of older releases and are migrated by the AccountResolver.

Callers never see the flat keys: a StoreSnapshot exposes the accounts as a
name -> AccountRecord mapping. Every mutation re-reads the file, applies the
change and rewrites it whole. There is no locking between processes; when two
writers overlap, the last rewrite wins.
"""

import re
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .models import ACCOUNT_FIELDS, AccountRecord
from .utils.secure_io import ensure_restricted_file, read_text, write_restricted_text

lib_logger = logging.getLogger("drive_auth")

DEFAULT_ACCOUNT_KEY = "DEFAULT_ACCOUNT"
ACCOUNT_NAME_REGEX = re.compile(r"^[A-Za-z0-9_]+$")

_ASSIGNMENT_RE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*?)\s*$")
_ESCAPED_CHARS = '\\"$`'
# Longest first so ACCESS_TOKEN_EXPIRY is not read as ACCESS_TOKEN of "<name>_..."
_FIELDS_BY_LENGTH = sorted(ACCOUNT_FIELDS, key=len, reverse=True)


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        return raw[1:-1]
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        inner = raw[1:-1]
        out = []
        i = 0
        while i < len(inner):
            ch = inner[i]
            if ch == "\\" and i + 1 < len(inner) and inner[i + 1] in _ESCAPED_CHARS:
                out.append(inner[i + 1])
                i += 2
                continue
            out.append(ch)
            i += 1
        return "".join(out)
    return raw


def parse_assignments(text: str) -> Dict[str, str]:
    """
    Parse KEY="value" lines. Comments, blank and malformed lines are skipped;
    a repeated key keeps its last value, as it would when sourced.
    """
    values: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        match = _ASSIGNMENT_RE.match(line)
        if not match:
            lib_logger.debug(f"Skipping unparsable store line: {line[:20]!r}")
            continue
        key, raw = match.groups()
        values.pop(key, None)
        values[key] = _unquote(raw)
    return values


def format_assignment(key: str, value: str) -> str:
    escaped = "".join("\\" + ch if ch in _ESCAPED_CHARS else ch for ch in value)
    return f'{key}="{escaped}"'


def account_key(name: str, store_field: str) -> str:
    return f"ACCOUNT_{name}_{store_field}"


def split_account_key(key: str) -> Optional[tuple]:
    """Return (account name, FIELD) for a namespaced key, or None."""
    if not key.startswith("ACCOUNT_"):
        return None
    rest = key[len("ACCOUNT_") :]
    for store_field in _FIELDS_BY_LENGTH:
        suffix = "_" + store_field
        if rest.endswith(suffix):
            name = rest[: -len(suffix)]
            if ACCOUNT_NAME_REGEX.match(name):
                return name, store_field
    return None


@dataclass
class StoreSnapshot:
    """Parsed view of the store at one point in time."""

    values: Dict[str, str] = field(default_factory=dict)

    @property
    def default_account(self) -> Optional[str]:
        return self.values.get(DEFAULT_ACCOUNT_KEY) or None

    @property
    def accounts(self) -> Dict[str, AccountRecord]:
        grouped: Dict[str, Dict[str, str]] = {}
        for key, value in self.values.items():
            parsed = split_account_key(key)
            if parsed:
                name, store_field = parsed
                grouped.setdefault(name, {})[store_field] = value
        return {
            name: AccountRecord.from_fields(name, fields)
            for name, fields in grouped.items()
        }

    def account(self, name: str) -> Optional[AccountRecord]:
        return self.accounts.get(name)

    def account_names(self) -> List[str]:
        """Names that have a CLIENT_ID line, in file order."""
        names = []
        for key in self.values:
            parsed = split_account_key(key)
            if parsed and parsed[1] == "CLIENT_ID" and parsed[0] not in names:
                names.append(parsed[0])
        return names

    @property
    def legacy_fields(self) -> Dict[str, str]:
        """Unnamespaced account fields left over from the single-account layout."""
        return {k: v for k, v in self.values.items() if k in ACCOUNT_FIELDS}


class CredentialStore:
    """Reads and rewrites the credential store file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def ensure_exists(self) -> bool:
        """Create an empty, owner-read-only store if none exists yet."""
        return ensure_restricted_file(self.path, lib_logger)

    def load(self) -> StoreSnapshot:
        return StoreSnapshot(parse_assignments(read_text(self.path)))

    def upsert(self, key: str, value: str) -> None:
        self.update({key: value})

    def update(
        self, changes: Mapping[str, str], remove: Iterable[str] = ()
    ) -> StoreSnapshot:
        """
        Set several keys (and optionally drop others) in one rewrite.
        Existing keys keep their position, new ones are appended.
        """
        snapshot = self.load()
        for key in remove:
            snapshot.values.pop(key, None)
        for key, value in changes.items():
            snapshot.values[key] = "" if value is None else str(value)
        self._write(snapshot.values)
        return snapshot

    def remove(self, keys: Iterable[str]) -> bool:
        """Drop keys in one rewrite. Returns False (and does not write) if none were present."""
        snapshot = self.load()
        doomed = [k for k in keys if k in snapshot.values]
        if not doomed:
            return False
        for key in doomed:
            del snapshot.values[key]
        self._write(snapshot.values)
        return True

    def delete(self, account_name: str) -> bool:
        """Purge every field of one account. Returns False if it had none."""
        return self.remove(account_key(account_name, f) for f in ACCOUNT_FIELDS)

    def set_account_field(self, account_name: str, store_field: str, value: str) -> None:
        if store_field not in ACCOUNT_FIELDS:
            raise KeyError(f"Unknown account field: {store_field}")
        self.upsert(account_key(account_name, store_field), value)

    def _write(self, values: Mapping[str, str]) -> None:
        lines = [format_assignment(k, v) for k, v in values.items()]
        content = "\n".join(lines) + ("\n" if lines else "")
        write_restricted_text(self.path, content, lib_logger)
