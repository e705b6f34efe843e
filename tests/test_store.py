"""
Credential Store Tests

Verify the on-disk format, escaping, namespacing and permission handling
of the credential store.
"""

import os
import stat

import pytest

from drive_auth.errors import StoreIOError
from drive_auth.store import (
    CredentialStore,
    StoreSnapshot,
    format_assignment,
    parse_assignments,
    split_account_key,
)
from tests.fixtures.scenarios import account_lines, legacy_lines, write_store
from tests.fixtures.token_mocks import CLIENT_ID, REFRESH_TOKEN


def file_mode(path) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)


class TestAssignmentFormat:
    """Parsing and formatting of KEY="value" lines."""

    def test_slashes_are_never_escaped(self):
        line = format_assignment("ACCOUNT_a_REFRESH_TOKEN", "1//0g/abc")
        assert line == 'ACCOUNT_a_REFRESH_TOKEN="1//0g/abc"'

    def test_shell_special_characters_are_escaped(self):
        line = format_assignment("KEY", 'a"b$c`d\\e')
        assert line == 'KEY="a\\"b\\$c\\`d\\\\e"'

    def test_escaped_value_parses_back(self):
        value = 'we$ird "value" with `ticks` and \\ slash/'
        parsed = parse_assignments(format_assignment("KEY", value) + "\n")
        assert parsed == {"KEY": value}

    def test_comments_blank_and_malformed_lines_are_skipped(self):
        text = '# comment\n\nnot an assignment\nA="1"\nexport B=2\n'
        assert parse_assignments(text) == {"A": "1", "B": "2"}

    def test_single_quoted_values_are_literal(self):
        assert parse_assignments("A='x$y\\z'\n") == {"A": "x$y\\z"}

    def test_repeated_key_keeps_last_value(self):
        assert parse_assignments('A="1"\nB="2"\nA="3"\n')["A"] == "3"


class TestAccountKeys:
    @pytest.mark.parametrize(
        "key,expected",
        [
            ("ACCOUNT_work_CLIENT_ID", ("work", "CLIENT_ID")),
            ("ACCOUNT_work_ACCESS_TOKEN_EXPIRY", ("work", "ACCESS_TOKEN_EXPIRY")),
            ("ACCOUNT_my_acct_ROOT_FOLDER_NAME", ("my_acct", "ROOT_FOLDER_NAME")),
            ("ACCOUNT_SA_0123_SA_ACCESS_TOKEN", ("SA_0123_SA", "ACCESS_TOKEN")),
            ("CLIENT_ID", None),
            ("ACCOUNT_work_SOMETHING", None),
        ],
    )
    def test_split_account_key(self, key, expected):
        assert split_account_key(key) == expected


class TestStoreSnapshot:
    def test_accounts_are_grouped_by_name(self):
        values = {**account_lines("work"), **account_lines("home", refresh_token=None)}
        snapshot = StoreSnapshot(values)

        assert set(snapshot.accounts) == {"work", "home"}
        assert snapshot.account("work").is_complete
        assert not snapshot.account("home").is_complete
        assert snapshot.account("missing") is None

    def test_account_names_follow_file_order(self):
        values = {**account_lines("zeta"), **account_lines("alpha")}
        assert StoreSnapshot(values).account_names() == ["zeta", "alpha"]

    def test_expiry_is_parsed_as_int(self):
        snapshot = StoreSnapshot(account_lines("work", access_token="ya29.x", expiry=4599))
        assert snapshot.account("work").access_token_expiry == 4599

    def test_default_and_legacy_fields(self):
        snapshot = StoreSnapshot({"DEFAULT_ACCOUNT": "work", **legacy_lines(), "OTHER": "x"})
        assert snapshot.default_account == "work"
        assert set(snapshot.legacy_fields) == {
            "CLIENT_ID",
            "CLIENT_SECRET",
            "REFRESH_TOKEN",
            "ROOT_FOLDER",
            "ROOT_FOLDER_NAME",
            "ACCESS_TOKEN",
        }

    def test_empty_default_is_none(self):
        assert StoreSnapshot({"DEFAULT_ACCOUNT": ""}).default_account is None


class TestCredentialStore:
    def test_missing_file_loads_empty(self, store_path):
        snapshot = CredentialStore(store_path).load()
        assert snapshot.values == {}
        assert snapshot.accounts == {}

    def test_ensure_exists_creates_read_only_file(self, store_path):
        store = CredentialStore(store_path)
        assert store.ensure_exists() is True
        assert store.ensure_exists() is False
        assert store_path.read_text() == ""
        assert file_mode(store_path) == 0o400

    def test_upsert_leaves_file_owner_read_only(self, store_path):
        store = CredentialStore(store_path)
        store.upsert("DEFAULT_ACCOUNT", "work")
        store.upsert("DEFAULT_ACCOUNT", "home")

        assert file_mode(store_path) == 0o400
        assert store.load().default_account == "home"

    def test_refresh_token_round_trip(self, store_path):
        store = CredentialStore(store_path)
        store.set_account_field("work", "REFRESH_TOKEN", REFRESH_TOKEN)

        assert store.load().account("work").refresh_token == REFRESH_TOKEN
        assert f'"{REFRESH_TOKEN}"' in store_path.read_text()

    def test_update_keeps_positions_and_unknown_keys(self, store_path):
        write_store(store_path, account_lines("work"), extra='CUSTOM_SETTING="keep me"\n')
        store = CredentialStore(store_path)

        store.update({"ACCOUNT_work_CLIENT_ID": "changed", "NEW_KEY": "v"})

        keys = list(store.load().values)
        assert keys[0] == "ACCOUNT_work_CLIENT_ID"
        assert keys[-1] == "NEW_KEY"
        assert store.load().values["CUSTOM_SETTING"] == "keep me"

    def test_update_can_remove_keys_in_same_rewrite(self, store_path):
        write_store(store_path, {"A": "1", "B": "2"})
        store = CredentialStore(store_path)

        store.update({"C": "3"}, remove=["A"])

        assert store.load().values == {"B": "2", "C": "3"}

    def test_delete_purges_only_that_account(self, store_path):
        write_store(
            store_path,
            account_lines("work", access_token="ya29.x", expiry=5000),
            account_lines("work_2"),
            default="work",
        )
        store = CredentialStore(store_path)

        assert store.delete("work") is True

        snapshot = store.load()
        assert snapshot.account("work") is None
        assert snapshot.account("work_2").client_id == CLIENT_ID
        assert snapshot.default_account == "work"

    def test_delete_missing_account_does_not_rewrite(self, store_path):
        write_store(store_path, account_lines("work"))
        before = store_path.read_bytes()

        assert CredentialStore(store_path).delete("ghost") is False
        assert store_path.read_bytes() == before

    def test_set_account_field_rejects_unknown_field(self, store_path):
        with pytest.raises(KeyError):
            CredentialStore(store_path).set_account_field("work", "PASSWORD", "x")

    def test_write_failure_raises_store_io_error(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        store = CredentialStore(blocker / "store.conf")

        with pytest.raises(StoreIOError):
            store.upsert("A", "1")

    def test_non_utf8_store_raises_store_io_error(self, store_path):
        store_path.write_bytes(b'ACCOUNT_work_ROOT_FOLDER_NAME="Fotos \xe9t\xe9"\n')

        with pytest.raises(StoreIOError) as exc_info:
            CredentialStore(store_path).load()
        assert exc_info.value.path == str(store_path)
        assert "not valid UTF-8" in str(exc_info.value)
