"""
Credential Check Tests

End-to-end runs of CredentialManager.check_credentials against the mock
token endpoint and a scripted operator.
"""

import pytest

from drive_auth.credential_manager import CredentialManager, CredentialOptions
from drive_auth.errors import AccountNotFoundError, NotInteractiveError
from drive_auth.models import AccessTokenMode
from tests.fixtures.scenarios import account_lines, write_store
from tests.fixtures.token_mocks import (
    ACCESS_TOKEN,
    AUTH_CODE,
    CLIENT_ID,
    CLIENT_SECRET,
    REFRESH_TOKEN,
    token_body,
    write_service_account_file,
)


@pytest.fixture
def manager(session):
    return CredentialManager(session)


class TestUserAccounts:
    @pytest.mark.asyncio
    async def test_first_run_creates_account_and_default(
        self, manager, session, prompter, token_server, store_path
    ):
        prompter.answers = ["work", CLIENT_ID, CLIENT_SECRET, "", AUTH_CODE]
        token_server.queue(token_body(refresh_token=REFRESH_TOKEN))

        result = await manager.check_credentials(CredentialOptions(no_token_service=True))

        assert result.account_name == "work"
        assert result.access_token == ACCESS_TOKEN
        assert result.expiry == 4599
        assert result.is_new_account
        assert result.refresh_token == REFRESH_TOKEN
        assert result.refresher is None
        assert token_server.grants == ["authorization_code"]

        snapshot = session.store.load()
        assert snapshot.default_account == "work"
        assert snapshot.account("work").is_complete

    @pytest.mark.asyncio
    async def test_configured_default_account_needs_no_prompts(
        self, manager, session, prompter, token_server, store_path
    ):
        write_store(store_path, account_lines("work"), account_lines("home"), default="home")
        token_server.queue(token_body())

        result = await manager.check_credentials(CredentialOptions(no_token_service=True))

        assert result.account_name == "home"
        assert prompter.asked == []
        assert token_server.grants == ["refresh_token"]
        assert session.store.load().default_account == "home"

    @pytest.mark.asyncio
    async def test_unknown_custom_account(self, manager, store_path):
        write_store(store_path, account_lines("work"))

        with pytest.raises(AccountNotFoundError) as exc_info:
            await manager.check_credentials(
                CredentialOptions(custom_account_name="ghost", no_token_service=True)
            )
        assert exc_info.value.account_name == "ghost"

    @pytest.mark.asyncio
    async def test_empty_store_without_terminal(self, manager, prompter):
        prompter.interactive = False

        with pytest.raises(NotInteractiveError):
            await manager.check_credentials(CredentialOptions(no_token_service=True))

    @pytest.mark.asyncio
    async def test_new_account_without_terminal(self, manager, prompter):
        prompter.interactive = False

        with pytest.raises(NotInteractiveError) as exc_info:
            await manager.check_credentials(
                CredentialOptions(new_account_name="fresh", no_token_service=True)
            )
        assert "REFRESH_TOKEN" in exc_info.value.remediation

    @pytest.mark.asyncio
    async def test_delete_runs_before_resolution(self, manager, session, token_server, store_path, prompter):
        write_store(store_path, account_lines("old"), account_lines("keep"), default="old")
        token_server.queue(token_body())

        result = await manager.check_credentials(
            CredentialOptions(delete_account_name="old", no_token_service=True)
        )

        assert result.account_name == "keep"
        assert session.store.load().account("old") is None
        assert session.store.load().default_account == "keep"
        assert prompter.saw("Successfully deleted account ( old )")

    @pytest.mark.asyncio
    async def test_list_accounts(self, manager, token_server, store_path, prompter):
        write_store(store_path, account_lines("work"), default="work")
        token_server.queue(token_body())

        await manager.check_credentials(CredentialOptions(list_accounts=True, no_token_service=True))

        assert prompter.saw("1. work")


class TestServiceAccounts:
    @pytest.mark.asyncio
    async def test_service_account_check(self, manager, session, token_server, tmp_path, prompter):
        key_file = write_service_account_file(tmp_path / "sa.json")
        token_server.queue(token_body(access_token="ya29.sa"))

        result = await manager.check_credentials(
            CredentialOptions(service_account_file=key_file, no_token_service=True)
        )

        assert result.account_name == "SA_0123abcd4567ef_SA"
        assert result.access_token == "ya29.sa"
        assert result.mode is AccessTokenMode.SERVICE_ACCOUNT
        assert token_server.grants == ["urn:ietf:params:oauth:grant-type:jwt-bearer"]
        assert prompter.asked == []
        assert session.store.load().default_account is None

    @pytest.mark.asyncio
    async def test_cached_token_is_reused_unless_forced(self, manager, token_server, tmp_path, store_path):
        key_file = write_service_account_file(tmp_path / "sa.json")
        write_store(
            store_path,
            {"ACCOUNT_SA_0123abcd4567ef_SA_ACCESS_TOKEN": "ya29.cached",
             "ACCOUNT_SA_0123abcd4567ef_SA_ACCESS_TOKEN_EXPIRY": "9999"},
        )

        result = await manager.check_credentials(
            CredentialOptions(service_account_file=key_file, no_token_service=True)
        )
        assert result.access_token == "ya29.cached"
        assert token_server.requests == []

        token_server.queue(token_body(access_token="ya29.forced"))
        result = await manager.check_credentials(
            CredentialOptions(service_account_file=key_file, no_token_service=True, force_refresh=True)
        )
        assert result.access_token == "ya29.forced"


class TestTokenService:
    @pytest.mark.asyncio
    async def test_refresher_is_started_by_default(self, manager, session, token_server, store_path):
        write_store(store_path, account_lines("work"), default="work")
        token_server.queue(token_body())

        result = await manager.check_credentials()

        try:
            assert result.refresher is not None
            assert result.refresher.running
            assert session.token.access_token == ACCESS_TOKEN
        finally:
            await result.refresher.stop()
