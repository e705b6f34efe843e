"""
Pytest configuration and fixtures for the test suite.
"""
import pytest
import os
import sys

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from drive_auth.config import AuthConfig
from drive_auth.models import AccountRecord, Session
from drive_auth.oauth_client import TokenEndpoint
from drive_auth.store import CredentialStore
from tests.fixtures.token_mocks import (
    CLIENT_ID,
    CLIENT_SECRET,
    REFRESH_TOKEN,
    FakeClock,
    ScriptedInputProvider,
    TokenServer,
)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


@pytest.fixture
def store_path(tmp_path):
    """Credential store location inside the test's temp dir."""
    return tmp_path / ".googledrive.conf"


@pytest.fixture
def auth_config(store_path):
    return AuthConfig(
        config_path=store_path,
        token_url="https://oauth2.test/token",
        auth_url="https://oauth2.test/auth",
    )


@pytest.fixture
def token_server():
    return TokenServer()


@pytest.fixture
def clock():
    return FakeClock(1000)


@pytest.fixture
def prompter():
    return ScriptedInputProvider()


@pytest.fixture
def session(auth_config, prompter, token_server, clock):
    """Session wired to the mock token endpoint, scripted prompter and fixed clock."""
    return Session(
        config=auth_config,
        store=CredentialStore(auth_config.config_path),
        prompter=prompter,
        endpoint=TokenEndpoint(auth_config.token_url, transport=token_server.transport()),
        clock=clock,
    )


@pytest.fixture
def complete_account():
    return AccountRecord(
        name="work",
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        refresh_token=REFRESH_TOKEN,
    )


@pytest.fixture(autouse=True)
def no_browser(monkeypatch):
    """Never open a real browser from the authorization flow."""
    monkeypatch.setattr(
        "drive_auth.authorization_flow.is_headless_environment", lambda: True
    )
