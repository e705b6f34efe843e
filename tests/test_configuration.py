"""
Configuration Tests

Verify credential store path resolution and environment overrides.
"""

import logging

from drive_auth.config import (
    DEFAULT_SCOPE,
    DEFAULT_TOKEN_URL,
    AuthConfig,
    resolve_config_path,
    save_config_pointer,
)
from drive_auth.utils.paths import get_config_pointer_file


class TestResolveConfigPath:
    def test_default_location(self, tmp_path):
        assert resolve_config_path(env={}, home=tmp_path) == tmp_path / ".googledrive.conf"

    def test_explicit_path_wins(self, tmp_path):
        env = {"DRIVE_AUTH_CONFIG": str(tmp_path / "env.conf")}
        assert resolve_config_path(tmp_path / "cli.conf", env, tmp_path) == tmp_path / "cli.conf"

    def test_env_var_beats_pointer_file(self, tmp_path):
        save_config_pointer(tmp_path / "pointer.conf", home=tmp_path)
        env = {"DRIVE_AUTH_CONFIG": str(tmp_path / "env.conf")}
        assert resolve_config_path(env=env, home=tmp_path) == tmp_path / "env.conf"

    def test_pointer_file_is_used(self, tmp_path):
        target = tmp_path / "elsewhere" / "drive.conf"
        pointer = save_config_pointer(target, home=tmp_path)

        assert pointer == get_config_pointer_file(tmp_path)
        assert 'CONFIG="' in pointer.read_text()
        assert resolve_config_path(env={}, home=tmp_path) == target.resolve()


class TestAuthConfigFromEnv:
    def test_defaults(self, tmp_path):
        config = AuthConfig.from_env(env={}, home=tmp_path)

        assert config.token_url == DEFAULT_TOKEN_URL
        assert config.scope == DEFAULT_SCOPE
        assert config.redirect_uri == "urn:ietf:wg:oauth:2.0:oob"
        assert config.refresh_threshold_seconds == 300
        assert config.refresh_timeout_seconds == 30.0

    def test_overrides(self, tmp_path):
        env = {
            "DRIVE_AUTH_TOKEN_URL": "https://example.test/token",
            "DRIVE_AUTH_SCOPE": "https://www.googleapis.com/auth/drive.file",
            "DRIVE_AUTH_REFRESH_THRESHOLD": "120",
            "DRIVE_AUTH_REFRESH_TIMEOUT": "5.5",
        }
        config = AuthConfig.from_env(env=env, home=tmp_path)

        assert config.token_url == "https://example.test/token"
        assert config.scope.endswith("drive.file")
        assert config.refresh_threshold_seconds == 120
        assert config.refresh_timeout_seconds == 5.5

    def test_invalid_numbers_fall_back_with_warning(self, tmp_path, caplog):
        env = {"DRIVE_AUTH_REFRESH_THRESHOLD": "soon", "DRIVE_AUTH_REFRESH_TIMEOUT": "-1"}
        with caplog.at_level(logging.WARNING, logger="drive_auth"):
            config = AuthConfig.from_env(env=env, home=tmp_path)

        assert config.refresh_threshold_seconds == 300
        assert config.refresh_timeout_seconds == 30.0
        assert "DRIVE_AUTH_REFRESH_THRESHOLD" in caplog.text
