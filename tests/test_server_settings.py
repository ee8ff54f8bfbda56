"""
Tests for server configuration.
"""

import pytest

from server_settings import DEFAULT_DATA_PATH, DEFAULT_PORT, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("HTTP_AUTH_USERNAME", "HTTP_AUTH_PASSWORD", "DATA_PATH", "PORT", "HOST", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


class TestSettings:
    """Test settings defaults and environment loading."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.data_path == DEFAULT_DATA_PATH
        assert settings.port == DEFAULT_PORT
        assert settings.auth_enabled is False

    def test_auth_enabled_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_AUTH_USERNAME", "grafana")
        monkeypatch.setenv("HTTP_AUTH_PASSWORD", "s3cret")
        settings = Settings(_env_file=None)
        assert settings.auth_enabled is True

    @pytest.mark.parametrize("user,password", [("grafana", ""), ("", "s3cret")])
    def test_auth_needs_both_secrets(self, monkeypatch, user, password):
        monkeypatch.setenv("HTTP_AUTH_USERNAME", user)
        monkeypatch.setenv("HTTP_AUTH_PASSWORD", password)
        assert Settings(_env_file=None).auth_enabled is False

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DATA_PATH=/srv/values.json\nPORT=8080\n")
        settings = Settings(_env_file=env_file)
        assert settings.data_path == "/srv/values.json"
        assert settings.port == 8080

    def test_invalid_port(self, monkeypatch):
        monkeypatch.setenv("PORT", "70000")
        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_frozen(self):
        settings = Settings(_env_file=None)
        with pytest.raises(ValueError):
            settings.port = 1
