"""Tests for environment configuration and CLI startup."""

from pathlib import Path

import pytest

import cli
from billrouter.config import MAX_BUNDLE_BYTES, Config

ENV_VARS = [
    "ATTACHMENTS_PATH",
    "GOOD_MAILBOX",
    "BAD_MAILBOX",
    "IMAP_HOST",
    "IMAP_USER",
    "IMAP_PASSWORD",
    "IMAP_ACCESS_TOKEN",
    "IMAP_PORT",
    "IMAP_MAILBOX",
    "BUILDER_COMMAND",
    "BUILDER_TIMEOUT_SEC",
    "POLL_INTERVAL_SEC",
    "MAX_BUNDLE_BYTES",
    "LOG_LEVEL",
    "LOG_FILE",
    "ENV_PATH",
]


@pytest.fixture
def env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    values = {
        "ATTACHMENTS_PATH": "/var/lib/billrouter",
        "GOOD_MAILBOX": "Procesados",
        "BAD_MAILBOX": "Fallidos",
        "IMAP_HOST": "imap.example.com",
        "IMAP_USER": "facturas@example.com",
        "IMAP_PASSWORD": "secret",
        "BUILDER_COMMAND": "node /opt/builder/index.js --quiet",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return monkeypatch


class TestConfigFromEnv:
    """Tests for Config.from_env."""

    def test_defaults(self, env):
        """Optional settings fall back to their defaults."""
        config = Config.from_env()

        assert config.attachments_path == Path("/var/lib/billrouter")
        assert config.builder_command == ["node", "/opt/builder/index.js", "--quiet"]
        assert config.imap_port == 993
        assert config.imap_mailbox == "INBOX"
        assert config.poll_interval_sec == 600
        assert config.max_bundle_bytes == MAX_BUNDLE_BYTES
        assert config.builder_timeout_sec is None
        assert config.log_level == "INFO"
        assert config.log_file is None
        assert config.imap_access_token is None

    def test_overrides(self, env):
        """Optional settings are read and converted."""
        env.setenv("POLL_INTERVAL_SEC", "60")
        env.setenv("BUILDER_TIMEOUT_SEC", "90")
        env.setenv("IMAP_MAILBOX", "Facturas")
        env.setenv("LOG_LEVEL", "debug")
        env.setenv("LOG_FILE", "/var/log/billrouter.log")

        config = Config.from_env()

        assert config.poll_interval_sec == 60
        assert config.builder_timeout_sec == 90.0
        assert config.imap_mailbox == "Facturas"
        assert config.log_level == "DEBUG"
        assert config.log_file == Path("/var/log/billrouter.log")

    def test_missing_variables_are_listed(self, env):
        """Every missing variable is named in the error."""
        env.delenv("GOOD_MAILBOX")
        env.delenv("BUILDER_COMMAND")

        with pytest.raises(ValueError) as exc_info:
            Config.from_env()

        message = str(exc_info.value)
        assert "GOOD_MAILBOX" in message
        assert "BUILDER_COMMAND" in message
        assert "BAD_MAILBOX" not in message

    def test_password_or_token_required(self, env):
        """Some credential must be configured."""
        env.delenv("IMAP_PASSWORD")

        with pytest.raises(ValueError, match="IMAP_PASSWORD or IMAP_ACCESS_TOKEN"):
            Config.from_env()

    def test_access_token_only(self, env):
        """An access token alone is enough."""
        env.delenv("IMAP_PASSWORD")
        env.setenv("IMAP_ACCESS_TOKEN", "ya29.token")

        config = Config.from_env()

        assert config.imap_password is None
        assert config.imap_access_token == "ya29.token"

    def test_blank_builder_command(self, env):
        """A command made only of whitespace is rejected."""
        env.setenv("BUILDER_COMMAND", "   ")

        with pytest.raises(ValueError, match="BUILDER_COMMAND"):
            Config.from_env()


class TestLoadEnvironment:
    """Tests for dotenv loading at startup."""

    def test_env_path_unset(self):
        """Startup requires ENV_PATH."""
        with pytest.raises(ValueError, match="ENV_PATH not found"):
            cli.load_environment(None)

    def test_env_file_missing(self, tmp_path: Path):
        """The file must exist."""
        with pytest.raises(ValueError, match="Cannot read"):
            cli.load_environment(str(tmp_path / "missing.env"))

    def test_env_file_loaded(self, env, tmp_path: Path):
        """Variables from the file become visible to Config."""
        env.delenv("GOOD_MAILBOX")
        env_file = tmp_path / "billrouter.env"
        env_file.write_text("GOOD_MAILBOX=Archivo\n")

        cli.load_environment(str(env_file))

        assert Config.from_env().good_mailbox == "Archivo"

    def test_main_exits_without_env_path(self, env, capsys):
        """main reports configuration errors and returns 1."""
        assert cli.main() == 1
        assert "ENV_PATH not found" in capsys.readouterr().err
