"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from farcaster_client.config import load_config

CONFIG_YAML = """
neynar:
  api_key: ${TEST_NEYNAR_KEY}
  bot_fid: 42
webhook:
  secret: hush
  port: 9000
"""


class TestLoadConfig:
    """Test YAML loading and environment expansion."""

    def test_env_expansion_and_defaults(self, tmp_path, monkeypatch):
        """Test that ${VAR} is expanded and unset sections take defaults."""
        monkeypatch.setenv("TEST_NEYNAR_KEY", "from-env")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        config = load_config(path)

        assert config.neynar.api_key.get_secret_value() == "from-env"
        assert config.neynar.bot_fid == 42
        assert config.webhook.secret.get_secret_value() == "hush"
        assert config.webhook.port == 9000
        assert config.requests.max_concurrent_requests == 2
        assert config.requests.max_retries == 12
        assert config.requests.max_jitter_ms == 2000
        assert config.bot.poll_interval == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unset_env_var(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_NEYNAR_KEY", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        with pytest.raises(ValueError, match="TEST_NEYNAR_KEY"):
            load_config(path)

    def test_missing_api_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("neynar:\n  bot_fid: 1\n")

        with pytest.raises(ValidationError):
            load_config(path)
