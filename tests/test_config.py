"""Tests for scan config loading."""

import pytest

from invoscan.config import ScanConfig, load_config


@pytest.fixture(autouse=True)
def _no_env_keys(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


def test_load_config_defaults():
    """Loading with no path returns all defaults."""
    config = load_config()
    assert isinstance(config, ScanConfig)
    assert config.vision.backend == "gemini"
    assert config.vision.timeout == 60.0
    assert config.vision.gemini.model == "gemini-2.0-flash"
    assert config.vision.claude.api_key == ""
    assert config.retry.max_attempts == 3
    assert config.retry.base_delay == 1.0
    assert config.database.path == "~/.config/invoscan/invoscan.db"
    assert config.logging.level == "INFO"


def test_load_config_nonexistent_file():
    """Loading a nonexistent file returns defaults."""
    config = load_config("/nonexistent/path.toml")
    assert config.retry.max_attempts == 3


def test_load_config_from_toml(tmp_path):
    """Loading a valid TOML file populates config."""
    path = tmp_path / "invoscan.toml"
    path.write_text(
        """\
[vision]
backend = "claude"
timeout = 30

[vision.claude]
api_key = "test-key-123"
model = "claude-test"

[retry]
max_attempts = 5
base_delay = 0.5

[database]
path = "/var/lib/invoscan.db"

[logging]
level = "debug"
"""
    )
    config = load_config(path)

    assert config.vision.backend == "claude"
    assert config.vision.timeout == 30.0
    assert config.vision.claude.api_key == "test-key-123"
    assert config.vision.claude.model == "claude-test"
    assert config.retry.max_attempts == 5
    assert config.retry.base_delay == 0.5
    assert config.database.path == "/var/lib/invoscan.db"
    assert config.logging.level == "DEBUG"


def test_api_keys_from_env(monkeypatch):
    """API keys fall back to environment variables."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-claude")
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini")
    config = load_config()
    assert config.vision.claude.api_key == "env-claude"
    assert config.vision.gemini.api_key == "env-gemini"


def test_file_key_overrides_env(tmp_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-gemini")
    path = tmp_path / "invoscan.toml"
    path.write_text('[vision.gemini]\napi_key = "file-gemini"\n')
    assert load_config(path).vision.gemini.api_key == "file-gemini"


def test_max_attempts_must_be_positive(tmp_path):
    path = tmp_path / "invoscan.toml"
    path.write_text("[retry]\nmax_attempts = 0\n")
    with pytest.raises(ValueError, match="max_attempts"):
        load_config(path)
