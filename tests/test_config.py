"""Tests for configuration loading."""

import pytest

from cmdwire.config import DEFAULT_PREFIX, DEFAULT_SIGNAL_API_URL, Config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # setenv then delenv so anything .env loads is removed at teardown
    for name in ("CMDWIRE_PREFIX", "SIGNAL_API_URL", "SIGNAL_ACCOUNT"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def _write_settings(tmp_path, text):
    (tmp_path / "settings.yaml").write_text(text)
    return Config(config_dir=tmp_path)


def test_defaults_without_files(tmp_path):
    config = Config(config_dir=tmp_path)
    assert config.settings == {}
    assert config.prefix == DEFAULT_PREFIX
    assert config.signal_api_url == DEFAULT_SIGNAL_API_URL
    assert config.account is None
    assert config.allowed_numbers == []
    assert config.group_owners == {}
    assert config.rate_limit_enabled is True
    assert config.rate_limit_max_requests == 30
    assert config.rate_limit_window == 60
    assert config.logging_level == "INFO"
    assert config.log_dir == tmp_path.parent / "logs"


def test_settings_yaml_values(tmp_path):
    config = _write_settings(
        tmp_path,
        "prefix: '$'\n"
        "account: '+15550000000'\n"
        "allowed_numbers: ['+15550002222']\n"
        "group_owners: {grp: '+15550002222'}\n"
        "rate_limit: {enabled: false, max_requests: 5, window: 10}\n"
        "logging: {level: DEBUG, subsystem_levels: {signal: WARNING}}\n",
    )
    assert config.prefix == "$"
    assert config.account == "+15550000000"
    assert config.allowed_numbers == ["+15550002222"]
    assert config.group_owners == {"grp": "+15550002222"}
    assert config.rate_limit_enabled is False
    assert config.rate_limit_max_requests == 5
    assert config.rate_limit_window == 10
    assert config.logging_level == "DEBUG"
    assert config.logging_subsystem_levels == {"signal": "WARNING"}


def test_env_overrides_settings(tmp_path, monkeypatch):
    config = _write_settings(tmp_path, "prefix: '$'\nsignal_api_url: http://a:1\n")
    monkeypatch.setenv("CMDWIRE_PREFIX", "?")
    monkeypatch.setenv("SIGNAL_API_URL", "http://b:2")
    assert config.prefix == "?"
    assert config.signal_api_url == "http://b:2"


def test_dotenv_file_is_loaded(tmp_path):
    (tmp_path / ".env").write_text("SIGNAL_ACCOUNT=+15559990000\n")
    config = Config(config_dir=tmp_path)
    assert config.account == "+15559990000"


def test_invalid_allowed_numbers_type(tmp_path):
    config = _write_settings(tmp_path, "allowed_numbers: '+15550002222'\n")
    assert config.allowed_numbers == []


def test_invalid_group_owners_type(tmp_path):
    config = _write_settings(tmp_path, "group_owners: [a, b]\n")
    assert config.group_owners == {}


def test_empty_settings_file(tmp_path):
    config = _write_settings(tmp_path, "")
    assert config.settings == {}


def test_validate_does_not_raise(tmp_path):
    config = _write_settings(
        tmp_path,
        "prefix: 'a b'\nallowed_numbers: [12345, 'bad']\nrate_limit: {max_requests: 0}\n",
    )
    config.validate()
