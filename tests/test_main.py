"""Tests for building a Bot from configuration."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cmdwire.exceptions import ConfigurationError
from cmdwire.main import build_bot


def _make_config(**overrides):
    config = MagicMock()
    config.prefix = "!"
    config.allowed_numbers = []
    config.rate_limit_enabled = False
    config.rate_limit_max_requests = 30
    config.rate_limit_window = 60
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def test_build_bot_uses_prefix():
    bot = build_bot(_make_config(prefix="$"))
    assert bot.prefix == "$"
    assert bot.checks == []


def test_build_bot_installs_configured_checks():
    bot = build_bot(_make_config(allowed_numbers=["+15550002222"], rate_limit_enabled=True))
    names = [check.__name__ for check in bot.checks]
    assert names == ["is_allowed_sender", "within_rate_limit"]


def test_build_bot_passes_kwargs():
    handler = AsyncMock()
    bot = build_bot(_make_config(), error_handler=handler)
    assert bot.error_handler is handler


def test_build_bot_rejects_bad_prefix():
    with pytest.raises(ConfigurationError):
        build_bot(_make_config(prefix="a b"))
