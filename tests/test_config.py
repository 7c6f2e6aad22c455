"""
Tests for validator configuration.
"""

import logging

import pytest

from token_validator import ValidatorConfig, ValidatorSettings

DEFAULT_FIELDS = {
    "issuer_url": "",
    "client_id": "",
    "client_secret": "",
    "requested_scope": "",
    "audience": "",
}


def allow_listed(settings: ValidatorSettings) -> dict:
    return {name: getattr(settings, name) for name in DEFAULT_FIELDS}


def test_defaults_are_empty():
    assert allow_listed(ValidatorConfig().config()) == DEFAULT_FIELDS


def test_unknown_key_is_ignored():
    """Test that keys outside the allow-list are silently dropped."""
    config = ValidatorConfig()

    config.configure({"foo": "bar", "production": False, "http_timeout": -1})

    assert allow_listed(config.config()) == DEFAULT_FIELDS
    assert config.config().production is True
    assert config.config().http_timeout == 10.0


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("issuer_url", "https://example.com"),
        ("client_id", "abc123"),
        ("client_secret", "secret123"),
        ("requested_scope", "test:scope"),
        ("audience", "https://localhost:3000"),
    ],
)
def test_configure_known_key(key, value):
    """Test that each allow-listed key can be set."""
    config = ValidatorConfig()

    config.configure({key: value})

    assert getattr(config.config(), key) == value


def test_configure_with_kwargs():
    config = ValidatorConfig()

    settings = config.configure(issuer_url="https://example.com", audience="api")

    assert settings is config.config()
    assert settings.issuer_url == "https://example.com"
    assert settings.audience == "api"


def test_configure_publishes_new_snapshot():
    """Test that an earlier snapshot is not modified by later updates."""
    config = ValidatorConfig()
    before = config.config()

    config.configure(issuer_url="https://example.com")

    assert before.issuer_url == ""
    assert config.config().issuer_url == "https://example.com"


def test_configure_keeps_tuning_values():
    config = ValidatorConfig(ValidatorSettings(production=False, cache_ttl_seconds=60))

    config.configure(client_id="abc123")

    assert config.config().production is False
    assert config.config().cache_ttl_seconds == 60


@pytest.mark.parametrize(
    "kwargs",
    [
        {"cache_ttl_seconds": -1},
        {"http_timeout": 0},
        {"algorithms": ()},
        {"app_name": ""},
    ],
)
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        ValidatorSettings(**kwargs)


def test_logger_is_created_lazily():
    logger = ValidatorConfig().logger

    assert isinstance(logger, logging.Logger)
    assert logger.name == "token_validator"


def test_logger_set_directly():
    """Test that an assigned logger replaces the default one."""
    config = ValidatorConfig()
    custom = logging.getLogger("tests.custom")

    config.logger = custom

    assert config.logger is custom
