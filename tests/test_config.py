import pytest

from nsdigup.errors import ConfigError
from nsdigup.models.config import CacheMode, LogFormat, LogLevel, load_settings, parse_duration


def test_defaults():
    settings = load_settings(env={})
    assert settings.app.name == "nsdigup"
    assert settings.app.port == 8080
    assert settings.app.address == "http://localhost:8080"
    assert settings.cache.mode == CacheMode.memory
    assert settings.cache.ttl_seconds == 300
    assert settings.log.level == LogLevel.info
    assert settings.scan.timeout_seconds == 10
    assert settings.scan.resolver == "8.8.8.8"


def test_environment_values():
    settings = load_settings(
        env={
            "NSDIGUP_PORT": "9090",
            "NSDIGUP_ADVERTISED_ADDRESS": "https://nsdig.example.com/",
            "NSDIGUP_CACHE_MODE": "NONE",
            "NSDIGUP_CACHE_TTL": "5m",
            "NSDIGUP_LOG_FORMAT": "json",
            "NSDIGUP_SCAN_TIMEOUT": "30s",
        }
    )
    assert settings.app.port == 9090
    assert settings.app.address == "https://nsdig.example.com"
    assert settings.cache.mode == CacheMode.none
    assert settings.cache.ttl_seconds == 300
    assert settings.log.format == LogFormat.json
    assert settings.scan.timeout_seconds == 30


def test_overrides_beat_environment_and_none_is_ignored():
    settings = load_settings(env={"NSDIGUP_PORT": "9090", "NSDIGUP_HOST": "127.0.0.1"}, port=7070, host=None)
    assert settings.app.port == 7070
    assert settings.app.host == "127.0.0.1"


def test_parse_duration_forms():
    assert parse_duration("300") == 300
    assert parse_duration("30s") == 30
    assert parse_duration("5m") == 300
    assert parse_duration("1h") == 3600
    assert parse_duration("250ms") == 0.25


@pytest.mark.parametrize(
    "env",
    [
        {"NSDIGUP_PORT": "70000"},
        {"NSDIGUP_PORT": "http"},
        {"NSDIGUP_CACHE_TTL": "-5"},
        {"NSDIGUP_CACHE_MODE": "redis"},
        {"NSDIGUP_LOG_LEVEL": "loud"},
        {"NSDIGUP_SCAN_TIMEOUT": "0"},
        {"NSDIGUP_APP_NAME": "   "},
    ],
)
def test_invalid_values_raise_config_error(env):
    with pytest.raises(ConfigError):
        load_settings(env=env)


def test_unknown_override_rejected():
    with pytest.raises(ConfigError):
        load_settings(env={}, colour="blue")


def test_probe_timeouts_clamped_to_group_deadline():
    settings = load_settings(env={"NSDIGUP_SCAN_TIMEOUT": "2s"})
    assert settings.scan.probe_timeout(settings.scan.dial_timeout_seconds) == 2
