"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from secretshare.config import RouteRateLimit, Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.allowed_expiry_minutes == [10, 30, 60, 1440, 10080]
    assert settings.default_expiry_minutes == 10
    assert settings.max_custom_name_length == 32
    assert settings.server_encryption_enabled
    assert settings.captcha_enabled


def test_cors_origins_from_string():
    settings = Settings(_env_file=None, cors_origins="https://a.example, https://b.example,")
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_cors_origins_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://only.example")
    assert Settings(_env_file=None).cors_origins == ["https://only.example"]


def test_limits_for_named_route():
    settings = Settings(_env_file=None)
    assert settings.limits_for("view_secret") == RouteRateLimit(
        requests_per_hour=1000, requests_per_minute=2
    )


def test_limits_for_unknown_route_uses_default():
    settings = Settings(
        _env_file=None,
        rate_limit_default=RouteRateLimit(requests_per_hour=50, requests_per_minute=5),
    )
    assert settings.limits_for("something_else").requests_per_minute == 5


def test_rate_limit_routes_from_env(monkeypatch):
    monkeypatch.setenv(
        "RATE_LIMIT_ROUTES",
        '{"create_secret": {"requests_per_hour": 10, "requests_per_minute": 5}}',
    )
    settings = Settings(_env_file=None)
    assert settings.limits_for("create_secret").requests_per_hour == 10


def test_limits_must_be_positive():
    with pytest.raises(ValidationError):
        RouteRateLimit(requests_per_hour=0, requests_per_minute=5)


def test_default_expiry_must_be_allowed():
    with pytest.raises(ValidationError, match="default_expiry_minutes"):
        Settings(_env_file=None, default_expiry_minutes=15)


def test_allowed_expiry_minutes_sorted_and_unique():
    settings = Settings(_env_file=None, allowed_expiry_minutes=[60, 10, 60])
    assert settings.allowed_expiry_minutes == [10, 60]


@pytest.mark.parametrize(
    ("overrides", "expected_message"),
    [
        ({"captcha_secret_key": "c"}, "SERVER_ENCRYPTION_KEY"),
        ({"server_encryption_key": "k"}, "CAPTCHA_SECRET_KEY"),
    ],
)
def test_production_requires_keys(overrides, expected_message):
    with pytest.raises(ValidationError, match=expected_message):
        Settings(_env_file=None, env="production", **overrides)


def test_production_with_keys():
    settings = Settings(
        _env_file=None, env="production", server_encryption_key="k", captcha_secret_key="c"
    )
    assert settings.is_production
