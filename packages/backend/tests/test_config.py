"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from pocketbook.config import Settings


def test_development_defaults_are_accepted():
    s = Settings(environment="development")
    assert s.realtime_backplane == "memory"
    assert s.require_signed_token is False


def test_production_requires_internal_key():
    with pytest.raises(ValidationError):
        Settings(environment="production", internal_api_key="")


def test_production_signed_tokens_require_secret():
    with pytest.raises(ValidationError):
        Settings(
            environment="production",
            internal_api_key="k",
            require_signed_token=True,
        )


def test_production_ok_when_configured():
    s = Settings(
        environment="production",
        internal_api_key="k",
        require_signed_token=True,
        jwt_secret="a-real-secret",
    )
    assert s.require_signed_token


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("POCKETBOOK_REALTIME_BACKPLANE", "redis")
    monkeypatch.setenv("POCKETBOOK_AUTH_TIMEOUT_SECONDS", "15")
    s = Settings()
    assert s.realtime_backplane == "redis"
    assert s.auth_timeout_seconds == 15


def test_unknown_backplane_rejected():
    with pytest.raises(ValidationError):
        Settings(realtime_backplane="kafka")
