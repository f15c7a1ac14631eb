"""Tests for settings, duration parsing and the error-to-status mapping."""

from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from visitrack.config.logging_config import LoggingConfig
from visitrack.config.settings import Settings
from visitrack.core.exceptions import (
    ConflictError,
    ErrorKind,
    ForbiddenError,
    InvalidTokenError,
    StoreError,
    ValidationError,
    create_error_response,
    get_http_status_code,
)
from visitrack.core.shared import Result
from visitrack.utils.datetime import parse_duration


class TestParseDuration:

    @pytest.mark.parametrize("value, expected", [
        ("24h", timedelta(hours=24)),
        ("7d", timedelta(days=7)),
        ("30m", timedelta(minutes=30)),
        ("45", timedelta(seconds=45)),
        ("2W", timedelta(weeks=2)),
        (90, timedelta(seconds=90)),
    ])
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "h", "1y", "-5m", "0"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.access_token_ttl == timedelta(hours=24)
        assert settings.refresh_token_ttl == timedelta(days=7)
        assert settings.single_use_token_ttl == timedelta(hours=1)
        assert settings.lockout_duration == timedelta(minutes=30)

    def test_blank_secret_counts_as_missing(self):
        assert Settings(_env_file=None, jwt_secret="").get_jwt_secret() is None

    def test_token_hash_key_falls_back_to_jwt_secret(self):
        settings = Settings(_env_file=None, jwt_secret="signing-secret")

        assert settings.get_token_hash_key() == "signing-secret"
        assert Settings(_env_file=None, jwt_secret="a", token_hash_key="b").get_token_hash_key() == "b"

    def test_service_config_hides_secrets(self):
        config = Settings(_env_file=None, jwt_secret="signing-secret").get_service_config()

        assert "signing-secret" not in str(config)

    def test_invalid_duration_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, jwt_expires_in="forever")

    def test_bcrypt_rounds_bounds(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, bcrypt_rounds=3)


class TestErrorMapping:

    @pytest.mark.parametrize("error, status", [
        (ValidationError("bad"), 400),
        (InvalidTokenError(), 401),
        (ForbiddenError(), 403),
        (ConflictError("taken"), 409),
        (StoreError("down"), 500),
    ])
    def test_status_codes(self, error, status):
        assert get_http_status_code(error) == status

    def test_details_are_merged_into_envelope(self):
        error = ForbiddenError(missing=["visitors:read"])

        assert create_error_response(error) == {
            "success": False,
            "message": "Insufficient permissions",
            "missing": ["visitors:read"],
        }
        assert create_error_response(error, include_details=False) == {
            "success": False,
            "message": "Insufficient permissions",
        }

    def test_result_unwrap(self):
        assert Result.success(3).unwrap() == 3

        failure = Result.failure(ErrorKind.CONFLICT, "taken", {"field": "email"})
        with pytest.raises(ConflictError) as exc_info:
            failure.unwrap()
        assert exc_info.value.details == {"field": "email"}


class TestLoggingConfig:

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_VERBOSITY", "QUIET")

        config = LoggingConfig.build_config()

        assert config["root"]["level"] == "DEBUG"

    def test_verbosity_and_format(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.setenv("LOG_VERBOSITY", "verbose")
        monkeypatch.setenv("LOG_FORMAT", "json")

        config = LoggingConfig.build_config()

        assert config["root"]["level"] == "INFO"
        assert config["formatters"]["default"]["format"].startswith('{"time"')

    def test_auth_logging_flag(self, monkeypatch):
        monkeypatch.setenv("ENABLE_AUTH_LOGGING", "true")

        loggers = LoggingConfig.build_config()["loggers"]

        assert "visitrack.features.permissions" in loggers
