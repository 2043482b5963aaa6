"""Tests for environment-driven settings"""
import pytest

from feedback_vault.config import ConfigurationError, Settings

BASE_ENV = {"AES_SECRET_KEY": "s3cret", "DYNAMODB_TABLE": "feedback"}


def test_minimal_env():
    settings = Settings.from_env(BASE_ENV)
    assert settings.table_name == "feedback"
    assert settings.passphrase.get_secret_value() == "s3cret"
    assert settings.store_backend == "dynamodb"
    assert settings.authorizer_mode == "allow_all"
    assert settings.expose_error_details is True
    assert "s3cret" not in repr(settings)


def test_passphrase_is_required():
    with pytest.raises(ConfigurationError):
        Settings.from_env({"DYNAMODB_TABLE": "feedback"})
    with pytest.raises(ConfigurationError):
        Settings.from_env({"DYNAMODB_TABLE": "feedback", "AES_SECRET_KEY": ""})


def test_table_required_for_dynamodb_only():
    with pytest.raises(ConfigurationError):
        Settings.from_env({"AES_SECRET_KEY": "s3cret"})
    settings = Settings.from_env({"AES_SECRET_KEY": "s3cret", "STORE_BACKEND": "memory"})
    assert settings.table_name is None


def test_unknown_backend_and_mode_rejected():
    with pytest.raises(ConfigurationError):
        Settings.from_env({**BASE_ENV, "STORE_BACKEND": "redis"})
    with pytest.raises(ConfigurationError):
        Settings.from_env({**BASE_ENV, "AUTHORIZER_MODE": "ldap"})


def test_cognito_mode_needs_issuer_and_audience():
    with pytest.raises(ConfigurationError):
        Settings.from_env({**BASE_ENV, "AUTHORIZER_MODE": "cognito", "COGNITO_ISSUER": "https://x"})
    settings = Settings.from_env({
        **BASE_ENV,
        "AUTHORIZER_MODE": "cognito",
        "COGNITO_ISSUER": "https://x",
        "COGNITO_AUDIENCE": "client",
    })
    assert settings.cognito_audience == "client"


@pytest.mark.parametrize("raw,expected", [("false", False), ("0", False), ("TRUE", True), ("", True)])
def test_expose_error_details_flag(raw, expected):
    settings = Settings.from_env({**BASE_ENV, "EXPOSE_ERROR_DETAILS": raw})
    assert settings.expose_error_details is expected


def test_settings_are_immutable():
    settings = Settings.from_env(BASE_ENV)
    with pytest.raises(Exception):
        settings.table_name = "other"
