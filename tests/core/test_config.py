from __future__ import annotations

import pytest

from cpd_service.core.config import Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_ENV",
        "LOG_LEVEL",
        "LOG_JSON",
        "PORT",
        "DATABASE_URL",
        "REDIS_URL",
        "BASE_URL",
        "CERTIFICATE_PREFIX",
        "MAX_RECORD_HOURS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.database_url is None
    assert settings.redis_url is None
    assert settings.certificate_prefix == "CERT"
    assert settings.max_record_hours == 100.0
    assert settings.base_url == "http://localhost:8000"


def test_env_values_are_normalised(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "  PROD ")
    monkeypatch.setenv("LOG_LEVEL", "Warning")
    monkeypatch.setenv("LOG_JSON", "1")
    monkeypatch.setenv("CERTIFICATE_PREFIX", "cpd")
    monkeypatch.setenv("BASE_URL", "https://cpd.example.com/")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "warning"
    assert settings.log_json is True
    assert settings.certificate_prefix == "CPD"
    assert settings.base_url == "https://cpd.example.com"


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("APP_ENV", "staging", "APP_ENV must be"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be"),
        ("LOG_JSON", "yes", "LOG_JSON must be"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("CERTIFICATE_PREFIX", "CERT-1", "CERTIFICATE_PREFIX must be"),
        ("CERTIFICATE_PREFIX", "C", "CERTIFICATE_PREFIX must be"),
        ("MAX_RECORD_HOURS", "lots", "MAX_RECORD_HOURS must be a number"),
        ("MAX_RECORD_HOURS", "0", "MAX_RECORD_HOURS must be positive"),
    ],
)
def test_invalid_values_are_rejected(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message):
        load_settings()


def test_environment_flags() -> None:
    def make(app_env):
        return Settings(  # type: ignore[arg-type]
            app_env=app_env,
            log_level="info",
            log_json=False,
            port=8000,
            database_url=None,
            redis_url=None,
        )

    assert make("dev").is_dev and not make("dev").is_prod
    assert make("test").is_test
    assert make("prod").is_prod and not make("prod").is_test


def test_settings_are_frozen() -> None:
    settings = load_settings()
    with pytest.raises(AttributeError):
        settings.certificate_prefix = "X"  # type: ignore[misc]
