from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_PREFIX_RE = re.compile(r"^[A-Z]{2,10}$")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    base_url: str = "http://localhost:8000"
    certificate_prefix: str = "CERT"
    max_record_hours: float = 100.0

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    prefix_raw = _getenv("CERTIFICATE_PREFIX", "CERT").upper()
    max_hours_raw = _getenv("MAX_RECORD_HOURS", "100")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in ("true", "false", "1", "0"):
        raise ValueError(f"LOG_JSON must be true|false (got {log_json_raw!r})")

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    # Verification tooling validates code shape before lookup, so the
    # prefix is restricted to the documented alphabet.
    if not _PREFIX_RE.match(prefix_raw):
        raise ValueError(
            f"CERTIFICATE_PREFIX must be 2-10 letters A-Z (got {prefix_raw!r})"
        )

    try:
        max_record_hours = float(max_hours_raw)
    except ValueError:
        raise ValueError(
            f"MAX_RECORD_HOURS must be a number (got {max_hours_raw!r})"
        ) from None
    if max_record_hours <= 0:
        raise ValueError(
            f"MAX_RECORD_HOURS must be positive (got {max_hours_raw!r})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    base_url = _getenv("BASE_URL", "http://localhost:8000").rstrip("/")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("true", "1"),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        base_url=base_url,
        certificate_prefix=prefix_raw,
        max_record_hours=max_record_hours,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
