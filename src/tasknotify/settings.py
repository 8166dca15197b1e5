from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'; used for tasks and users
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - ENABLE_BASIC_AUTH: 'true' to guard operator endpoints (users, sweep trigger) with HTTP Basic Auth
    - BASIC_AUTH_USERNAME / BASIC_AUTH_PASSWORD: credentials when basic auth is enabled
    - EMAIL_BACKEND: 'log' (default, writes messages to the log) or 'ses'
    - EMAIL_SENDER: fixed From address of every notification
    - AWS_REGION: SES region. Default 'ap-southeast-2'
    - EMAIL_CONNECT_TIMEOUT / EMAIL_READ_TIMEOUT: SES transport timeouts in seconds
    - SWEEP_MAX_WORKERS: upper bound of concurrent resolve+send branches per run
    - SWEEP_STRICT_DUE_DATES: 'true' to abort a run on a malformed due date
    - ENABLE_SWEEP_SCHEDULER: 'true' to run the daily sweep inside the web process
    - SWEEP_DAILY_AT: 'HH:MM' wall-clock time of the daily run. Default '00:00'
    - SWEEP_TIMEZONE: IANA zone name for SWEEP_DAILY_AT. Default 'UTC'
    - LOG_LEVEL: root log level name. Default 'INFO'
    - API_HOST / API_PORT: bind address of `tasknotify-api`. Default 0.0.0.0:8000
    """

    persistence_backend: str
    sqlite_db_path: str
    cors_allow_origins: List[str]
    enable_basic_auth: bool
    basic_auth_username: Optional[str]
    basic_auth_password: Optional[str]
    email_backend: str
    email_sender: str
    aws_region: str
    email_connect_timeout: float
    email_read_timeout: float
    sweep_max_workers: int
    sweep_strict_due_dates: bool
    enable_sweep_scheduler: bool
    sweep_daily_at: time
    sweep_timezone: str
    log_level: str
    api_host: str
    api_port: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_positive_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_seconds(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_clock(value: str, default: time) -> time:
    """Parse 'HH:MM' into a time of day, falling back to default when malformed."""
    try:
        hours, minutes = value.strip().split(":", 1)
        return time(int(hours), int(minutes))
    except ValueError:
        return default


def _parse_zone(value: str, default: str) -> str:
    """Return value if it names a known IANA zone, otherwise default."""
    name = value.strip()
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return name


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    email_backend = _get_env("EMAIL_BACKEND", "log").strip().lower()
    if email_backend not in {"log", "ses"}:
        email_backend = "log"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/tasks.db").strip()
    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))

    enable_basic_auth = _parse_bool(_get_env("ENABLE_BASIC_AUTH", "false"), False)
    basic_user = os.getenv("BASIC_AUTH_USERNAME") if enable_basic_auth else None
    basic_pass = os.getenv("BASIC_AUTH_PASSWORD") if enable_basic_auth else None

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=sqlite_path,
        cors_allow_origins=origins,
        enable_basic_auth=enable_basic_auth,
        basic_auth_username=basic_user,
        basic_auth_password=basic_pass,
        email_backend=email_backend,
        email_sender=_get_env("EMAIL_SENDER", "notifications@example.com").strip(),
        aws_region=_get_env("AWS_REGION", "ap-southeast-2").strip(),
        email_connect_timeout=_parse_seconds(_get_env("EMAIL_CONNECT_TIMEOUT", "5"), 5.0),
        email_read_timeout=_parse_seconds(_get_env("EMAIL_READ_TIMEOUT", "10"), 10.0),
        sweep_max_workers=_parse_positive_int(_get_env("SWEEP_MAX_WORKERS", "8"), 8),
        sweep_strict_due_dates=_parse_bool(_get_env("SWEEP_STRICT_DUE_DATES", "false"), False),
        enable_sweep_scheduler=_parse_bool(_get_env("ENABLE_SWEEP_SCHEDULER", "false"), False),
        sweep_daily_at=_parse_clock(_get_env("SWEEP_DAILY_AT", "00:00"), time(0, 0)),
        sweep_timezone=_parse_zone(_get_env("SWEEP_TIMEZONE", "UTC"), "UTC"),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        api_host=_get_env("API_HOST", "0.0.0.0").strip(),
        api_port=_parse_positive_int(_get_env("API_PORT", "8000"), 8000),
    )
