from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'dynamodb' (default) or 'memory'
    - DYNAMODB_ENDPOINT: store endpoint URL. Default 'http://localhost:8000'
    - AWS_REGION: region name passed to boto3. Default 'us-east-1'
    - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: credentials, 'dummy' for local endpoints
    - TABLE_POLL_INTERVAL: seconds between table status checks at startup (default 1.0)
    - TABLE_WAIT_MAX_ATTEMPTS: max status checks before startup fails; 0 waits forever (default 120)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level (default INFO)
    """

    persistence_backend: str
    dynamodb_endpoint: str
    aws_region: str
    aws_access_key_id: str
    aws_secret_access_key: str
    table_poll_interval: float
    table_wait_max_attempts: int
    cors_allow_origins: List[str]
    log_level: str


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
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


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "dynamodb").strip().lower()
    if backend not in {"dynamodb", "memory"}:
        backend = "dynamodb"

    return Settings(
        persistence_backend=backend,
        dynamodb_endpoint=_get_env("DYNAMODB_ENDPOINT", "http://localhost:8000").strip(),
        aws_region=_get_env("AWS_REGION", "us-east-1").strip(),
        aws_access_key_id=_get_env("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=_get_env("AWS_SECRET_ACCESS_KEY", "dummy"),
        table_poll_interval=_parse_float(_get_env("TABLE_POLL_INTERVAL", "1.0"), 1.0),
        table_wait_max_attempts=_parse_int(_get_env("TABLE_WAIT_MAX_ATTEMPTS", "120"), 120),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
