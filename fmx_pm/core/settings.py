from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import List


def _env_bool(key: str, default: str = "1") -> bool:
    return os.getenv(key, default).strip().lower() not in ("0", "false", "no", "off")


def _env_int(key: str, default: str) -> int:
    raw = os.getenv(key, default)
    try:
        return int(str(raw).strip())
    except ValueError:
        return int(default)


def _env_list(key: str, default: str = "") -> List[str]:
    raw = os.getenv(key, default).strip()
    if not raw:
        return []
    if raw == "*":
        return ["*"]
    if raw.startswith("["):
        try:
            v = json.loads(raw)
        except json.JSONDecodeError:
            v = None
        if isinstance(v, list):
            return [str(x) for x in v if str(x).strip()]
    return [x.strip() for x in raw.split(",") if x.strip()]


@dataclass(frozen=True, slots=True)
class Settings:
    # dev|development|local exposes the OpenAPI docs without a token
    env: str = field(default_factory=lambda: os.getenv("ENV", "prod").strip())

    # Files/dirs (relative to repo root unless absolute)
    request_types_file: str = field(
        default_factory=lambda: os.getenv("REQUEST_TYPES_FILE", "config/request_types.yaml")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").strip().upper())
    persist_server_logs: bool = field(default_factory=lambda: _env_bool("PERSIST_SERVER_LOGS", "1"))

    # CORS defaults to locked-down (no cross-origin). Set CORS_ALLOW_ORIGINS to enable UI on another origin.
    cors_allow_origins: List[str] = field(default_factory=lambda: _env_list("CORS_ALLOW_ORIGINS", ""))
    cors_allow_methods: List[str] = field(default_factory=lambda: _env_list("CORS_ALLOW_METHODS", "GET,POST,PUT,DELETE,OPTIONS"))
    cors_allow_headers: List[str] = field(default_factory=lambda: _env_list("CORS_ALLOW_HEADERS", "Authorization,Content-Type"))
    cors_allow_credentials: bool = field(default_factory=lambda: _env_bool("CORS_ALLOW_CREDENTIALS", "1"))

    # Database
    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./fmx_pm.db"))
    db_echo: bool = field(default_factory=lambda: _env_bool("DB_ECHO", "0"))
    # NOTE: In production, use Alembic migrations (alembic upgrade head). AUTO_CREATE_DB is a dev/test escape hatch.
    auto_create_db: bool = field(default_factory=lambda: _env_bool("AUTO_CREATE_DB", "0"))

    # Auth: one shared admin secret, sent as "Bearer <token>" or the bare token.
    admin_token: str = field(default_factory=lambda: os.getenv("ADMIN_TOKEN", "").strip())

    # Request limits / hardening
    max_request_size_bytes: int = field(default_factory=lambda: _env_int("MAX_REQUEST_SIZE_BYTES", str(1024 * 1024)))

    # Export
    export_filename_prefix: str = field(
        default_factory=lambda: os.getenv("EXPORT_FILENAME_PREFIX", "fmx-planned-maintenance").strip()
    )
