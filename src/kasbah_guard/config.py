"""Configuration management for the Kasbah Guard local authority."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8788, ge=1024, le=65535)
    service_name: str = Field(default="kasbah-guard-local")
    cors_allow_origin: str = Field(default="*")
    max_body_size_kb: int = Field(default=256, ge=1, le=10_240)


class GuardSettings(BaseModel):
    ticket_ttl_seconds: int = Field(default=60, ge=1, le=3600)
    max_events: int = Field(
        default=200,
        ge=1,
        le=10_000,
        description="Number of audit events retained in memory, newest first.",
    )


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    guard: GuardSettings = Field(default_factory=GuardSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_KEYS = {
    "host": "GUARD_HOST",
    "port": "GUARD_PORT",
    "service_name": "GUARD_SERVICE_NAME",
    "cors_allow_origin": "GUARD_CORS_ALLOW_ORIGIN",
    "max_body_size_kb": "GUARD_MAX_BODY_SIZE_KB",
    "ticket_ttl_seconds": "GUARD_TICKET_TTL_SECONDS",
    "max_events": "GUARD_MAX_EVENTS",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"], "").strip()

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
            "service_name": os.getenv(
                ENV_KEYS["service_name"], ServerSettings().service_name
            ),
            "cors_allow_origin": os.getenv(
                ENV_KEYS["cors_allow_origin"], ServerSettings().cors_allow_origin
            ),
            "max_body_size_kb": _env_int(
                ENV_KEYS["max_body_size_kb"], ServerSettings().max_body_size_kb
            ),
        },
        "guard": {
            "ticket_ttl_seconds": _env_int(
                ENV_KEYS["ticket_ttl_seconds"], GuardSettings().ticket_ttl_seconds
            ),
            "max_events": _env_int(ENV_KEYS["max_events"], GuardSettings().max_events),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": log_file_env or None,
        },
    }

    try:
        return Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
