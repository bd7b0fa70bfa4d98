"""Configuration management for the messaging service."""
from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import resolve_database_path
from .passwords import DEFAULT_SCHEME

logger = logging.getLogger("messagely.config")


class ConfigurationError(RuntimeError):
    """Raised when a configuration value cannot be interpreted."""


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup."""

    database_path: Path
    secret_key: str
    bcrypt_work_factor: Optional[int] = None
    password_scheme: str = DEFAULT_SCHEME
    token_lifetime: Optional[timedelta] = None


def _env_int(name: str, value: Optional[object], default: Optional[int]) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid integer value {value!r} for {name}") from exc


def load_config_file(config_path: Path) -> Dict[str, object]:
    """Load settings from a YAML file with a top-level mapping."""

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``MESSAGELY_*`` variables and an optional YAML file.

    Environment variables take precedence over values from the file named by
    ``MESSAGELY_CONFIG``.
    """

    env = os.environ if environ is None else environ

    file_values: Dict[str, object] = {}
    config_file = env.get("MESSAGELY_CONFIG")
    if config_file:
        file_values = load_config_file(Path(config_file).expanduser())

    def pick(env_name: str, key: str) -> Optional[object]:
        value = env.get(env_name)
        if value is not None and value.strip() != "":
            return value
        return file_values.get(key)

    db_value = pick("MESSAGELY_DB_PATH", "database_path")
    database_path = resolve_database_path(str(db_value) if db_value is not None else None)

    secret = pick("MESSAGELY_SECRET_KEY", "secret_key")
    if secret is None or str(secret).strip() == "":
        logger.warning(
            "MESSAGELY_SECRET_KEY is not set; using a random secret. Issued tokens will"
            " stop working when the process restarts."
        )
        secret_key = secrets.token_urlsafe(32)
    else:
        secret_key = str(secret).strip()

    work_factor = _env_int(
        "MESSAGELY_BCRYPT_WORK_FACTOR",
        pick("MESSAGELY_BCRYPT_WORK_FACTOR", "bcrypt_work_factor"),
        None,
    )
    scheme = pick("MESSAGELY_PASSWORD_SCHEME", "password_scheme")

    lifetime_seconds = _env_int(
        "MESSAGELY_TOKEN_LIFETIME_SECONDS",
        pick("MESSAGELY_TOKEN_LIFETIME_SECONDS", "token_lifetime_seconds"),
        None,
    )
    if lifetime_seconds is not None and lifetime_seconds <= 0:
        raise ConfigurationError("MESSAGELY_TOKEN_LIFETIME_SECONDS must be positive")

    return Settings(
        database_path=database_path,
        secret_key=secret_key,
        bcrypt_work_factor=work_factor,
        password_scheme=str(scheme).strip() if scheme else DEFAULT_SCHEME,
        token_lifetime=timedelta(seconds=lifetime_seconds) if lifetime_seconds else None,
    )


__all__ = ["ConfigurationError", "Settings", "load_config_file", "load_settings"]
