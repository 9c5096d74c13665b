"""Runtime configuration for campusreg.

Settings come from an optional YAML file, overridden by ``CAMPUSREG_*``
environment variables.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

ENV_PREFIX = "CAMPUSREG_"


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def _parse_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{ENV_PREFIX}{name} must be >= {minimum}, got {value}")
    return value


def _parse_list(env: Mapping[str, str], name: str, default: list[str]) -> list[str]:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw.strip() == "":
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings.

    Attributes:
        db_path: SQLite database file. ":memory:" keeps everything in process.
        host: Interface the HTTP server binds to.
        port: Port the HTTP server listens on.
        cors_origins: Allowed CORS origins.
        top_courses_limit: Number of courses reported in registration statistics.
        default_page_size: Page size for the admin registration listing.
        max_update_retries: Attempts for a registration update that loses a
            concurrent write race.
        busy_timeout_seconds: How long a writer waits on a locked database.
        log_dir: Log directory (None uses the logging default).
        log_level: Log level name (None uses the logging default).
    """

    db_path: str = "campusreg.db"
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    top_courses_limit: int = 10
    default_page_size: int = 10
    max_update_retries: int = 3
    busy_timeout_seconds: int = 30
    log_dir: str | None = None
    log_level: str | None = None

    @classmethod
    def from_env(
        cls, env: Mapping[str, str] | None = None, base: Settings | None = None
    ) -> Settings:
        """Build settings from environment variables.

        Args:
            env: Mapping to read from. Defaults to ``os.environ``.
            base: Values used for anything unset. Defaults to the built-in defaults.

        Returns:
            Parsed settings.

        Raises:
            ConfigError: If a numeric variable is malformed or out of range.
        """
        if env is None:
            env = os.environ
        defaults = base or cls()
        return cls(
            db_path=env.get(f"{ENV_PREFIX}DB_PATH", defaults.db_path),
            host=env.get(f"{ENV_PREFIX}HOST", defaults.host),
            port=_parse_int(env, "PORT", defaults.port, minimum=1),
            cors_origins=_parse_list(env, "CORS_ORIGINS", defaults.cors_origins),
            top_courses_limit=_parse_int(env, "TOP_COURSES", defaults.top_courses_limit, 1),
            default_page_size=_parse_int(env, "PAGE_SIZE", defaults.default_page_size, 1),
            max_update_retries=_parse_int(env, "UPDATE_RETRIES", defaults.max_update_retries, 1),
            busy_timeout_seconds=_parse_int(env, "BUSY_TIMEOUT", defaults.busy_timeout_seconds),
            log_dir=env.get(f"{ENV_PREFIX}LOG_DIR", defaults.log_dir),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level),
        )

    @classmethod
    def from_file(cls, config_path: Path | str, env: Mapping[str, str] | None = None) -> Settings:
        """Load settings from a YAML file, then apply environment overrides.

        Args:
            config_path: Path to a YAML mapping of setting names to values.
            env: Mapping to read overrides from. Defaults to ``os.environ``.

        Raises:
            ConfigError: If the file is missing, invalid, or names unknown settings.
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown setting(s) in {config_path}: {', '.join(unknown)}")

        values = {name: _coerce(name, value, cls()) for name, value in data.items()}
        return cls.from_env(env, base=cls(**values))


def _coerce(name: str, value: Any, defaults: Settings) -> Any:
    default = getattr(defaults, name)
    if isinstance(default, bool) or value is None:
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Setting '{name}' must be an integer, got {value!r}")
        if value < 0:
            raise ConfigError(f"Setting '{name}' must be >= 0, got {value}")
        return value
    if isinstance(default, list):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if not isinstance(value, list):
            raise ConfigError(f"Setting '{name}' must be a list, got {value!r}")
        return [str(item) for item in value]
    return str(value)
