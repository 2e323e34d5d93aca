"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class ApiConfig(BaseModel):
    """Shared webhook listener configuration."""

    host: str = "0.0.0.0"
    listen_port: int = 8080


class MetricsConfig(BaseModel):
    """Prometheus pull endpoint configuration."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 9090


class LoggingConfig(BaseModel):
    """Logging configuration.

    ``loggers`` sets per-logger levels for stdlib loggers, mostly to quiet
    the per-request lines aiohttp and httpx emit at INFO.
    """

    level: str = "INFO"
    format: str = "json"
    loggers: dict[str, str] = Field(
        default_factory=lambda: {
            "aiohttp.access": "WARNING",
            "httpx": "WARNING",
            "httpcore": "WARNING",
        }
    )


class Settings(BaseModel):
    """Root settings container.

    ``handlers`` maps a registered handler name to its raw, handler-specific
    configuration block. Each handler validates its own block at construction.
    """

    api: ApiConfig = ApiConfig()
    metrics: MetricsConfig = MetricsConfig()
    logging: LoggingConfig = LoggingConfig()
    handlers: dict[str, Any] = {}


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    if data.get("handlers") is None:
        data.pop("handlers", None)

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
