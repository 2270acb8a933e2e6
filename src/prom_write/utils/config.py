"""Configuration loading and validation."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlparse

import yaml


class ConfigError(ValueError):
    """Raised for invalid configuration values."""

    pass


@dataclass
class RemoteWriteConfig:
    """Remote write endpoint configuration."""

    url: str = ""
    timeout_seconds: float = 60.0
    max_attempts: int = 1  # 1 = no retry
    user_agent: str = ""  # empty = prom-write/<version>
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Application configuration."""

    name: str = "prom-write"
    log_level: str = "WARNING"


@dataclass
class Config:
    """Root configuration object."""

    app: AppConfig = field(default_factory=AppConfig)
    remote_write: RemoteWriteConfig = field(default_factory=RemoteWriteConfig)


def _dict_to_dataclass(cls: type, data: dict[str, Any]) -> Any:
    """Recursively convert a dictionary to a dataclass instance."""
    if data is None:
        return cls()

    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs = {}

    for key, value in data.items():
        if key not in field_types:
            continue

        field_type = field_types[key]

        # Handle nested dataclasses
        if hasattr(field_type, "__dataclass_fields__") and isinstance(value, dict):
            kwargs[key] = _dict_to_dataclass(field_type, value)
        else:
            kwargs[key] = value

    return cls(**kwargs)


def validate_url(url: str) -> str:
    """Check that a remote write URL is an absolute http(s) URL.

    Raises:
        ConfigError: If the URL is not usable.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"invalid url '{url}': expected an http:// or https:// URL")
    return url


def validate_config(config: Config) -> Config:
    """Validate and normalise a loaded configuration.

    Raises:
        ConfigError: On invalid values.
    """
    rw = config.remote_write
    if rw.url:
        validate_url(rw.url)
    if rw.timeout_seconds <= 0:
        raise ConfigError("remote_write.timeout_seconds must be positive")
    if rw.max_attempts < 1:
        raise ConfigError("remote_write.max_attempts must be at least 1")
    if not isinstance(rw.headers, dict):
        raise ConfigError("remote_write.headers must be a mapping")
    rw.headers = {str(k): str(v) for k, v in rw.headers.items()}
    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config file. If None, searches default locations.

    Returns:
        Config object with all settings.

    Raises:
        ConfigError: If an explicitly given file does not exist, or on
            invalid values.
    """
    if config_path and not Path(config_path).exists():
        raise ConfigError(f"config file '{config_path}' does not exist")

    search_paths = [
        Path(config_path) if config_path else None,
        Path("config/config.yaml"),
        Path("/etc/prom-write/config.yaml"),
        Path.home() / ".config" / "prom-write" / "config.yaml",
    ]

    config_file = None
    for path in search_paths:
        if path and path.exists():
            config_file = path
            break

    if config_file is None:
        # Return defaults if no config file found
        return Config()

    with open(config_file) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"could not parse config file '{config_file}': {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file '{config_file}' must contain a mapping")

    config = Config(
        app=_dict_to_dataclass(AppConfig, data.get("app", {})),
        remote_write=_dict_to_dataclass(
            RemoteWriteConfig, data.get("remote_write", {})
        ),
    )
    return validate_config(config)
