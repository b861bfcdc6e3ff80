"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3001
    debug: bool = False


class RealtimeConfig(BaseModel):
    """WebSocket hub configuration."""

    enabled: bool = True
    path: str = "/ws"
    heartbeat_secs: float = 25.0
    stats_interval_secs: float = 300.0


class LocationConfig(BaseModel):
    """A fixed coordinate."""

    latitude: float = 36.006397
    longitude: float = 10.1715


class AlertsConfig(BaseModel):
    """Emergency classification and history configuration."""

    history_capacity: int = 100
    emergency_keywords: list[str] = ["fire"]
    # Used for any coordinate a payload does not carry.
    fallback_location: LocationConfig = LocationConfig()
    unknown_device_id: str = "Unknown Device"
    recent_default_limit: int = 10


class IngressConfig(BaseModel):
    """Push-notification webhook configuration."""

    message_type_header: str = "x-amz-sns-message-type"
    topic_header: str = "x-amz-sns-topic-arn"
    confirm_timeout_secs: float = 10.0


class StoreConfig(BaseModel):
    """Device store configuration."""

    default_device_id: str = ""
    device_id_field: str = "deviceId"
    timestamp_field: str = "timestamp"
    seed_path: str = ""


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    server: ServerConfig = ServerConfig()
    realtime: RealtimeConfig = RealtimeConfig()
    alerts: AlertsConfig = AlertsConfig()
    ingress: IngressConfig = IngressConfig()
    store: StoreConfig = StoreConfig()
    logging: LoggingConfig = LoggingConfig()


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
