"""Core module — config, types, logging."""

from wildfire_gateway.core.config import Settings, get_settings, load_settings, reset_settings
from wildfire_gateway.core.logging import setup_logging
from wildfire_gateway.core.types import (
    DeliveryAck,
    EmergencyAssessment,
    EmergencyBroadcast,
    GeoLocation,
    MessageKind,
    NotificationEnvelope,
    ProcessedAlert,
    SeverityTier,
    UiHints,
    iso_timestamp,
)

__all__ = [
    "DeliveryAck",
    "EmergencyAssessment",
    "EmergencyBroadcast",
    "GeoLocation",
    "MessageKind",
    "NotificationEnvelope",
    "ProcessedAlert",
    "Settings",
    "SeverityTier",
    "UiHints",
    "get_settings",
    "iso_timestamp",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
