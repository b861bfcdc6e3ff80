"""Domain types shared across the gateway.

Models that travel to web/mobile clients subclass ``WireModel`` so their
JSON form uses camelCase keys (``deviceId``, ``smokeLevel``) while Python
code keeps snake_case attribute names.
"""

from __future__ import annotations

import datetime
import secrets
import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny
from pydantic.alias_generators import to_camel


def iso_timestamp(ts: float | None = None) -> str:
    """Render an epoch timestamp (default: now) as an ISO-8601 UTC string."""
    value = time.time() if ts is None else ts
    dt = datetime.datetime.fromtimestamp(value, datetime.UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WireModel(BaseModel):
    """Base for models serialized to clients with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ── Severity ─────────────────────────────────────────────────────


class SeverityTier(StrEnum):
    """Emergency severity, LOW < MODERATE < HIGH < CRITICAL < EXTREME."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
    EXTREME = "EXTREME"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK: dict[SeverityTier, int] = {
    tier: index for index, tier in enumerate(SeverityTier)
}


# ── Assessments & alerts ─────────────────────────────────────────


class GeoLocation(WireModel):
    """WGS84 coordinate."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class EmergencyAssessment(WireModel):
    """Normalized classification of one raw sensor payload."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    is_emergency: bool
    severity: SeverityTier
    score: int = 0
    temperature: float = 0.0
    humidity: float = 0.0
    smoke_level: float = 0.0
    air_quality: float = 0.0
    location: GeoLocation
    observed_at: float


def new_alert_id(now: float | None = None) -> str:
    """Timestamp plus random suffix, e.g. ``FIRE_1718000000000_3fa9c01b2e``."""
    millis = int((time.time() if now is None else now) * 1000)
    return f"FIRE_{millis}_{secrets.token_hex(5)}"


class ProcessedAlert(EmergencyAssessment):
    """An assessment that has been accepted into the alert pipeline."""

    id: str
    processed: bool = True
    processed_at: float = Field(default_factory=time.time)

    @classmethod
    def from_assessment(
        cls,
        assessment: EmergencyAssessment,
        now: float | None = None,
    ) -> ProcessedAlert:
        processed_at = time.time() if now is None else now
        return cls(
            **assessment.model_dump(exclude={"id", "processed", "processed_at"}),
            id=new_alert_id(processed_at),
            processed_at=processed_at,
        )


# ── Push-notification envelopes ──────────────────────────────────


class MessageKind(StrEnum):
    """Envelope discriminator values sent by the notification service."""

    SUBSCRIPTION_CONFIRMATION = "SubscriptionConfirmation"
    NOTIFICATION = "Notification"
    UNSUBSCRIBE_CONFIRMATION = "UnsubscribeConfirmation"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> MessageKind:
        for kind in cls:
            if kind.value == value:
                return kind
        return cls.UNKNOWN


class NotificationEnvelope(BaseModel):
    """Outer wrapper of one push delivery."""

    kind: MessageKind
    raw_kind: str = ""
    message_id: str = ""
    topic: str = ""
    subject: str = ""
    message: Any = None
    timestamp: str = ""
    subscribe_url: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class DeliveryAck(BaseModel):
    """Result handed back to the webhook transport."""

    status: int = 200
    success: bool = True
    message: str = ""
    message_id: str | None = None
    error: str | None = None
    timestamp: float = Field(default_factory=time.time)

    def body(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error or "Unknown error"}
        return {
            "success": True,
            "message": self.message,
            "messageId": self.message_id,
            "timestamp": iso_timestamp(self.timestamp),
        }


# ── Broadcast envelope ───────────────────────────────────────────


class UiHints(WireModel):
    """Presentation hints for client popups."""

    show_popup: bool = True
    auto_expire: bool = False
    sound: bool = True
    vibrate: bool = True
    priority: str = "NORMAL"
    color: str = "#FF0000"


class EmergencyBroadcast(WireModel):
    """Presentation-ready emergency envelope pushed to realtime clients."""

    type: str = "FIRE_EMERGENCY"
    severity_tier: SeverityTier
    title: str
    message: str
    data: SerializeAsAny[EmergencyAssessment]
    ui_hints: UiHints
    emitted_at: str = Field(default_factory=iso_timestamp)
    is_test: bool = False
