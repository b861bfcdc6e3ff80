"""Tests for emergency broadcast envelopes."""

from __future__ import annotations

from wildfire_gateway.alerts.broadcast import build_emergency_broadcast, ui_hints_for
from wildfire_gateway.core.types import EmergencyAssessment, GeoLocation, ProcessedAlert, SeverityTier


def _assessment(severity: SeverityTier = SeverityTier.CRITICAL) -> EmergencyAssessment:
    return EmergencyAssessment(
        device_id="Node-1",
        is_emergency=True,
        severity=severity,
        score=6,
        location=GeoLocation(latitude=36.0, longitude=10.0),
        observed_at=1_700_000_000.0,
    )


class TestUiHints:
    def test_low_tiers_auto_expire(self) -> None:
        assert ui_hints_for(SeverityTier.LOW).auto_expire is True
        assert ui_hints_for(SeverityTier.MODERATE).auto_expire is True
        assert ui_hints_for(SeverityTier.HIGH).auto_expire is False

    def test_priority_and_color(self) -> None:
        assert ui_hints_for(SeverityTier.EXTREME).priority == "HIGH"
        assert ui_hints_for(SeverityTier.EXTREME).color == "#8B0000"
        assert ui_hints_for(SeverityTier.HIGH).priority == "NORMAL"
        assert ui_hints_for(SeverityTier.HIGH).color == "#FF4500"


class TestBuildEmergencyBroadcast:
    def test_envelope_fields(self) -> None:
        envelope = build_emergency_broadcast(_assessment())
        assert envelope.type == "FIRE_EMERGENCY"
        assert envelope.severity_tier is SeverityTier.CRITICAL
        assert envelope.title == "CRITICAL FIRE EMERGENCY!"
        assert envelope.message == "Fire emergency detected by Node-1"
        assert envelope.is_test is False

    def test_test_prefix(self) -> None:
        envelope = build_emergency_broadcast(_assessment(), is_test=True)
        assert envelope.message.startswith("TEST: ")
        assert envelope.is_test is True

    def test_wire_shape(self) -> None:
        wire = build_emergency_broadcast(_assessment()).to_wire()
        assert wire["severityTier"] == "CRITICAL"
        assert wire["uiHints"]["showPopup"] is True
        assert wire["data"]["deviceId"] == "Node-1"
        assert wire["isTest"] is False
        assert wire["emittedAt"].endswith("Z")

    def test_processed_alert_fields_survive(self) -> None:
        alert = ProcessedAlert.from_assessment(_assessment())
        wire = build_emergency_broadcast(alert).to_wire()
        assert wire["data"]["id"] == alert.id
        assert wire["data"]["processed"] is True
