"""Pure functions that turn assessments into client-facing broadcast envelopes."""

from __future__ import annotations

from wildfire_gateway.core.types import (
    EmergencyAssessment,
    EmergencyBroadcast,
    SeverityTier,
    UiHints,
)

# ── Presentation mappings ───────────────────────────────────────

_TIER_COLORS: dict[SeverityTier, str] = {
    SeverityTier.EXTREME: "#8B0000",   # dark red
    SeverityTier.CRITICAL: "#FF0000",  # red
    SeverityTier.HIGH: "#FF4500",      # orange red
    SeverityTier.MODERATE: "#FFA500",  # orange
    SeverityTier.LOW: "#FFD700",       # gold
}

_AUTO_EXPIRE_TIERS = frozenset({SeverityTier.LOW, SeverityTier.MODERATE})
_HIGH_PRIORITY_TIERS = frozenset({SeverityTier.CRITICAL, SeverityTier.EXTREME})


def ui_hints_for(tier: SeverityTier) -> UiHints:
    return UiHints(
        show_popup=True,
        auto_expire=tier in _AUTO_EXPIRE_TIERS,
        sound=True,
        vibrate=True,
        priority="HIGH" if tier in _HIGH_PRIORITY_TIERS else "NORMAL",
        color=_TIER_COLORS.get(tier, "#FF0000"),
    )


def build_emergency_broadcast(
    assessment: EmergencyAssessment,
    is_test: bool = False,
) -> EmergencyBroadcast:
    """Wrap an assessment in the FIRE_EMERGENCY envelope."""
    tier = assessment.severity
    message = f"Fire emergency detected by {assessment.device_id}"
    if is_test:
        message = f"TEST: {message}"
    return EmergencyBroadcast(
        severity_tier=tier,
        title=f"{tier.value} FIRE EMERGENCY!",
        message=message,
        data=assessment,
        ui_hints=ui_hints_for(tier),
        is_test=is_test,
    )
