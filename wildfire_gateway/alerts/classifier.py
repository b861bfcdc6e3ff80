"""Alert classifier — turns loosely-structured sensor payloads into assessments.

Upstream producers disagree on field names and nesting (``device`` vs
``deviceId``, ``emergency`` vs ``is_emergency``, ``gps`` vs ``location``,
values at the top level or under ``payload``). Each logical field is read
through an ordered tuple of accessors; the first one that finds a value
wins. Scoring is table-driven: every metric maps to a tuple of
``(threshold, points)`` pairs, strictest first.

Everything here is pure and never raises; a payload with no usable keys
still yields an assessment built from defaults.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from wildfire_gateway.core.config import AlertsConfig
from wildfire_gateway.core.fields import (
    MISSING,
    Accessor,
    as_epoch_seconds,
    as_flag,
    as_number,
    first_present,
    path,
)
from wildfire_gateway.core.types import EmergencyAssessment, GeoLocation, SeverityTier


def _accessors(field: str, *synonyms: str) -> tuple[Accessor, ...]:
    """Top-level key, top-level synonyms, then the same under ``payload``."""
    return (
        path(field),
        *(path(s) for s in synonyms),
        path("payload", field),
        *(path("payload", s) for s in synonyms),
    )


def _coordinate_accessors(axis: str) -> tuple[Accessor, ...]:
    return (
        path("location", axis),
        path("gps", axis),
        path("payload", "location", axis),
        path("payload", "gps", axis),
    )


FIELD_ACCESSORS: dict[str, tuple[Accessor, ...]] = {
    "device_id": _accessors("deviceId", "device", "device_id"),
    "temperature": _accessors("temperature", "temp"),
    "humidity": _accessors("humidity"),
    "smoke_level": _accessors("smoke_level", "smokeLevel", "smoke"),
    "air_quality": _accessors("air_quality", "airQuality", "aqi"),
    "observed_at": _accessors("timestamp", "alertTime"),
    "latitude": _coordinate_accessors("latitude"),
    "longitude": _coordinate_accessors("longitude"),
}

# Every accessor is checked; any truthy flag marks the payload as an emergency.
EMERGENCY_FLAG_ACCESSORS: tuple[Accessor, ...] = _accessors("is_emergency", "emergency")


def read_field(raw: Mapping[str, Any], field: str) -> Any:
    """First value found for a logical field, or None."""
    value = first_present(raw, FIELD_ACCESSORS[field])
    return None if value is MISSING else value


# ── Scoring tables ──────────────────────────────────────────────


@dataclass(frozen=True)
class MetricRule:
    """Points awarded for one metric; only the strictest matching tier counts."""

    field: str
    tiers: tuple[tuple[float, int], ...]
    inverse: bool = False

    def points(self, value: float) -> int:
        for threshold, pts in self.tiers:
            hit = value < threshold if self.inverse else value > threshold
            if hit:
                return pts
        return 0


SCORING_RULES: tuple[MetricRule, ...] = (
    MetricRule("temperature", ((60.0, 3), (45.0, 2), (35.0, 1))),
    MetricRule("humidity", ((20.0, 3), (35.0, 2), (50.0, 1)), inverse=True),
    MetricRule("smoke_level", ((300.0, 3), (200.0, 2), (100.0, 1))),
    MetricRule("air_quality", ((250.0, 2), (150.0, 1))),
)

TIER_THRESHOLDS: tuple[tuple[int, SeverityTier], ...] = (
    (8, SeverityTier.EXTREME),
    (6, SeverityTier.CRITICAL),
    (4, SeverityTier.HIGH),
    (2, SeverityTier.MODERATE),
)

# Tiers at or above this one are emergencies regardless of explicit flags.
EMERGENCY_TIER = SeverityTier.HIGH


def score_readings(readings: Mapping[str, float]) -> int:
    """Sum the per-metric points for a mapping of normalized readings."""
    return sum(rule.points(readings.get(rule.field, 0.0)) for rule in SCORING_RULES)


def tier_for_score(score: int) -> SeverityTier:
    for minimum, tier in TIER_THRESHOLDS:
        if score >= minimum:
            return tier
    return SeverityTier.LOW


# ── Public API ──────────────────────────────────────────────────

_DEFAULT_FALLBACK = GeoLocation(
    latitude=AlertsConfig().fallback_location.latitude,
    longitude=AlertsConfig().fallback_location.longitude,
)


def assess(
    raw: Any,
    fallback_location: GeoLocation | None = None,
    unknown_device_id: str = "Unknown Device",
    now: float | None = None,
) -> EmergencyAssessment:
    """Classify one raw payload.

    Args:
        raw: Decoded sensor payload. Non-mapping values are treated as empty.
        fallback_location: Used for any coordinate the payload does not carry.
        unknown_device_id: Device id used when no id field is present.
        now: Clock override for tests.

    Returns:
        An immutable EmergencyAssessment.
    """
    payload: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    clock = time.time() if now is None else now
    fallback = fallback_location or _DEFAULT_FALLBACK

    readings = {
        rule.field: as_number(first_present(payload, FIELD_ACCESSORS[rule.field]))
        for rule in SCORING_RULES
    }
    score = score_readings(readings)
    severity = tier_for_score(score)

    flags = (accessor(payload) for accessor in EMERGENCY_FLAG_ACCESSORS)
    flagged = any(as_flag(v) for v in flags if v is not MISSING)

    device = first_present(payload, FIELD_ACCESSORS["device_id"])
    device_id = "" if device is MISSING else str(device).strip()

    # A missing (or unparseable) axis takes the fallback's value for that axis.
    location = GeoLocation(
        latitude=as_number(first_present(payload, FIELD_ACCESSORS["latitude"]), fallback.latitude),
        longitude=as_number(first_present(payload, FIELD_ACCESSORS["longitude"]), fallback.longitude),
    )

    return EmergencyAssessment(
        device_id=device_id or unknown_device_id,
        is_emergency=flagged or severity.rank >= EMERGENCY_TIER.rank,
        severity=severity,
        score=score,
        location=location,
        observed_at=as_epoch_seconds(first_present(payload, FIELD_ACCESSORS["observed_at"]), clock),
        **readings,
    )


class AlertClassifier:
    """Config-bound wrapper around :func:`assess`."""

    def __init__(self, config: AlertsConfig | None = None) -> None:
        cfg = config or AlertsConfig()
        self._fallback = GeoLocation(
            latitude=cfg.fallback_location.latitude,
            longitude=cfg.fallback_location.longitude,
        )
        self._unknown_device_id = cfg.unknown_device_id

    @property
    def fallback_location(self) -> GeoLocation:
        return self._fallback

    def assess(self, raw: Any, now: float | None = None) -> EmergencyAssessment:
        return assess(
            raw,
            fallback_location=self._fallback,
            unknown_device_id=self._unknown_device_id,
            now=now,
        )
