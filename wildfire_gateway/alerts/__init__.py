"""Emergency classification, alert history, and broadcast envelopes."""

from wildfire_gateway.alerts.broadcast import build_emergency_broadcast, ui_hints_for
from wildfire_gateway.alerts.classifier import (
    SCORING_RULES,
    TIER_THRESHOLDS,
    AlertClassifier,
    MetricRule,
    assess,
    score_readings,
    tier_for_score,
)
from wildfire_gateway.alerts.history import AlertHistory

__all__ = [
    "SCORING_RULES",
    "TIER_THRESHOLDS",
    "AlertClassifier",
    "AlertHistory",
    "MetricRule",
    "assess",
    "build_emergency_broadcast",
    "score_readings",
    "tier_for_score",
    "ui_hints_for",
]
