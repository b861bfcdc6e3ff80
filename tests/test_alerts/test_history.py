"""Tests for AlertHistory — capacity, ordering, stats windows."""

from __future__ import annotations

import pytest

from wildfire_gateway.alerts.history import AlertHistory
from wildfire_gateway.core.types import GeoLocation, ProcessedAlert, SeverityTier

NOW = 1_700_000_000.0
DAY = 24 * 60 * 60


def _alert(
    idx: int = 0,
    severity: SeverityTier = SeverityTier.HIGH,
    processed_at: float = NOW,
) -> ProcessedAlert:
    return ProcessedAlert(
        id=f"FIRE_{idx}",
        device_id=f"Node-{idx}",
        is_emergency=True,
        severity=severity,
        location=GeoLocation(latitude=0.0, longitude=0.0),
        observed_at=processed_at,
        processed_at=processed_at,
    )


class TestCapacity:
    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ValueError):
            AlertHistory(capacity=0)

    def test_overflow_evicts_oldest(self) -> None:
        history = AlertHistory(capacity=100)
        for i in range(101):
            history.add(_alert(i))

        recent = history.recent(100)
        assert len(recent) == 100
        assert len(history) == 100
        ids = [a.id for a in recent]
        assert "FIRE_0" not in ids
        assert ids[0] == "FIRE_100"
        assert ids[-1] == "FIRE_1"

    def test_never_exceeds_capacity(self) -> None:
        history = AlertHistory(capacity=3)
        for i in range(10):
            history.add(_alert(i))
            assert len(history) <= 3
        assert [a.id for a in history.recent(3)] == ["FIRE_9", "FIRE_8", "FIRE_7"]


class TestRecent:
    def test_empty_history(self) -> None:
        assert AlertHistory().recent(10) == []

    def test_newest_first_and_limit(self) -> None:
        history = AlertHistory()
        for i in range(5):
            history.add(_alert(i))
        assert [a.id for a in history.recent(2)] == ["FIRE_4", "FIRE_3"]

    def test_non_positive_limit(self) -> None:
        history = AlertHistory()
        history.add(_alert())
        assert history.recent(0) == []
        assert history.recent(-3) == []

    def test_recent_does_not_mutate(self) -> None:
        history = AlertHistory()
        history.add(_alert(1))
        history.recent(1).clear()
        assert len(history) == 1


class TestStats:
    def test_windows_and_breakdown(self) -> None:
        history = AlertHistory()
        history.add(_alert(1, SeverityTier.EXTREME, processed_at=NOW - 60))
        history.add(_alert(2, SeverityTier.HIGH, processed_at=NOW - 2 * DAY))
        history.add(_alert(3, SeverityTier.HIGH, processed_at=NOW - 10 * DAY))

        stats = history.stats(now=NOW)
        assert stats["total"] == 3
        assert stats["last24Hours"] == 1
        assert stats["lastWeek"] == 2
        assert stats["severityBreakdown"] == {
            "EXTREME": 1,
            "CRITICAL": 0,
            "HIGH": 2,
            "MODERATE": 0,
            "LOW": 0,
        }

    def test_empty_stats(self) -> None:
        stats = AlertHistory().stats(now=NOW)
        assert stats["total"] == 0
        assert stats["last24Hours"] == 0
        assert stats["timestamp"].endswith("Z")

    def test_clear(self) -> None:
        history = AlertHistory()
        history.add(_alert())
        history.clear()
        assert len(history) == 0
