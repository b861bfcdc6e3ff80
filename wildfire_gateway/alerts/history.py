"""AlertHistory — bounded in-memory ring of recently processed alerts."""

from __future__ import annotations

import time
from collections import deque

from wildfire_gateway.core.types import ProcessedAlert, SeverityTier, iso_timestamp

_DAY_SECS = 24 * 60 * 60
_WEEK_SECS = 7 * _DAY_SECS


class AlertHistory:
    """Newest-first ring buffer of ProcessedAlert, capped at *capacity*.

    Inserting at capacity evicts the oldest entry. Statistics are computed
    by a linear scan.

    Usage::

        history = AlertHistory(capacity=100)
        history.add(alert)
        history.recent(10)
        history.stats()
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._alerts: deque[ProcessedAlert] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._alerts)

    def add(self, alert: ProcessedAlert) -> None:
        """Insert at the head; the deque drops the tail when full."""
        self._alerts.appendleft(alert)

    def recent(self, limit: int = 10) -> list[ProcessedAlert]:
        """Return up to *limit* most recent alerts, newest first."""
        if limit <= 0:
            return []
        return list(self._alerts)[:limit]

    def severity_breakdown(self) -> dict[str, int]:
        breakdown = {tier.value: 0 for tier in reversed(SeverityTier)}
        for alert in self._alerts:
            breakdown[alert.severity.value] += 1
        return breakdown

    def stats(self, now: float | None = None) -> dict[str, object]:
        """Totals over the retained window plus 24h / 7d counts."""
        clock = time.time() if now is None else now
        last_day = sum(1 for a in self._alerts if a.processed_at > clock - _DAY_SECS)
        last_week = sum(1 for a in self._alerts if a.processed_at > clock - _WEEK_SECS)
        return {
            "total": len(self._alerts),
            "last24Hours": last_day,
            "lastWeek": last_week,
            "severityBreakdown": self.severity_breakdown(),
            "timestamp": iso_timestamp(clock),
        }

    def clear(self) -> None:
        self._alerts.clear()
