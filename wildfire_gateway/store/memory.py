"""In-memory DeviceStore — used for local runs, seeding from JSON, and tests."""

from __future__ import annotations

import base64
import binascii
import json
import time
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog

from wildfire_gateway.alerts.classifier import read_field
from wildfire_gateway.core.config import StoreConfig
from wildfire_gateway.core.fields import as_epoch_seconds, as_number
from wildfire_gateway.store.base import (
    DEFAULT_TIME_RANGE,
    TIME_RANGES,
    DevicePage,
    DeviceStore,
    Record,
)
from wildfire_gateway.store.exceptions import InvalidCursorError, StoreError

logger = structlog.get_logger(__name__)

_MAX_PAGE = 1000
_METRICS = ("temperature", "humidity", "smoke_level", "air_quality")


def _encode_cursor(offset: int) -> str:
    return base64.urlsafe_b64encode(f"offset:{offset}".encode()).decode()


def _decode_cursor(cursor: str) -> int:
    try:
        text = base64.urlsafe_b64decode(cursor.encode()).decode()
        prefix, _, value = text.partition(":")
        offset = int(value)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise InvalidCursorError(f"invalid cursor: {cursor!r}") from exc
    if prefix != "offset" or offset < 0:
        raise InvalidCursorError(f"invalid cursor: {cursor!r}")
    return offset


def _paginate(items: list[Record], limit: int, cursor: str | None) -> DevicePage:
    size = max(1, min(limit, _MAX_PAGE))
    offset = _decode_cursor(cursor) if cursor else 0
    page = items[offset:offset + size]
    has_more = offset + size < len(items)
    return DevicePage(
        items=[dict(r) for r in page],
        count=len(page),
        has_more=has_more,
        cursor=_encode_cursor(offset + size) if has_more else None,
    )


class InMemoryDeviceStore(DeviceStore):
    """Keeps every record in a list; queries sort newest first on demand."""

    def __init__(
        self,
        config: StoreConfig | None = None,
        records: Iterable[Mapping[str, Any]] | None = None,
    ) -> None:
        self._config = config or StoreConfig()
        self._records: list[Record] = []
        for record in records or ():
            self.add_record(record)

    @classmethod
    def from_json_file(
        cls, path: str | Path, config: StoreConfig | None = None
    ) -> InMemoryDeviceStore:
        """Load a JSON array (or ``{"items": [...]}``) of records."""
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("items", [])
        if not isinstance(data, list):
            raise StoreError(f"seed file {path} does not contain a record list")
        store = cls(config, [r for r in data if isinstance(r, dict)])
        logger.info("store_seeded", path=str(path), records=len(store))
        return store

    def __len__(self) -> int:
        return len(self._records)

    def add_record(self, record: Mapping[str, Any]) -> None:
        self._records.append(dict(record))

    # ── Helpers ─────────────────────────────────────────────────

    def _record_time(self, record: Mapping[str, Any]) -> float:
        for key in (self._config.timestamp_field, "createdAt", "updatedAt"):
            if record.get(key) is not None:
                return as_epoch_seconds(record[key], 0.0)
        return 0.0

    def _record_device(self, record: Mapping[str, Any]) -> str | None:
        value = record.get(self._config.device_id_field)
        if value is None:
            value = read_field(record, "device_id")
        return None if value is None else str(value)

    def _select(
        self,
        device_id: str | None,
        start_time: float | None = None,
        end_time: float | None = None,
        all_devices: bool = False,
    ) -> list[Record]:
        target = None if all_devices else device_id or self._config.default_device_id or None
        selected = [
            r for r in self._records
            if target is None or self._record_device(r) == target
        ]
        if start_time is not None:
            selected = [r for r in selected if self._record_time(r) >= start_time]
        if end_time is not None:
            selected = [r for r in selected if self._record_time(r) <= end_time]
        selected.sort(key=self._record_time, reverse=True)
        return selected

    # ── DeviceStore ─────────────────────────────────────────────

    async def get_latest_record(self, device_id: str | None = None) -> Record | None:
        items = self._select(device_id)
        return dict(items[0]) if items else None

    async def get_device_data(
        self,
        device_id: str | None = None,
        limit: int = 100,
        cursor: str | None = None,
        start_time: float | None = None,
        end_time: float | None = None,
    ) -> DevicePage:
        return _paginate(self._select(device_id, start_time, end_time), limit, cursor)

    async def get_all_data(
        self,
        limit: int = 100,
        cursor: str | None = None,
    ) -> DevicePage:
        return _paginate(self._select(None, all_devices=True), limit, cursor)

    async def get_analytics_summary(
        self,
        device_id: str | None = None,
        time_range: str = DEFAULT_TIME_RANGE,
    ) -> dict[str, Any]:
        window = time_range if time_range in TIME_RANGES else DEFAULT_TIME_RANGE
        now = time.time()
        page = await self.get_device_data(
            device_id,
            limit=_MAX_PAGE,
            start_time=now - TIME_RANGES[window],
            end_time=now,
        )
        items = page.items
        if not items:
            return {
                "totalRecords": 0,
                "timeRange": window,
                "latest": None,
                "oldest": None,
                "summary": "No data available for the selected time range",
            }

        analytics: dict[str, Any] = {}
        for metric in _METRICS:
            values = [
                as_number(v) for v in (read_field(r, metric) for r in items)
                if v is not None
            ]
            if not values:
                continue
            analytics[metric] = {
                "averageValue": round(sum(values) / len(values), 2),
                "minValue": min(values),
                "maxValue": max(values),
                "dataPoints": len(values),
            }

        return {
            "totalRecords": len(items),
            "timeRange": window,
            "latest": items[0],
            "oldest": items[-1],
            "analytics": analytics,
        }

    async def get_device_list(self) -> list[str]:
        ids = {self._record_device(r) for r in self._records}
        return sorted(i for i in ids if i)

    async def test_connection(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": f"In-memory store holding {len(self._records)} records",
            "deviceIdField": self._config.device_id_field,
            "timestampField": self._config.timestamp_field,
        }
