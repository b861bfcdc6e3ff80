"""Abstract device store — the time-series collaborator behind the read paths."""

from __future__ import annotations

import abc
from typing import Any

from pydantic import Field

from wildfire_gateway.core.types import WireModel

Record = dict[str, Any]

# Accepted analytics windows, in seconds. Unknown values fall back to 24h.
TIME_RANGES: dict[str, int] = {
    "1h": 60 * 60,
    "24h": 24 * 60 * 60,
    "7d": 7 * 24 * 60 * 60,
    "30d": 30 * 24 * 60 * 60,
}
DEFAULT_TIME_RANGE = "24h"


class DevicePage(WireModel):
    """One page of device records, newest first."""

    items: list[Record] = Field(default_factory=list)
    count: int = 0
    has_more: bool = False
    cursor: str | None = None


class DeviceStore(abc.ABC):
    """Read interface over stored sensor records.

    Implementations raise :class:`~wildfire_gateway.store.exceptions.StoreError`
    subclasses on failure; callers surface those as server errors.
    """

    @abc.abstractmethod
    async def get_latest_record(self, device_id: str | None = None) -> Record | None:
        """Most recent record for a device (or the default device)."""

    @abc.abstractmethod
    async def get_device_data(
        self,
        device_id: str | None = None,
        limit: int = 100,
        cursor: str | None = None,
        start_time: float | None = None,
        end_time: float | None = None,
    ) -> DevicePage:
        """Paginated records, newest first, optionally bounded in time."""

    @abc.abstractmethod
    async def get_all_data(
        self,
        limit: int = 100,
        cursor: str | None = None,
    ) -> DevicePage:
        """Paginated records across every device, ignoring the default device."""

    @abc.abstractmethod
    async def get_analytics_summary(
        self,
        device_id: str | None = None,
        time_range: str = DEFAULT_TIME_RANGE,
    ) -> dict[str, Any]:
        """Aggregate statistics over a named time window."""

    @abc.abstractmethod
    async def get_device_list(self) -> list[str]:
        """Sorted distinct device ids."""

    @abc.abstractmethod
    async def test_connection(self) -> dict[str, Any]:
        """Cheap connectivity check; never raises."""
