"""Device store collaborator — interface and in-memory implementation."""

from wildfire_gateway.store.base import TIME_RANGES, DevicePage, DeviceStore, Record
from wildfire_gateway.store.exceptions import (
    InvalidCursorError,
    StoreError,
    StoreUnavailableError,
)
from wildfire_gateway.store.memory import InMemoryDeviceStore

__all__ = [
    "TIME_RANGES",
    "DevicePage",
    "DeviceStore",
    "InMemoryDeviceStore",
    "InvalidCursorError",
    "Record",
    "StoreError",
    "StoreUnavailableError",
]
