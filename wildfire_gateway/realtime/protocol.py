"""Wire protocol for the realtime channel.

Both directions exchange JSON text frames shaped ``{"event": str, "data": any}``.
"""

from __future__ import annotations

import json
import time
from enum import StrEnum
from typing import Any

from wildfire_gateway.core.types import iso_timestamp
from wildfire_gateway.realtime.exceptions import FrameError

FIRE_ALERTS_ROOM = "fire-alerts"
DEVICE_ROOM_PREFIX = "device-"


class ClientEvent(StrEnum):
    """Events a client may send to the hub."""

    SUBSCRIBE_DEVICE = "subscribe-device"
    UNSUBSCRIBE_DEVICE = "unsubscribe-device"
    SUBSCRIBE_FIRE_ALERTS = "subscribe-fire-alerts"
    UNSUBSCRIBE_FIRE_ALERTS = "unsubscribe-fire-alerts"
    REQUEST_LATEST = "request-latest"
    REQUEST_ANALYTICS = "request-analytics"
    PING = "ping"


class HubEvent(StrEnum):
    """Events the hub sends to clients."""

    CONNECTED = "connected"
    FIRE_EMERGENCY = "fire-emergency"
    EMERGENCY_POPUP = "emergency-popup"
    DEVICE_EMERGENCY = "device-emergency"
    FIRE_ALERT = "fire-alert"
    NEW_DATA = "new-data"
    DEVICE_UPDATE = "device-update"
    DEVICE_DATA_UPDATE = "device-data-update"
    SYSTEM_ALERT = "system-alert"
    LATEST_DATA = "latest-data"
    ANALYTICS_DATA = "analytics-data"
    PONG = "pong"
    SUBSCRIPTION_CONFIRMED = "subscription-confirmed"
    UNSUBSCRIPTION_CONFIRMED = "unsubscription-confirmed"
    FIRE_ALERTS_SUBSCRIPTION_CONFIRMED = "fire-alerts-subscription-confirmed"
    FIRE_ALERTS_UNSUBSCRIPTION_CONFIRMED = "fire-alerts-unsubscription-confirmed"
    ERROR = "error"


def device_room(device_id: str) -> str:
    return f"{DEVICE_ROOM_PREFIX}{device_id}"


def encode_frame(event: str, data: Any = None) -> dict[str, Any]:
    return {"event": str(event), "data": data}


def decode_frame(raw: str | bytes) -> tuple[str, Any]:
    """Parse a client frame into ``(event, data)``.

    Raises:
        FrameError: The frame is not JSON or has no string ``event``.
    """
    try:
        frame = json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise FrameError(f"invalid JSON: {exc}") from exc
    if not isinstance(frame, dict):
        raise FrameError("frame must be a JSON object")
    event = frame.get("event")
    if not isinstance(event, str) or not event:
        raise FrameError("frame is missing an 'event' name")
    return event, frame.get("data")


def membership_confirmation(room: str, joined: bool) -> tuple[HubEvent, dict[str, Any]]:
    """Event and payload confirming a join (``joined=True``) or leave."""
    if room == FIRE_ALERTS_ROOM:
        event = (
            HubEvent.FIRE_ALERTS_SUBSCRIPTION_CONFIRMED
            if joined
            else HubEvent.FIRE_ALERTS_UNSUBSCRIPTION_CONFIRMED
        )
        verb = "Subscribed to" if joined else "Unsubscribed from"
        return event, {
            "message": f"{verb} fire emergency alerts",
            "room": room,
            "timestamp": iso_timestamp(),
        }

    device_id = room.removeprefix(DEVICE_ROOM_PREFIX) if room.startswith(DEVICE_ROOM_PREFIX) else None
    event = HubEvent.SUBSCRIPTION_CONFIRMED if joined else HubEvent.UNSUBSCRIPTION_CONFIRMED
    verb = "Subscribed to" if joined else "Unsubscribed from"
    target = f"device: {device_id}" if device_id is not None else f"room: {room}"
    return event, {
        "deviceId": device_id,
        "room": room,
        "message": f"{verb} updates for {target}",
    }


def pong_payload() -> dict[str, Any]:
    return {"timestamp": iso_timestamp(), "serverTime": int(time.time() * 1000)}
