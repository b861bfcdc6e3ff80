"""Real-time hub — WebSocket connections, rooms and broadcasts."""

from wildfire_gateway.realtime.exceptions import FrameError, HubError, UnknownConnectionError
from wildfire_gateway.realtime.hub import ClientConnection, RealtimeHub
from wildfire_gateway.realtime.protocol import (
    FIRE_ALERTS_ROOM,
    ClientEvent,
    HubEvent,
    decode_frame,
    device_room,
    encode_frame,
)

__all__ = [
    "FIRE_ALERTS_ROOM",
    "ClientConnection",
    "ClientEvent",
    "FrameError",
    "HubError",
    "HubEvent",
    "RealtimeHub",
    "UnknownConnectionError",
    "decode_frame",
    "device_room",
    "encode_frame",
]
