"""Real-time hub: connection registry, rooms and broadcast fan-out.

Rooms are plain ``room -> {connection_id}`` sets. Multicast iterates the set
and sends to each connection in turn; a send failure on one connection is
logged and skipped so the remaining connections still receive the event.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

import structlog

from wildfire_gateway.alerts.broadcast import build_emergency_broadcast
from wildfire_gateway.core.types import EmergencyAssessment, EmergencyBroadcast, iso_timestamp
from wildfire_gateway.realtime.exceptions import FrameError, UnknownConnectionError
from wildfire_gateway.realtime.protocol import (
    FIRE_ALERTS_ROOM,
    ClientEvent,
    HubEvent,
    decode_frame,
    device_room,
    encode_frame,
    membership_confirmation,
    pong_payload,
)
from wildfire_gateway.store.base import DEFAULT_TIME_RANGE, DeviceStore

logger = structlog.get_logger(__name__)


class ClientConnection(Protocol):
    """Anything that can receive JSON frames (aiohttp ``WebSocketResponse`` fits)."""

    @property
    def closed(self) -> bool: ...

    async def send_json(self, data: Any) -> None: ...

    async def close(self) -> Any: ...


class RealtimeHub:
    """Tracks live connections and their room memberships.

    Usage::

        hub = RealtimeHub(store=store)
        await hub.start()
        conn_id = await hub.connect(ws)
        await hub.join(conn_id, FIRE_ALERTS_ROOM)
        await hub.broadcast_emergency(assessment)
        await hub.stop()
    """

    def __init__(
        self,
        store: DeviceStore | None = None,
        stats_interval_secs: float = 300.0,
    ) -> None:
        self._store = store
        self._stats_interval = stats_interval_secs
        self._connections: dict[str, ClientConnection] = {}
        self._rooms: dict[str, set[str]] = {}
        self._memberships: dict[str, set[str]] = {}
        self._task: asyncio.Task[None] | None = None
        self._running = False

    # ── Registry ────────────────────────────────────────────────

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def rooms(self) -> list[str]:
        return sorted(self._rooms)

    def members(self, room: str) -> set[str]:
        return set(self._rooms.get(room, ()))

    def memberships(self, connection_id: str) -> set[str]:
        return set(self._memberships.get(connection_id, ()))

    async def connect(
        self,
        conn: ClientConnection,
        connection_id: str | None = None,
    ) -> str:
        """Register *conn* and greet it; returns the connection id."""
        conn_id = connection_id or uuid.uuid4().hex
        self._connections[conn_id] = conn
        self._memberships[conn_id] = set()
        logger.info("client_connected", connection_id=conn_id, clients=len(self._connections))
        await self._send(conn_id, HubEvent.CONNECTED, {
            "message": "Connected to wildfire device data server",
            "connectionId": conn_id,
            "timestamp": iso_timestamp(),
        })
        return conn_id

    def disconnect(self, connection_id: str, reason: str = "") -> None:
        """Forget a connection and remove it from every room. Idempotent."""
        if self._connections.pop(connection_id, None) is None:
            return
        for room in self._memberships.pop(connection_id, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._rooms[room]
        logger.info(
            "client_disconnected",
            connection_id=connection_id,
            reason=reason,
            clients=len(self._connections),
        )

    def _require(self, connection_id: str) -> None:
        if connection_id not in self._connections:
            raise UnknownConnectionError(connection_id)

    async def join(self, connection_id: str, room: str) -> None:
        """Add a connection to *room* and confirm to that connection only."""
        self._require(connection_id)
        self._rooms.setdefault(room, set()).add(connection_id)
        self._memberships[connection_id].add(room)
        logger.info("room_joined", connection_id=connection_id, room=room)
        event, payload = membership_confirmation(room, joined=True)
        await self._send(connection_id, event, payload)

    async def leave(self, connection_id: str, room: str) -> None:
        """Remove a connection from *room*; leaving a room never joined is harmless."""
        self._require(connection_id)
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._rooms[room]
        self._memberships[connection_id].discard(room)
        logger.info("room_left", connection_id=connection_id, room=room)
        event, payload = membership_confirmation(room, joined=False)
        await self._send(connection_id, event, payload)

    # ── Emission ────────────────────────────────────────────────

    async def _send(self, connection_id: str, event: str, data: Any) -> bool:
        conn = self._connections.get(connection_id)
        if conn is None:
            return False
        if conn.closed:
            self.disconnect(connection_id, reason="closed")
            return False
        try:
            await conn.send_json(encode_frame(event, data))
        except Exception:
            logger.exception("realtime_send_failed", connection_id=connection_id, hub_event=str(event))
            if conn.closed:
                self.disconnect(connection_id, reason="send_failed")
            return False
        return True

    async def _fan_out(self, targets: Iterable[str], event: str, data: Any) -> int:
        delivered = 0
        # Snapshot: _send may drop closed connections mid-iteration.
        for conn_id in list(targets):
            if await self._send(conn_id, event, data):
                delivered += 1
        return delivered

    async def emit_to(self, connection_id: str, event: str, data: Any = None) -> bool:
        return await self._send(connection_id, event, data)

    async def emit_all(self, event: str, data: Any = None) -> int:
        return await self._fan_out(self._connections, event, data)

    async def emit_room(self, room: str, event: str, data: Any = None) -> int:
        return await self._fan_out(self._rooms.get(room, ()), event, data)

    # ── Broadcast operations ────────────────────────────────────

    async def broadcast_emergency(
        self,
        assessment: EmergencyAssessment,
        is_test: bool = False,
    ) -> EmergencyBroadcast:
        """Push one emergency to every client, its device room and the alerts room."""
        envelope = build_emergency_broadcast(assessment, is_test=is_test)
        frame = envelope.to_wire()

        reached = await self.emit_all(HubEvent.FIRE_EMERGENCY, frame)
        await self.emit_all(HubEvent.EMERGENCY_POPUP, frame)
        if assessment.device_id:
            await self.emit_room(device_room(assessment.device_id), HubEvent.DEVICE_EMERGENCY, frame)
        await self.emit_room(FIRE_ALERTS_ROOM, HubEvent.FIRE_ALERT, frame)

        logger.warning(
            "fire_emergency_broadcast",
            device_id=assessment.device_id,
            severity=str(assessment.severity),
            clients=reached,
            is_test=is_test,
        )
        return envelope

    async def broadcast_data_update(
        self,
        record: Mapping[str, Any],
        device_id: str | None = None,
    ) -> None:
        """New reading to everyone, plus ``device-data-update`` to its room."""
        data = dict(record)
        target = device_id or data.get("deviceId")
        await self.emit_all(HubEvent.NEW_DATA, data)
        if target:
            await self.emit_room(device_room(str(target)), HubEvent.DEVICE_DATA_UPDATE, data)
        logger.info("data_update_broadcast", device_id=target or "unknown")

    async def device_update(self, device_id: str, data: Any) -> None:
        await self.emit_room(device_room(device_id), HubEvent.DEVICE_UPDATE, data)
        logger.info("device_update_broadcast", device_id=device_id)

    async def system_alert(self, alert: Mapping[str, Any]) -> None:
        await self.emit_all(HubEvent.SYSTEM_ALERT, {**alert, "timestamp": iso_timestamp()})
        logger.info("system_alert_broadcast", message=alert.get("message"))

    def stats(self) -> dict[str, Any]:
        return {
            "connectedClients": len(self._connections),
            "rooms": self.rooms(),
            "timestamp": iso_timestamp(),
        }

    # ── Client events ───────────────────────────────────────────

    async def handle_client_event(self, connection_id: str, raw: str | bytes) -> None:
        """Decode one client frame and act on it. Errors go back to the sender."""
        try:
            event, data = decode_frame(raw)
        except FrameError as exc:
            logger.warning("realtime_bad_frame", connection_id=connection_id, error=str(exc))
            await self._send(connection_id, HubEvent.ERROR, {"message": str(exc)})
            return

        if event in (ClientEvent.SUBSCRIBE_DEVICE, ClientEvent.UNSUBSCRIBE_DEVICE):
            device_id = _device_id_from(data)
            if device_id is None:
                await self._send(connection_id, HubEvent.ERROR, {
                    "message": f"{event} requires a deviceId",
                })
            elif event == ClientEvent.SUBSCRIBE_DEVICE:
                await self.join(connection_id, device_room(device_id))
            else:
                await self.leave(connection_id, device_room(device_id))
        elif event == ClientEvent.SUBSCRIBE_FIRE_ALERTS:
            await self.join(connection_id, FIRE_ALERTS_ROOM)
        elif event == ClientEvent.UNSUBSCRIBE_FIRE_ALERTS:
            await self.leave(connection_id, FIRE_ALERTS_ROOM)
        elif event == ClientEvent.REQUEST_LATEST:
            await self._send_latest(connection_id, _device_id_from(data))
        elif event == ClientEvent.REQUEST_ANALYTICS:
            params = data if isinstance(data, Mapping) else {}
            await self._send_analytics(
                connection_id,
                _device_id_from(params),
                str(params.get("timeRange") or DEFAULT_TIME_RANGE),
            )
        elif event == ClientEvent.PING:
            await self._send(connection_id, HubEvent.PONG, pong_payload())
        else:
            logger.warning("realtime_unknown_event", connection_id=connection_id, client_event=event)
            await self._send(connection_id, HubEvent.ERROR, {
                "message": f"Unknown event: {event}",
            })

    async def _send_latest(self, connection_id: str, device_id: str | None) -> None:
        if self._store is None:
            await self._send(connection_id, HubEvent.ERROR, {
                "message": "Failed to fetch latest data",
                "error": "device store not configured",
            })
            return
        try:
            record = await self._store.get_latest_record(device_id)
        except Exception as exc:
            logger.exception("realtime_latest_failed", connection_id=connection_id)
            await self._send(connection_id, HubEvent.ERROR, {
                "message": "Failed to fetch latest data",
                "error": str(exc),
            })
            return
        await self._send(connection_id, HubEvent.LATEST_DATA, record)

    async def _send_analytics(
        self,
        connection_id: str,
        device_id: str | None,
        time_range: str,
    ) -> None:
        if self._store is None:
            await self._send(connection_id, HubEvent.ERROR, {
                "message": "Failed to fetch analytics data",
                "error": "device store not configured",
            })
            return
        try:
            summary = await self._store.get_analytics_summary(device_id, time_range)
        except Exception as exc:
            logger.exception("realtime_analytics_failed", connection_id=connection_id)
            await self._send(connection_id, HubEvent.ERROR, {
                "message": "Failed to fetch analytics data",
                "error": str(exc),
            })
            return
        await self._send(connection_id, HubEvent.ANALYTICS_DATA, summary)

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._stats_loop())

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def close_all(self) -> None:
        """Close every live connection (server shutdown)."""
        for conn_id, conn in list(self._connections.items()):
            try:
                await conn.close()
            except Exception:
                logger.exception("realtime_close_failed", connection_id=conn_id)
            self.disconnect(conn_id, reason="server_shutdown")

    async def _stats_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._stats_interval)
                logger.info("realtime_stats", **self.stats())
            except asyncio.CancelledError:
                return
            except Exception:
                logger.exception("realtime_stats_loop_error")


def _device_id_from(data: Any) -> str | None:
    """Clients send either a bare device id or ``{"deviceId": ...}``."""
    if isinstance(data, Mapping):
        data = data.get("deviceId")
    if isinstance(data, str | int) and not isinstance(data, bool):
        text = str(data).strip()
        return text or None
    return None
