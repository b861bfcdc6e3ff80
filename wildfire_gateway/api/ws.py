"""WebSocket endpoint bridging aiohttp connections into the realtime hub."""

from __future__ import annotations

import structlog
from aiohttp import WSMsgType, web

from wildfire_gateway.api.state import SETTINGS_KEY, get_hub
from wildfire_gateway.core.logging import bind_request_context
from wildfire_gateway.realtime.exceptions import HubError

logger = structlog.get_logger(__name__)


async def handle_websocket(request: web.Request) -> web.StreamResponse:
    hub = get_hub(request)
    if hub is None:
        return web.json_response(
            {"success": False, "message": "Realtime channel is disabled"},
            status=503,
        )

    settings = request.app[SETTINGS_KEY]
    ws = web.WebSocketResponse(heartbeat=settings.realtime.heartbeat_secs)
    await ws.prepare(request)

    conn_id = await hub.connect(ws)
    bind_request_context(connection_id=conn_id)
    reason = "client_closed"
    try:
        async for msg in ws:
            if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                try:
                    await hub.handle_client_event(conn_id, msg.data)
                except HubError as exc:
                    logger.warning("realtime_connection_dropped", error=str(exc))
                    reason = "dropped"
                    break
            elif msg.type == WSMsgType.ERROR:
                logger.warning("realtime_socket_error", error=str(ws.exception()))
                reason = "socket_error"
    finally:
        hub.disconnect(conn_id, reason=reason)
        if not ws.closed:
            await ws.close()
    return ws


def setup_routes(app: web.Application, path: str) -> None:
    app.router.add_get(path, handle_websocket)
