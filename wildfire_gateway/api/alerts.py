"""Read-only alert history and realtime stats routes."""

from __future__ import annotations

from aiohttp import web

from wildfire_gateway.api.state import HISTORY_KEY, SETTINGS_KEY, bad_request, get_hub, ok
from wildfire_gateway.core.types import iso_timestamp


async def handle_recent_alerts(request: web.Request) -> web.Response:
    history = request.app[HISTORY_KEY]
    default = request.app[SETTINGS_KEY].alerts.recent_default_limit
    raw = request.query.get("limit")
    try:
        limit = int(raw) if raw else default
    except ValueError:
        raise bad_request("limit must be an integer") from None

    alerts = [alert.to_wire() for alert in history.recent(limit)]
    return ok({"alerts": alerts, "count": len(alerts)})


async def handle_alert_stats(request: web.Request) -> web.Response:
    return web.json_response(request.app[HISTORY_KEY].stats())


async def handle_realtime_stats(request: web.Request) -> web.Response:
    hub = get_hub(request)
    if hub is None:
        return web.json_response({
            "enabled": False,
            "connectedClients": 0,
            "rooms": [],
            "timestamp": iso_timestamp(),
        })
    return web.json_response({"enabled": True, **hub.stats()})


def setup_routes(app: web.Application) -> None:
    app.router.add_get("/api/fire-alerts/recent", handle_recent_alerts)
    app.router.add_get("/api/fire-alerts/stats", handle_alert_stats)
    app.router.add_get("/api/realtime/stats", handle_realtime_stats)
