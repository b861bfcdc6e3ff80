"""aiohttp application for the gateway.

Exposes:
- ``POST /sns/webhook``          → push-notification deliveries
- ``GET|POST /sns/test``         → run the canned test alert through the pipeline
- ``GET /ws`` (configurable)     → realtime WebSocket channel
- ``GET /api/fire-alerts/...``   → alert history
- ``GET /api/device/...``        → device store passthrough
- ``GET /api/analytics/...``     → store analytics and dashboard
- ``GET /api/client/info``       → detected client capabilities
- ``GET /health``, ``/api/config``, ``/``
"""

from __future__ import annotations

import time

import structlog
from aiohttp import web

from wildfire_gateway.alerts.history import AlertHistory
from wildfire_gateway.api import alerts, clients, devices, webhook, ws
from wildfire_gateway.api.middlewares import client_detection_middleware, error_middleware
from wildfire_gateway.api.state import (
    API_VERSION,
    HISTORY_KEY,
    HUB_KEY,
    INGRESS_KEY,
    SETTINGS_KEY,
    STARTED_AT_KEY,
    STORE_KEY,
    client_info,
    get_hub,
)
from wildfire_gateway.core.config import Settings
from wildfire_gateway.core.types import iso_timestamp
from wildfire_gateway.ingress.handler import NotificationIngress
from wildfire_gateway.realtime.hub import RealtimeHub
from wildfire_gateway.store.base import DeviceStore

logger = structlog.get_logger(__name__)

# Sensor batches posted to the webhook can be large.
_MAX_BODY_BYTES = 10 * 1024 * 1024


async def _handle_health(request: web.Request) -> web.Response:
    return web.json_response({
        "status": "OK",
        "timestamp": iso_timestamp(),
        "uptime": round(time.monotonic() - request.app[STARTED_AT_KEY], 3),
        "client": client_info(request),
        "services": {"websocket": get_hub(request) is not None},
        "supportedClients": ["nextjs", "react-native"],
        "apiVersion": API_VERSION,
    })


async def _handle_config(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    return web.json_response({
        "client": request.get("client_type", "unknown"),
        "features": {
            "websocket": get_hub(request) is not None,
            "realtime": True,
            "analytics": request.app.get(STORE_KEY) is not None,
            "pagination": True,
        },
        "endpoints": {
            "latest": "/api/device/latest",
            "data": "/api/device/data",
            "analytics": "/api/analytics/summary",
            "dashboard": "/api/analytics/dashboard",
            "devices": "/api/device/list",
            "allData": "/api/device/all/data",
            "clientInfo": "/api/client/info",
            "websocket": settings.realtime.path,
            "recentAlerts": "/api/fire-alerts/recent",
        },
    })


async def _handle_root(request: web.Request) -> web.Response:
    return web.json_response({
        "message": "Wildfire Device Data API Server",
        "version": API_VERSION,
        "client": {"type": request.get("client_type", "unknown")},
        "timestamp": iso_timestamp(),
        "endpoints": {
            "health": "/health",
            "config": "/api/config",
            "webhook": "/sns/webhook",
            "latest": "/api/device/latest",
            "data": "/api/device/data",
            "analytics": "/api/analytics/summary",
            "dashboard": "/api/analytics/dashboard",
            "clientInfo": "/api/client/info",
        },
    })


async def _close_realtime(app: web.Application) -> None:
    hub = app.get(HUB_KEY)
    if hub is not None:
        await hub.close_all()


def create_app(
    settings: Settings,
    ingress: NotificationIngress,
    history: AlertHistory,
    hub: RealtimeHub | None = None,
    store: DeviceStore | None = None,
) -> web.Application:
    """Create the aiohttp web application.

    ``hub`` and ``store`` are optional: without a hub the WebSocket route
    answers 503 and emergencies are recorded but not pushed; without a
    store the device routes answer 503.
    """
    app = web.Application(
        middlewares=[client_detection_middleware, error_middleware],
        client_max_size=_MAX_BODY_BYTES,
    )
    app[SETTINGS_KEY] = settings
    app[INGRESS_KEY] = ingress
    app[HISTORY_KEY] = history
    app[STARTED_AT_KEY] = time.monotonic()
    if hub is not None:
        app[HUB_KEY] = hub
    if store is not None:
        app[STORE_KEY] = store

    app.router.add_get("/", _handle_root)
    app.router.add_get("/health", _handle_health)
    app.router.add_get("/api/config", _handle_config)
    webhook.setup_routes(app)
    alerts.setup_routes(app)
    devices.setup_routes(app)
    clients.setup_routes(app)
    ws.setup_routes(app, settings.realtime.path)

    app.on_shutdown.append(_close_realtime)
    return app


async def start_server(
    app: web.Application,
    host: str = "0.0.0.0",
    port: int = 3001,
) -> web.AppRunner:
    """Start serving *app*. Returns the runner for cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("server_listening", host=host, port=port)
    return runner
