"""Typed application keys and small response helpers shared by the route modules."""

from __future__ import annotations

import json
from typing import Any

from aiohttp import web

from wildfire_gateway.alerts.history import AlertHistory
from wildfire_gateway.core.config import Settings
from wildfire_gateway.core.types import iso_timestamp
from wildfire_gateway.ingress.handler import NotificationIngress
from wildfire_gateway.realtime.hub import RealtimeHub
from wildfire_gateway.store.base import DeviceStore

API_VERSION = "1.0.0"

SETTINGS_KEY = web.AppKey("settings", Settings)
INGRESS_KEY = web.AppKey("ingress", NotificationIngress)
HISTORY_KEY = web.AppKey("history", AlertHistory)
# Absent when the realtime channel is disabled.
HUB_KEY = web.AppKey("hub", RealtimeHub)
# Absent when no device store is configured.
STORE_KEY = web.AppKey("store", DeviceStore)
STARTED_AT_KEY = web.AppKey("started_at", float)


def get_hub(request: web.Request) -> RealtimeHub | None:
    return request.app.get(HUB_KEY)


def get_store(request: web.Request) -> DeviceStore:
    store = request.app.get(STORE_KEY)
    if store is None:
        raise web.HTTPServiceUnavailable(
            text=json.dumps({"success": False, "message": "Device store not configured"}),
            content_type="application/json",
        )
    return store


def client_info(request: web.Request) -> dict[str, Any]:
    return {
        "type": request.get("client_type", "unknown"),
        "version": request.get("client_version", ""),
    }


def ok(payload: dict[str, Any], status: int = 200) -> web.Response:
    """``{"success": true, ...payload, "timestamp": now}`` as JSON."""
    return web.json_response(
        {"success": True, **payload, "timestamp": iso_timestamp()},
        status=status,
    )


def bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(
        text=json.dumps({"success": False, "message": message}),
        content_type="application/json",
    )
