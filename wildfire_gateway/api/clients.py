"""Client capability route: what the detected client type can rely on."""

from __future__ import annotations

from typing import Any

from aiohttp import web

from wildfire_gateway.api.state import client_info, ok
from wildfire_gateway.core.types import iso_timestamp

_BASE_CAPABILITIES: dict[str, bool] = {
    "websocket": True,
    "realtime": True,
    "analytics": True,
    "pagination": True,
}

_EXTRA_CAPABILITIES: dict[str, dict[str, bool]] = {
    "react-native": {"offlineSync": True, "backgroundRefresh": True, "localCaching": True},
    "nextjs": {"serverSideRendering": True, "staticGeneration": True},
}

_RECOMMENDATIONS: dict[str, dict[str, Any]] = {
    "react-native": {"dataLimit": 50, "refreshInterval": 30000, "useWebSocket": True, "enableCaching": True},
    "nextjs": {"dataLimit": 100, "refreshInterval": 15000, "useWebSocket": True, "enableCaching": False},
}
_DEFAULT_RECOMMENDATION: dict[str, Any] = {
    "dataLimit": 25,
    "refreshInterval": 60000,
    "useWebSocket": False,
}


def capabilities_for(client_type: str) -> dict[str, bool]:
    return {**_BASE_CAPABILITIES, **_EXTRA_CAPABILITIES.get(client_type, {})}


def recommendations_for(client_type: str) -> dict[str, Any]:
    return dict(_RECOMMENDATIONS.get(client_type, _DEFAULT_RECOMMENDATION))


async def handle_client_info(request: web.Request) -> web.Response:
    info = client_info(request)
    return ok({
        "client": {
            "detectedClient": info["type"],
            "clientVersion": info["version"],
            "serverTime": iso_timestamp(),
            "capabilities": capabilities_for(info["type"]),
            "recommendations": recommendations_for(info["type"]),
        },
    })


def setup_routes(app: web.Application) -> None:
    app.router.add_get("/api/client/info", handle_client_info)
