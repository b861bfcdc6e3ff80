"""Device store passthrough routes: latest records, pages, analytics, dashboard."""

from __future__ import annotations

from typing import Any

import structlog
from aiohttp import web

from wildfire_gateway.api.state import SETTINGS_KEY, bad_request, get_hub, get_store, ok
from wildfire_gateway.core.fields import as_epoch_seconds
from wildfire_gateway.realtime.protocol import HubEvent
from wildfire_gateway.store.base import DEFAULT_TIME_RANGE
from wildfire_gateway.store.exceptions import InvalidCursorError, StoreError

logger = structlog.get_logger(__name__)

_DEFAULT_PAGE = 100
DASHBOARD_RANGES = ("1h", "24h", "7d")


def _int_param(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise bad_request(f"{name} must be an integer") from None


def _time_param(request: web.Request, name: str) -> float | None:
    raw = request.query.get(name)
    if not raw:
        return None
    value = as_epoch_seconds(raw, 0.0)
    if value <= 0:
        raise bad_request(f"{name} must be an epoch or ISO-8601 timestamp")
    return value


async def handle_latest(request: web.Request) -> web.Response:
    device_id = request.query.get("deviceId") or None
    record = await get_store(request).get_latest_record(device_id)
    if record is None:
        return web.json_response(
            {"success": False, "message": "No data found for the specified device", "data": None},
            status=404,
        )

    hub = get_hub(request)
    if hub is not None:
        await hub.emit_all(HubEvent.LATEST_DATA, record)

    logger.info("latest_record_served", device_id=device_id or "default")
    return ok({"data": record})


async def _page_response(request: web.Request, device_id: str | None) -> web.Response:
    store = get_store(request)
    try:
        page = await store.get_device_data(
            device_id,
            limit=_int_param(request, "limit", _DEFAULT_PAGE),
            cursor=request.query.get("cursor") or None,
            start_time=_time_param(request, "startTime"),
            end_time=_time_param(request, "endTime"),
        )
    except InvalidCursorError as exc:
        raise bad_request(str(exc)) from None

    logger.info("device_data_served", device_id=device_id or "default", count=page.count)
    payload = {
        "data": page.items,
        "pagination": {"count": page.count, "hasMore": page.has_more, "cursor": page.cursor},
    }
    if device_id:
        payload["deviceId"] = device_id
    return ok(payload)


async def handle_device_data(request: web.Request) -> web.Response:
    return await _page_response(request, request.query.get("deviceId") or None)


async def handle_device_by_id(request: web.Request) -> web.Response:
    return await _page_response(request, request.match_info["device_id"])


async def handle_latest_by_id(request: web.Request) -> web.Response:
    device_id = request.match_info["device_id"]
    record = await get_store(request).get_latest_record(device_id)
    if record is None:
        return web.json_response(
            {"success": False, "message": f"No data found for device: {device_id}", "data": None},
            status=404,
        )
    logger.info("latest_record_served", device_id=device_id)
    return ok({"deviceId": device_id, "data": record})


async def handle_all_data(request: web.Request) -> web.Response:
    try:
        page = await get_store(request).get_all_data(
            limit=_int_param(request, "limit", _DEFAULT_PAGE),
            cursor=request.query.get("cursor") or None,
        )
    except InvalidCursorError as exc:
        raise bad_request(str(exc)) from None

    logger.info("all_device_data_served", count=page.count)
    return ok({
        "data": page.items,
        "pagination": {"count": page.count, "hasMore": page.has_more, "cursor": page.cursor},
    })


async def handle_device_list(request: web.Request) -> web.Response:
    devices = await get_store(request).get_device_list()
    return ok({"devices": devices, "count": len(devices)})


async def handle_store_health(request: web.Request) -> web.Response:
    result = await get_store(request).test_connection()
    status = 200 if result.get("success") else 500
    return web.json_response(
        {"success": bool(result.get("success")), "message": result.get("message", "")},
        status=status,
    )


async def handle_analytics_summary(request: web.Request) -> web.Response:
    device_id = request.query.get("deviceId") or None
    time_range = request.query.get("timeRange") or DEFAULT_TIME_RANGE
    summary = await get_store(request).get_analytics_summary(device_id, time_range)
    return ok({
        "analytics": summary,
        "deviceId": device_id or "default",
        "timeRange": time_range,
    })


async def handle_device_analytics(request: web.Request) -> web.Response:
    device_id = request.match_info["device_id"]
    time_range = request.query.get("timeRange") or DEFAULT_TIME_RANGE
    summary = await get_store(request).get_analytics_summary(device_id, time_range)
    return ok({"analytics": summary, "deviceId": device_id, "timeRange": time_range})


async def handle_dashboard(request: web.Request) -> web.Response:
    """Analytics for the 1h / 24h / 7d windows plus device list and latest record.

    A failing window is reported in place; the other windows still load.
    """
    store = get_store(request)
    device_id = request.query.get("deviceId") or None

    analytics: dict[str, Any] = {}
    for window in DASHBOARD_RANGES:
        try:
            analytics[window] = await store.get_analytics_summary(device_id, window)
        except StoreError as exc:
            logger.warning("dashboard_range_failed", time_range=window, error=str(exc))
            analytics[window] = {"error": str(exc), "totalRecords": 0}

    default_device = request.app[SETTINGS_KEY].store.default_device_id
    return ok({
        "dashboard": {
            "analytics": analytics,
            "devices": await store.get_device_list(),
            "latest": await store.get_latest_record(device_id),
            "activeDevice": device_id or default_device or "default",
        },
    })


def setup_routes(app: web.Application) -> None:
    app.router.add_get("/api/device/latest", handle_latest)
    app.router.add_get("/api/device/data", handle_device_data)
    app.router.add_get("/api/device/list", handle_device_list)
    app.router.add_get("/api/device/health/db", handle_store_health)
    app.router.add_get("/api/device/all/data", handle_all_data)
    app.router.add_get("/api/device/{device_id}/latest", handle_latest_by_id)
    app.router.add_get("/api/device/{device_id}", handle_device_by_id)
    app.router.add_get("/api/analytics/summary", handle_analytics_summary)
    app.router.add_get("/api/analytics/dashboard", handle_dashboard)
    app.router.add_get("/api/analytics/devices/{device_id}/summary", handle_device_analytics)
