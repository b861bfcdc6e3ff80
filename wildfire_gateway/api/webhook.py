"""Webhook routes: push-notification deliveries and the manual test triggers."""

from __future__ import annotations

import time
from typing import Any

import structlog
from aiohttp import web

from wildfire_gateway.api.state import HISTORY_KEY, INGRESS_KEY, SETTINGS_KEY, get_hub, ok
from wildfire_gateway.core.types import SeverityTier, iso_timestamp

logger = structlog.get_logger(__name__)

TEST_SUBJECT = "Fire Alert Test"


def sample_notification(now: float | None = None) -> dict[str, Any]:
    """Canned sensor message used by the test trigger."""
    return {
        "device": "Node 1",
        "payload": {
            "temperature": 45.5,
            "humidity": 30.2,
            "smoke_level": 150,
            "is_emergency": True,
            "gps": {"latitude": 36.006397, "longitude": 10.1715},
        },
        "fire_prediction_percentage": 85.5,
        "timestamp": int(time.time() if now is None else now),
    }


def sample_emergency(now: float | None = None) -> dict[str, Any]:
    """Canned reading pushed by the test-emergency trigger."""
    ts = time.time() if now is None else now
    return {
        "deviceId": "Test-Node-Emergency",
        "temperature": 65.8,
        "humidity": 15.2,
        "smoke_level": 350,
        "air_quality": 280,
        "location": {"latitude": 36.006397, "longitude": 10.1715},
        "timestamp": str(int(ts * 1000)),
        "alertTime": iso_timestamp(ts),
    }


async def handle_delivery(request: web.Request) -> web.Response:
    ingress = request.app[INGRESS_KEY]
    body = await request.read()
    ack = await ingress.handle_delivery(request.headers, body)
    return web.json_response(ack.body(), status=ack.status)


async def handle_webhook_status(request: web.Request) -> web.Response:
    return ok({
        "message": "SNS Webhook endpoint is active",
        "endpoint": "/sns/webhook",
        "method": "POST",
        "note": "This endpoint receives POST requests from the notification service",
    })


async def handle_webhook_test(request: web.Request) -> web.Response:
    hub = get_hub(request)
    return web.json_response({
        "message": "Fire Alert Webhook endpoint is working",
        "timestamp": iso_timestamp(),
        "websocketAvailable": hub is not None,
        "connectedClients": hub.connection_count if hub is not None else 0,
    })


async def _read_test_body(request: web.Request) -> dict[str, Any] | None:
    """A non-empty JSON object posted by the caller, else None."""
    if request.method != "POST" or not request.can_read_body:
        return None
    try:
        data = await request.json()
    except (ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) and data else None


async def handle_test_trigger(request: web.Request) -> web.Response:
    """Run a test message through the notification path as if it were delivered."""
    ingress = request.app[INGRESS_KEY]
    message = await _read_test_body(request) or sample_notification()
    logger.info("test_notification_received", method=request.method)

    try:
        alert = await ingress.process_notification(TEST_SUBJECT, message, is_test=True)
    except Exception as exc:
        logger.exception("test_notification_failed")
        return web.json_response({"success": False, "error": str(exc)}, status=500)

    payload: dict[str, Any] = {
        "message": "Test notification processed",
        "testData": message,
    }
    if alert is not None:
        payload["alert"] = alert.to_wire()
    return ok(payload)


async def handle_test_emergency(request: web.Request) -> web.Response:
    """Push an emergency straight to realtime clients without recording it.

    Without a body the canned sample goes out pinned to CRITICAL; a posted
    reading is classified like any other payload.
    """
    ingress = request.app[INGRESS_KEY]
    custom = await _read_test_body(request)
    message = custom or sample_emergency()
    logger.info("test_emergency_received", custom=custom is not None)

    assessment = ingress.classifier.assess(message)
    if custom is None:
        assessment = assessment.model_copy(
            update={"severity": SeverityTier.CRITICAL, "is_emergency": True},
        )

    hub = get_hub(request)
    try:
        if hub is None:
            logger.warning("realtime_hub_unavailable", device_id=assessment.device_id)
        else:
            await hub.broadcast_emergency(assessment, is_test=True)
    except Exception:
        logger.exception("test_emergency_failed")
        return web.json_response({"error": "Failed to send test emergency"}, status=500)

    return web.json_response({
        "success": True,
        "message": "Test emergency sent",
        "data": message,
        "severity": str(assessment.severity),
        "connectedClients": hub.connection_count if hub is not None else 0,
    })


async def handle_recent_notifications(request: web.Request) -> web.Response:
    history = request.app[HISTORY_KEY]
    limit = request.app[SETTINGS_KEY].alerts.recent_default_limit
    notifications = [alert.to_wire() for alert in history.recent(limit)]
    return ok({"notifications": notifications, "count": len(notifications)})


def setup_routes(app: web.Application) -> None:
    app.router.add_post("/sns/webhook", handle_delivery)
    app.router.add_get("/sns/webhook", handle_webhook_status)
    app.router.add_post("/sns/test", handle_test_trigger)
    app.router.add_get("/sns/test", handle_test_trigger)
    app.router.add_get("/sns/recent", handle_recent_notifications)
    app.router.add_post("/webhook/fire-alert", handle_delivery)
    app.router.add_get("/webhook/test", handle_webhook_test)
    app.router.add_post("/webhook/test-emergency", handle_test_emergency)
