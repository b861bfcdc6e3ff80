"""Tests for the HTTP surface — webhook, alerts, device routes, error mapping."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from aiohttp.test_utils import TestClient, TestServer

from wildfire_gateway.alerts.classifier import AlertClassifier
from wildfire_gateway.alerts.history import AlertHistory
from wildfire_gateway.api.app import create_app
from wildfire_gateway.core.config import ServerConfig, Settings, StoreConfig
from wildfire_gateway.ingress.handler import NotificationIngress
from wildfire_gateway.ingress.handshake import SubscriptionHandshake
from wildfire_gateway.realtime.hub import RealtimeHub
from wildfire_gateway.store.base import DeviceStore
from wildfire_gateway.store.exceptions import StoreUnavailableError
from wildfire_gateway.store.memory import InMemoryDeviceStore

EMERGENCY_MESSAGE = {
    "device": "Node-1",
    "payload": {"temperature": 95.5, "humidity": 15.2, "smoke_level": 950, "is_emergency": True},
}


# ── Helpers ─────────────────────────────────────────────────────


def _app(
    store: DeviceStore | None = None,
    hub: RealtimeHub | None = None,
    debug: bool = False,
) -> tuple[Any, AlertHistory]:
    history = AlertHistory()
    handshake = MagicMock(spec=SubscriptionHandshake)
    handshake.confirm = AsyncMock(return_value=True)
    ingress = NotificationIngress(AlertClassifier(), history, hub=hub, handshake=handshake)
    settings = Settings(server=ServerConfig(debug=debug))
    return create_app(settings, ingress, history, hub=hub, store=store), history


def _notification(subject: str = "Fire Alert") -> str:
    return json.dumps({
        "Type": "Notification",
        "MessageId": "msg-1",
        "Subject": subject,
        "Message": json.dumps(EMERGENCY_MESSAGE),
    })


def _failing_store() -> MagicMock:
    store = MagicMock(spec=DeviceStore)
    store.get_device_list = AsyncMock(side_effect=StoreUnavailableError("table missing"))
    return store


def _mock_hub() -> MagicMock:
    hub = MagicMock(spec=RealtimeHub)
    hub.connection_count = 3
    hub.broadcast_emergency = AsyncMock()
    hub.close_all = AsyncMock()
    return hub


SEED_RECORDS = [
    {"deviceId": "Node-1", "timestamp": 1_700_000_000, "temperature": 30},
    {"deviceId": "Node-1", "timestamp": 1_700_000_100, "temperature": 35},
    {"deviceId": "Node-2", "timestamp": 1_700_000_050, "temperature": 25},
]


def _seeded_store(config: StoreConfig | None = None) -> InMemoryDeviceStore:
    return InMemoryDeviceStore(config, SEED_RECORDS)


# ── Webhook ─────────────────────────────────────────────────────


class TestWebhook:
    async def test_notification_acknowledged(self) -> None:
        app, history = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post(
                "/sns/webhook",
                data=_notification(),
                headers={"x-amz-sns-message-type": "Notification"},
            )
            body = await resp.json()
        assert resp.status == 200
        assert body["success"] is True
        assert body["message"] == "SNS notification processed"
        assert body["messageId"] == "msg-1"
        assert len(history) == 1

    async def test_malformed_body_is_500(self) -> None:
        app, history = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/sns/webhook", data="{oops")
            body = await resp.json()
        assert resp.status == 500
        assert body["success"] is False
        assert len(history) == 0

    async def test_fire_alert_alias(self) -> None:
        app, history = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/webhook/fire-alert", data=_notification())
        assert resp.status == 200
        assert len(history) == 1

    async def test_status_page(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/sns/webhook")
            body = await resp.json()
        assert resp.status == 200
        assert body["endpoint"] == "/sns/webhook"

    async def test_test_trigger_sample(self) -> None:
        app, history = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/sns/test")
            body = await resp.json()
        assert resp.status == 200
        assert body["message"] == "Test notification processed"
        assert body["alert"]["deviceId"] == "Node 1"
        assert len(history) == 1

    async def test_test_trigger_custom_body(self) -> None:
        app, history = _app()
        calm = {"device": "Node-9", "payload": {"temperature": 18, "humidity": 80}}
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/sns/test", json=calm)
            body = await resp.json()
        assert resp.status == 200
        assert body["testData"] == calm
        assert "alert" not in body
        assert len(history) == 0

    async def test_webhook_test_page(self) -> None:
        app, _ = _app(hub=RealtimeHub())
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/webhook/test")).json()
        assert body["websocketAvailable"] is True
        assert body["connectedClients"] == 0

    async def test_test_emergency_sample_is_critical(self) -> None:
        hub = RealtimeHub()
        app, history = _app(hub=hub)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/webhook/test-emergency")
            body = await resp.json()
        assert resp.status == 200
        assert body["message"] == "Test emergency sent"
        assert body["severity"] == "CRITICAL"
        assert body["data"]["deviceId"] == "Test-Node-Emergency"
        assert body["connectedClients"] == 0
        assert len(history) == 0

    async def test_test_emergency_broadcasts_custom_body(self) -> None:
        hub = _mock_hub()
        app, history = _app(hub=hub)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/webhook/test-emergency", json=EMERGENCY_MESSAGE)
            body = await resp.json()
        assert resp.status == 200
        assert body["severity"] == "EXTREME"
        assert body["connectedClients"] == 3
        hub.broadcast_emergency.assert_awaited_once()
        assessment = hub.broadcast_emergency.await_args.args[0]
        assert assessment.device_id == "Node-1"
        assert hub.broadcast_emergency.await_args.kwargs == {"is_test": True}
        assert len(history) == 0

    async def test_test_emergency_broadcast_failure_is_500(self) -> None:
        hub = _mock_hub()
        hub.broadcast_emergency.side_effect = RuntimeError("socket gone")
        app, _ = _app(hub=hub)
        async with TestClient(TestServer(app)) as client:
            resp = await client.post("/webhook/test-emergency")
            body = await resp.json()
        assert resp.status == 500
        assert body["error"] == "Failed to send test emergency"

    async def test_sns_recent_lists_history(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            empty = await (await client.get("/sns/recent")).json()
            await client.post("/sns/webhook", data=_notification())
            body = await (await client.get("/sns/recent")).json()
        assert empty["count"] == 0
        assert body["success"] is True
        assert body["count"] == 1
        assert body["notifications"][0]["deviceId"] == "Node-1"


# ── Alerts & meta ───────────────────────────────────────────────


class TestAlertRoutes:
    async def test_recent_after_delivery(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            await client.post("/sns/webhook", data=_notification())
            await client.post("/sns/webhook", data=_notification())
            body = await (await client.get("/api/fire-alerts/recent?limit=1")).json()
        assert body["success"] is True
        assert body["count"] == 1
        assert body["alerts"][0]["severity"] == "EXTREME"

    async def test_recent_bad_limit(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/fire-alerts/recent?limit=lots")
        assert resp.status == 400

    async def test_realtime_stats_disabled(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/realtime/stats")).json()
        assert body["enabled"] is False

    async def test_health(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/health", headers={"User-Agent": "okhttp/4.9"})
            body = await resp.json()
        assert body["status"] == "OK"
        assert body["client"]["type"] == "react-native"
        assert body["services"]["websocket"] is False
        assert resp.headers["X-Detected-Client"] == "react-native"

    async def test_unknown_route_json_404(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/nowhere")
            body = await resp.json()
        assert resp.status == 404
        assert body["error"] == "Route not found"
        assert body["message"] == "Cannot GET /nowhere"


# ── Device store ────────────────────────────────────────────────


class TestDeviceRoutes:
    async def test_no_store_is_503(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/device/list")
        assert resp.status == 503

    async def test_store_error_is_503(self) -> None:
        app, _ = _app(store=_failing_store())
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/device/list")
            body = await resp.json()
        assert resp.status == 503
        assert body["message"] == "Service temporarily unavailable"
        assert "details" not in body

    async def test_debug_exposes_details(self) -> None:
        app, _ = _app(store=_failing_store(), debug=True)
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/device/list")).json()
        assert body["details"]["message"] == "table missing"

    async def test_latest(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/device/latest?deviceId=Node-1")).json()
        assert body["data"]["temperature"] == 35

    async def test_latest_missing_is_404(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/device/latest?deviceId=ghost")
            body = await resp.json()
        assert resp.status == 404
        assert body["data"] is None

    async def test_paged_data(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            first = await (await client.get("/api/device/Node-1?limit=1")).json()
            cursor = first["pagination"]["cursor"]
            second = await (await client.get(f"/api/device/data?deviceId=Node-1&limit=1&cursor={cursor}")).json()
        assert first["deviceId"] == "Node-1"
        assert first["pagination"]["hasMore"] is True
        assert second["data"][0]["temperature"] == 30
        assert second["pagination"]["hasMore"] is False

    async def test_bad_cursor_is_400(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/device/data?cursor=zzz")
        assert resp.status == 400

    async def test_device_list_and_health(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            devices = await (await client.get("/api/device/list")).json()
            health = await client.get("/api/device/health/db")
        assert devices["devices"] == ["Node-1", "Node-2"]
        assert health.status == 200

    async def test_analytics_summary(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/analytics/summary?timeRange=7d")).json()
        assert body["deviceId"] == "default"
        assert body["timeRange"] == "7d"
        assert "analytics" in body

    async def test_latest_by_path(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/device/Node-2/latest")).json()
        assert body["deviceId"] == "Node-2"
        assert body["data"]["temperature"] == 25

    async def test_latest_by_path_missing_is_404(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/device/ghost/latest")
            body = await resp.json()
        assert resp.status == 404
        assert body["message"] == "No data found for device: ghost"
        assert body["data"] is None

    async def test_all_data_spans_devices(self) -> None:
        app, _ = _app(store=_seeded_store(StoreConfig(default_device_id="Node-1")))
        async with TestClient(TestServer(app)) as client:
            first = await (await client.get("/api/device/all/data?limit=2")).json()
            cursor = first["pagination"]["cursor"]
            second = await (await client.get(f"/api/device/all/data?limit=2&cursor={cursor}")).json()
        assert [r["temperature"] for r in first["data"]] == [35, 25]
        assert first["pagination"]["hasMore"] is True
        assert [r["temperature"] for r in second["data"]] == [30]
        assert second["pagination"]["hasMore"] is False

    async def test_all_data_bad_cursor_is_400(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/device/all/data?cursor=zzz")
        assert resp.status == 400

    async def test_device_analytics_by_path(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/analytics/devices/Node-1/summary?timeRange=1h")).json()
        assert body["deviceId"] == "Node-1"
        assert body["timeRange"] == "1h"
        assert body["analytics"]["totalRecords"] == 0

    async def test_dashboard(self) -> None:
        app, _ = _app(store=_seeded_store())
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/analytics/dashboard?deviceId=Node-1")).json()
        dashboard = body["dashboard"]
        assert sorted(dashboard["analytics"]) == ["1h", "24h", "7d"]
        assert dashboard["devices"] == ["Node-1", "Node-2"]
        assert dashboard["latest"]["temperature"] == 35
        assert dashboard["activeDevice"] == "Node-1"

    async def test_dashboard_failing_range_reported_in_place(self) -> None:
        store = MagicMock(spec=DeviceStore)
        store.get_analytics_summary = AsyncMock(side_effect=[
            {"totalRecords": 4, "timeRange": "1h"},
            StoreUnavailableError("throttled"),
            {"totalRecords": 9, "timeRange": "7d"},
        ])
        store.get_device_list = AsyncMock(return_value=["Node-1"])
        store.get_latest_record = AsyncMock(return_value=None)
        app, _ = _app(store=store)
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/analytics/dashboard")
            body = await resp.json()
        assert resp.status == 200
        analytics = body["dashboard"]["analytics"]
        assert analytics["1h"]["totalRecords"] == 4
        assert analytics["24h"] == {"error": "throttled", "totalRecords": 0}
        assert analytics["7d"]["totalRecords"] == 9
        assert body["dashboard"]["activeDevice"] == "default"


# ── Client info ─────────────────────────────────────────────────


class TestClientInfo:
    async def test_react_native(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            resp = await client.get("/api/client/info", headers={"User-Agent": "okhttp/4.9"})
            body = await resp.json()
        info = body["client"]
        assert info["detectedClient"] == "react-native"
        assert info["capabilities"]["offlineSync"] is True
        assert info["capabilities"]["websocket"] is True
        assert info["recommendations"] == {
            "dataLimit": 50,
            "refreshInterval": 30000,
            "useWebSocket": True,
            "enableCaching": True,
        }

    async def test_unknown_client_defaults(self) -> None:
        app, _ = _app()
        async with TestClient(TestServer(app)) as client:
            body = await (await client.get("/api/client/info", headers={"User-Agent": "curl/8.0"})).json()
        info = body["client"]
        assert info["detectedClient"] == "unknown"
        assert "offlineSync" not in info["capabilities"]
        assert info["recommendations"]["useWebSocket"] is False
        assert info["recommendations"]["dataLimit"] == 25
