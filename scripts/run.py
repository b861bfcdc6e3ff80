#!/usr/bin/env python3
"""Gateway entrypoint — wires store, history, hub, ingress and the web app.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from wildfire_gateway.alerts.classifier import AlertClassifier
from wildfire_gateway.alerts.history import AlertHistory
from wildfire_gateway.api.app import create_app, start_server
from wildfire_gateway.core.config import load_settings
from wildfire_gateway.core.logging import setup_logging
from wildfire_gateway.ingress.handler import NotificationIngress
from wildfire_gateway.ingress.handshake import SubscriptionHandshake
from wildfire_gateway.realtime.hub import RealtimeHub
from wildfire_gateway.store.exceptions import StoreError
from wildfire_gateway.store.memory import InMemoryDeviceStore

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start all components and serve until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    logger.info(
        "gateway_starting",
        host=settings.server.host,
        port=settings.server.port,
        realtime=settings.realtime.enabled,
        debug=settings.server.debug,
    )

    # ── Device store ─────────────────────────────────────────────
    if settings.store.seed_path:
        try:
            store = InMemoryDeviceStore.from_json_file(settings.store.seed_path, settings.store)
        except (OSError, ValueError, StoreError) as exc:
            logger.error("store_seed_failed", path=settings.store.seed_path, error=str(exc))
            print(f"Could not load seed data: {exc}", file=sys.stderr)
            return 1
    else:
        store = InMemoryDeviceStore(settings.store)
    status = await store.test_connection()
    logger.info("store_ready", **status)

    # ── Alert pipeline ───────────────────────────────────────────
    classifier = AlertClassifier(settings.alerts)
    history = AlertHistory(capacity=settings.alerts.history_capacity)

    hub: RealtimeHub | None = None
    if settings.realtime.enabled:
        hub = RealtimeHub(
            store=store,
            stats_interval_secs=settings.realtime.stats_interval_secs,
        )

    handshake = SubscriptionHandshake(timeout=settings.ingress.confirm_timeout_secs)
    await handshake.connect()

    ingress = NotificationIngress(
        classifier=classifier,
        history=history,
        hub=hub,
        handshake=handshake,
        config=settings.ingress,
        alerts_config=settings.alerts,
    )

    # ── Web app ──────────────────────────────────────────────────
    app = create_app(settings, ingress, history, hub=hub, store=store)

    if hub is not None:
        await hub.start()
    runner = await start_server(app, settings.server.host, settings.server.port)

    logger.info(
        "gateway_running",
        websocket_path=settings.realtime.path if hub is not None else None,
        history_capacity=settings.alerts.history_capacity,
    )

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("gateway_shutting_down")

    await runner.cleanup()
    if hub is not None:
        await hub.stop()
    await ingress.close()

    logger.info("gateway_stopped", alerts_recorded=len(history))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the wildfire alert gateway.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
