#!/usr/bin/env python3
"""Realtime channel watcher — subscribes to fire alerts and prints every event.

Usage::

    python scripts/watch_alerts.py --url ws://localhost:3001/ws

    # Also follow one device room
    python scripts/watch_alerts.py --device "Node 1"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import structlog
import websockets

from wildfire_gateway.core.logging import setup_logging

logger = structlog.get_logger(__name__)

RECONNECT_BASE = 1.0
RECONNECT_CAP = 30.0


def _frame(event: str, data: object = None) -> str:
    return json.dumps({"event": event, "data": data})


def _print_event(raw: str | bytes) -> None:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("watch_invalid_json", raw=str(raw)[:200])
        return
    event = frame.get("event", "?") if isinstance(frame, dict) else "?"
    data = frame.get("data") if isinstance(frame, dict) else frame
    print(f"[{event}] {json.dumps(data, indent=2, sort_keys=True)}", flush=True)


async def watch(url: str, device: str | None) -> None:
    """Connect, subscribe, print events; reconnect with backoff on failure."""
    delay = RECONNECT_BASE
    while True:
        try:
            async with websockets.connect(url) as ws:
                delay = RECONNECT_BASE
                logger.info("watch_connected", url=url)
                await ws.send(_frame("subscribe-fire-alerts"))
                if device:
                    await ws.send(_frame("subscribe-device", device))
                async for raw in ws:
                    _print_event(raw)
        except (OSError, websockets.WebSocketException) as exc:
            logger.warning("watch_reconnecting", error=str(exc), delay=delay)
            await asyncio.sleep(delay)
            delay = min(delay * 2, RECONNECT_CAP)


def main() -> None:
    parser = argparse.ArgumentParser(description="Print realtime gateway events.")
    parser.add_argument("--url", default="ws://localhost:3001/ws", help="WebSocket URL")
    parser.add_argument("--device", default=None, help="Also subscribe to this device room")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    args = parser.parse_args()

    setup_logging(level=args.log_level, fmt="console")
    try:
        asyncio.run(watch(args.url, args.device))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
