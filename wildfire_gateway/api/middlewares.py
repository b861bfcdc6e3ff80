"""aiohttp middlewares: client detection, request context and error mapping."""

from __future__ import annotations

import re
import uuid
from typing import Any

import structlog
from aiohttp import web

from wildfire_gateway.api.state import SETTINGS_KEY
from wildfire_gateway.core.logging import bind_request_context, clear_request_context
from wildfire_gateway.core.types import iso_timestamp
from wildfire_gateway.store.exceptions import StoreError

logger = structlog.get_logger(__name__)

MOBILE_AGENT_MARKERS = ("React Native", "okhttp", "CFNetwork", "Expo")
BROWSER_AGENT_MARKERS = ("Mozilla", "Chrome", "Safari", "Firefox", "Edge")

_RN_VERSION = re.compile(r"React Native/([0-9.]+)")


def detect_client(user_agent: str, client_type: str = "", client_version: str = "") -> tuple[str, str]:
    """Classify a caller as ``react-native``, ``nextjs`` or ``unknown``.

    An explicit client-type header wins over user-agent sniffing.
    """
    if client_type:
        return client_type.lower(), client_version
    if any(marker in user_agent for marker in MOBILE_AGENT_MARKERS):
        match = _RN_VERSION.search(user_agent)
        return "react-native", match.group(1) if match else client_version
    if any(marker in user_agent for marker in BROWSER_AGENT_MARKERS):
        return "nextjs", client_version
    return "unknown", client_version


@web.middleware
async def client_detection_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Tag the request with the detected client and echo it in response headers."""
    client, version = detect_client(
        request.headers.get("User-Agent", ""),
        request.headers.get("X-Client-Type", ""),
        request.headers.get("X-Client-Version", ""),
    )
    request["client_type"] = client
    request["client_version"] = version

    bind_request_context(
        request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12],
        method=request.method,
        path=request.path,
        client=client,
    )
    try:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            _tag(exc, client, version)
            raise
        if not response.prepared:
            _tag(response, client, version)
        return response
    finally:
        clear_request_context()


def _tag(response: web.StreamResponse, client: str, version: str) -> None:
    response.headers["X-Detected-Client"] = client
    if version:
        response.headers["X-Detected-Version"] = version


def _error_body(
    request: web.Request,
    message: str,
    exc: BaseException,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "timestamp": iso_timestamp(),
    }
    settings = request.app.get(SETTINGS_KEY)
    if settings is not None and settings.server.debug:
        body["details"] = {"error": type(exc).__name__, "message": str(exc)}
    return body


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Map uncaught exceptions to JSON error responses.

    StoreError → 503, aiohttp HTTP exceptions pass through (404s get a JSON
    body), anything else → 500. Exception text only appears in debug mode.
    """
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return web.json_response(
            {
                "error": "Route not found",
                "message": f"Cannot {request.method} {request.path}",
                "client": request.get("client_type", "unknown"),
            },
            status=404,
        )
    except web.HTTPException:
        raise
    except StoreError as exc:
        logger.error("store_request_failed", error=str(exc), error_type=type(exc).__name__)
        return web.json_response(
            _error_body(request, "Service temporarily unavailable", exc),
            status=503,
        )
    except Exception as exc:
        logger.exception("request_failed")
        return web.json_response(
            _error_body(request, "Internal server error", exc),
            status=500,
        )
