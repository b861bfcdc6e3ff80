"""HTTP and WebSocket surface of the gateway."""

from wildfire_gateway.api.app import create_app, start_server
from wildfire_gateway.api.middlewares import detect_client

__all__ = ["create_app", "detect_client", "start_server"]
