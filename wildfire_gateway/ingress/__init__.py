"""Push-notification ingress — envelopes, handshake and dispatch."""

from wildfire_gateway.ingress.envelope import build_envelope, decode_message, parse_body
from wildfire_gateway.ingress.exceptions import EnvelopeParseError, IngressError
from wildfire_gateway.ingress.handler import NotificationIngress
from wildfire_gateway.ingress.handshake import SubscriptionHandshake

__all__ = [
    "EnvelopeParseError",
    "IngressError",
    "NotificationIngress",
    "SubscriptionHandshake",
    "build_envelope",
    "decode_message",
    "parse_body",
]
