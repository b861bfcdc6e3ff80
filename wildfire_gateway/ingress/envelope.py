"""Parsing of push-notification deliveries into NotificationEnvelope."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from wildfire_gateway.core.config import IngressConfig
from wildfire_gateway.core.types import MessageKind, NotificationEnvelope
from wildfire_gateway.ingress.exceptions import EnvelopeParseError

SUBSCRIBE_URL_KEYS = ("SubscribeURL", "subscribeURL", "SubscribeUrl", "subscribe_url")


def parse_body(body: bytes | str | Mapping[str, Any]) -> dict[str, Any]:
    """Decode the raw delivery body.

    The notification service posts JSON with a ``text/plain`` content type,
    so bytes and strings are parsed here rather than by the transport.

    Raises:
        EnvelopeParseError: The body is not valid JSON or not an object.
    """
    if isinstance(body, Mapping):
        return dict(body)
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EnvelopeParseError(f"body is not UTF-8: {exc}") from exc
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise EnvelopeParseError(f"body is not valid JSON: {exc.msg}") from exc
    except (ValueError, RecursionError) as exc:
        raise EnvelopeParseError(f"body is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise EnvelopeParseError("body must be a JSON object")
    return data


def decode_message(message: Any) -> Any:
    """Inner message: parsed JSON when possible, otherwise the value as-is."""
    if not isinstance(message, str | bytes):
        return message
    try:
        return json.loads(message)
    except (ValueError, RecursionError):
        return message


def _header(headers: Mapping[str, str], name: str) -> str | None:
    # aiohttp's CIMultiDictProxy is case-insensitive; plain dicts are not.
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
    return value


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def build_envelope(
    headers: Mapping[str, str],
    data: Mapping[str, Any],
    config: IngressConfig | None = None,
) -> NotificationEnvelope:
    """Combine transport headers and the parsed body into an envelope.

    The kind comes from the message-type header, falling back to the body's
    ``Type``; the topic likewise falls back to ``TopicArn``.
    """
    cfg = config or IngressConfig()
    raw_kind = _header(headers, cfg.message_type_header) or _text(data.get("Type"))
    topic = _header(headers, cfg.topic_header) or _text(data.get("TopicArn"))
    subscribe_url = next(
        (str(data[k]) for k in SUBSCRIBE_URL_KEYS if data.get(k)),
        None,
    )
    return NotificationEnvelope(
        kind=MessageKind.parse(raw_kind),
        raw_kind=raw_kind,
        message_id=_text(data.get("MessageId")),
        topic=topic,
        subject=_text(data.get("Subject")),
        message=decode_message(data.get("Message")),
        timestamp=_text(data.get("Timestamp")),
        subscribe_url=subscribe_url,
        raw=dict(data),
    )
