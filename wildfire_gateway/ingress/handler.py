"""Notification ingress — dispatches webhook deliveries by message kind.

Once a delivery body parses, the transport always gets a success ack.
Failures further down the classify → history → broadcast path are logged
here and never reach the transport.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from wildfire_gateway.alerts.classifier import AlertClassifier, read_field
from wildfire_gateway.alerts.history import AlertHistory
from wildfire_gateway.core.config import AlertsConfig, IngressConfig
from wildfire_gateway.core.types import (
    DeliveryAck,
    MessageKind,
    NotificationEnvelope,
    ProcessedAlert,
)
from wildfire_gateway.ingress.envelope import build_envelope, parse_body
from wildfire_gateway.ingress.exceptions import EnvelopeParseError
from wildfire_gateway.ingress.handshake import SubscriptionHandshake
from wildfire_gateway.realtime.hub import RealtimeHub

logger = structlog.get_logger(__name__)

ACK_MESSAGE = "SNS notification processed"


class NotificationIngress:
    """Entry point for push-notification webhook deliveries.

    The hub may be absent at startup (or disabled); emergencies are then
    still classified and recorded, and the missing broadcast is logged.
    """

    def __init__(
        self,
        classifier: AlertClassifier,
        history: AlertHistory,
        hub: RealtimeHub | None = None,
        handshake: SubscriptionHandshake | None = None,
        config: IngressConfig | None = None,
        alerts_config: AlertsConfig | None = None,
    ) -> None:
        self._config = config or IngressConfig()
        alerts_cfg = alerts_config or AlertsConfig()
        self._keywords = [k.lower() for k in alerts_cfg.emergency_keywords if k]
        self._classifier = classifier
        self._history = history
        self._hub = hub
        self._handshake = handshake or SubscriptionHandshake(self._config.confirm_timeout_secs)

    @property
    def classifier(self) -> AlertClassifier:
        return self._classifier

    @property
    def hub(self) -> RealtimeHub | None:
        return self._hub

    @property
    def handshake(self) -> SubscriptionHandshake:
        return self._handshake

    def attach_hub(self, hub: RealtimeHub | None) -> None:
        self._hub = hub

    def is_emergency_subject(self, subject: str | None) -> bool:
        text = (subject or "").lower()
        return any(keyword in text for keyword in self._keywords)

    # ── Delivery ────────────────────────────────────────────────

    async def handle_delivery(
        self,
        headers: Mapping[str, str],
        body: bytes | str | Mapping[str, Any],
    ) -> DeliveryAck:
        """Parse, dispatch and acknowledge one webhook delivery."""
        try:
            data = parse_body(body)
        except EnvelopeParseError as exc:
            logger.error("webhook_envelope_invalid", error=str(exc))
            return DeliveryAck(status=500, success=False, error=str(exc))

        message_id = str(data.get("MessageId") or "") or None
        try:
            envelope = build_envelope(headers, data, self._config)
            logger.info(
                "webhook_received",
                kind=envelope.raw_kind or None,
                topic=envelope.topic or None,
                message_id=message_id,
                timestamp=envelope.timestamp or None,
            )
            await self._dispatch(envelope)
        except Exception:
            logger.exception(
                "webhook_processing_failed",
                kind=data.get("Type"),
                message_id=message_id,
            )

        return DeliveryAck(message=ACK_MESSAGE, message_id=message_id)

    async def _dispatch(self, envelope: NotificationEnvelope) -> None:
        if envelope.kind == MessageKind.SUBSCRIPTION_CONFIRMATION:
            await self._handle_confirmation(envelope)
        elif envelope.kind == MessageKind.NOTIFICATION:
            logger.info(
                "notification_received",
                subject=envelope.subject,
                topic=envelope.topic,
                message_id=envelope.message_id,
            )
            await self.process_notification(envelope.subject, envelope.message)
        elif envelope.kind == MessageKind.UNSUBSCRIBE_CONFIRMATION:
            logger.info("unsubscribe_confirmation_received", topic=envelope.topic)
        else:
            logger.warning("webhook_unknown_kind", kind=envelope.raw_kind, topic=envelope.topic)

    async def _handle_confirmation(self, envelope: NotificationEnvelope) -> None:
        logger.info("subscription_confirmation_received", topic=envelope.topic)
        if not envelope.subscribe_url:
            logger.warning(
                "subscription_url_missing",
                topic=envelope.topic,
                envelope_keys=sorted(envelope.raw),
            )
            return
        await self._handshake.confirm(envelope.subscribe_url, topic=envelope.topic or None)

    # ── Data path ───────────────────────────────────────────────

    async def process_notification(
        self,
        subject: str | None,
        message: Any,
        is_test: bool = False,
    ) -> ProcessedAlert | None:
        """Classify an emergency-relevant message; record and broadcast emergencies.

        Returns:
            The recorded alert, or None when nothing was recorded.
        """
        if not self.is_emergency_subject(subject):
            logger.info("notification_skipped", subject=subject)
            return None
        if not isinstance(message, Mapping):
            logger.warning(
                "notification_message_not_object",
                subject=subject,
                message_type=type(message).__name__,
            )
            return None

        if read_field(message, "device_id") is None:
            logger.warning("notification_device_missing", subject=subject, message_keys=sorted(message))

        assessment = self._classifier.assess(message)
        if not assessment.is_emergency:
            logger.info(
                "notification_not_emergency",
                device_id=assessment.device_id,
                severity=str(assessment.severity),
                score=assessment.score,
            )
            return None

        alert = ProcessedAlert.from_assessment(assessment)
        self._history.add(alert)
        logger.warning(
            "fire_emergency_detected",
            alert_id=alert.id,
            device_id=alert.device_id,
            severity=str(alert.severity),
            score=alert.score,
            is_test=is_test,
        )

        if self._hub is None:
            logger.warning("realtime_hub_unavailable", alert_id=alert.id)
        else:
            await self._hub.broadcast_emergency(alert, is_test=is_test)
        return alert

    async def close(self) -> None:
        await self._handshake.close()
