"""Subscription handshake — confirms push subscriptions by fetching the URL."""

from __future__ import annotations

import httpx
import structlog

logger = structlog.get_logger(__name__)


class SubscriptionHandshake:
    """Fetches subscription confirmation URLs over HTTP GET.

    Every confirmation message triggers a fetch; a repeated confirmation for
    a topic that already succeeded is fetched again and logged as such.
    ``confirm`` never raises.

    Usage::

        handshake = SubscriptionHandshake(timeout=10.0)
        await handshake.connect()
        ok = await handshake.confirm(url, topic="arn:...")
        await handshake.close()
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._confirmed: set[str] = set()

    @property
    def connected(self) -> bool:
        return self._http is not None and not self._http.is_closed

    def is_confirmed(self, topic: str) -> bool:
        return topic in self._confirmed

    async def connect(self) -> httpx.AsyncClient:
        """Create the httpx async client (once) and return it."""
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def confirm(self, subscribe_url: str | None, topic: str | None = None) -> bool:
        """GET *subscribe_url*; True when the endpoint answered 2xx."""
        if not subscribe_url:
            logger.warning("subscription_url_missing", topic=topic)
            return False

        key = topic or subscribe_url
        logger.info(
            "subscription_confirm_attempt",
            topic=topic,
            already_confirmed=key in self._confirmed,
        )
        http = await self.connect()

        try:
            response = await http.get(subscribe_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "subscription_confirm_failed",
                topic=topic,
                status=exc.response.status_code,
                manual_confirm_url=subscribe_url,
            )
            return False
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error(
                "subscription_confirm_failed",
                topic=topic,
                error=str(exc) or type(exc).__name__,
                manual_confirm_url=subscribe_url,
            )
            return False

        self._confirmed.add(key)
        logger.info("subscription_confirmed", topic=topic, status=response.status_code)
        return True
