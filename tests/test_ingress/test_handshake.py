"""Tests for SubscriptionHandshake — fetch, failures, repeated confirmation."""

from __future__ import annotations

import httpx
from structlog.testing import capture_logs

from wildfire_gateway.ingress.handshake import SubscriptionHandshake

URL = "https://sns.example.com/?Action=ConfirmSubscription&Token=abc"
TOPIC = "arn:aws:sns:eu-west-1:000000000000:fires"


def _handshake(
    status: int = 200,
    exc: Exception | None = None,
) -> tuple[SubscriptionHandshake, list[httpx.Request]]:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if exc is not None:
            raise exc
        return httpx.Response(status, text="<ConfirmSubscriptionResponse/>")

    return SubscriptionHandshake(transport=httpx.MockTransport(handler)), calls


class TestConfirm:
    async def test_success_fetches_once(self) -> None:
        handshake, calls = _handshake()
        assert await handshake.confirm(URL, topic=TOPIC) is True
        assert len(calls) == 1
        assert calls[0].method == "GET"
        assert str(calls[0].url) == URL
        assert handshake.is_confirmed(TOPIC)
        await handshake.close()

    async def test_non_2xx_returns_false(self) -> None:
        handshake, calls = _handshake(status=403)
        with capture_logs() as logs:
            assert await handshake.confirm(URL, topic=TOPIC) is False
        assert len(calls) == 1
        assert not handshake.is_confirmed(TOPIC)
        await handshake.close()
        failed = [e for e in logs if e["event"] == "subscription_confirm_failed"]
        assert len(failed) == 1
        assert failed[0]["status"] == 403
        assert failed[0]["manual_confirm_url"] == URL

    async def test_timeout_returns_false(self) -> None:
        handshake, _ = _handshake(exc=httpx.ReadTimeout("timed out"))
        assert await handshake.confirm(URL, topic=TOPIC) is False
        await handshake.close()

    async def test_connection_error_returns_false(self) -> None:
        handshake, _ = _handshake(exc=httpx.ConnectError("refused"))
        with capture_logs() as logs:
            assert await handshake.confirm(URL) is False
        failed = [e for e in logs if e["event"] == "subscription_confirm_failed"]
        assert failed[0]["log_level"] == "error"
        assert failed[0]["error"] == "refused"
        assert failed[0]["manual_confirm_url"] == URL
        await handshake.close()

    async def test_missing_url(self) -> None:
        handshake, calls = _handshake()
        assert await handshake.confirm(None, topic=TOPIC) is False
        assert await handshake.confirm("", topic=TOPIC) is False
        assert calls == []

    async def test_same_url_twice_fetches_twice(self) -> None:
        handshake, calls = _handshake()
        with capture_logs() as logs:
            assert await handshake.confirm(URL, topic=TOPIC) is True
            assert await handshake.confirm(URL, topic=TOPIC) is True
        assert len(calls) == 2
        attempts = [e for e in logs if e["event"] == "subscription_confirm_attempt"]
        assert [e["already_confirmed"] for e in attempts] == [False, True]
        assert [e["event"] for e in logs].count("subscription_confirmed") == 2
        await handshake.close()


class TestLifecycle:
    async def test_connect_close(self) -> None:
        handshake, _ = _handshake()
        assert not handshake.connected
        await handshake.connect()
        assert handshake.connected
        await handshake.close()
        assert not handshake.connected

    async def test_connect_returns_one_client(self) -> None:
        handshake, _ = _handshake()
        first = await handshake.connect()
        second = await handshake.connect()
        assert isinstance(first, httpx.AsyncClient)
        assert first is second
        await handshake.close()

    async def test_confirm_connects_lazily(self) -> None:
        handshake, _ = _handshake()
        await handshake.confirm(URL)
        assert handshake.connected
        await handshake.close()
