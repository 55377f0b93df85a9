"""SMS gateway client and the notification dispatcher."""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest
from conftest import FakeGateway, alert, eventually

from coldchain.domain.models import AlertKind, NotificationRequest, NotificationResult
from coldchain.services.notifier import (
    Fast2SmsGateway,
    NotificationDispatcher,
    format_alert_message,
)

GATEWAY_URL = "https://sms.example.test/dev/bulkV2"


def _gateway(handler, api_key: str = "secret-key", timeout: float = 10.0) -> Fast2SmsGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Fast2SmsGateway(GATEWAY_URL, api_key, timeout=timeout, client=client)


def _request() -> NotificationRequest:
    return NotificationRequest(body="ALERT: TooHot detected!", destination="9999999999")


def test_format_alert_message() -> None:
    event = alert(AlertKind.TOO_HOT, 9.5, minute=15)

    assert format_alert_message(event, "UTC") == (
        "ALERT: TooHot detected! Value: 9.5. Time: 2024-01-01 10:15:00 UTC"
    )


def test_format_alert_message_integral_value() -> None:
    event = alert(AlertKind.GAS_HIGH, 450.0, minute=0)

    assert "Value: 450." in format_alert_message(event, "UTC")


@pytest.mark.asyncio
async def test_gateway_success_reports_request_id() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers.get("authorization")
        captured["content_type"] = request.headers.get("content-type")
        captured["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"return": True, "request_id": "123"})

    gateway = _gateway(handler)
    result = await gateway.send(_request())
    await gateway.close()

    assert result == NotificationResult(True, 200, "SMS sent successfully", request_id="123")
    assert captured["auth"] == "secret-key"
    assert captured["content_type"].startswith("application/x-www-form-urlencoded")
    assert captured["form"] == {
        "message": ["ALERT: TooHot detected!"],
        "language": ["english"],
        "route": ["q"],
        "numbers": ["9999999999"],
    }


@pytest.mark.asyncio
async def test_gateway_reported_failure_is_not_raised() -> None:
    gateway = _gateway(lambda request: httpx.Response(200, json={"return": False, "message": "bad number"}))

    result = await gateway.send(_request())

    assert result.success is False
    assert result.status_code == 400
    assert result.request_id is None


@pytest.mark.asyncio
async def test_gateway_network_error_is_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    result = await _gateway(handler).send(_request())

    assert result.success is False
    assert result.status_code == 500


@pytest.mark.asyncio
async def test_gateway_timeout_is_bounded_and_not_raised() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["timeout"] = request.extensions.get("timeout")
        raise httpx.ReadTimeout("gateway too slow", request=request)

    result = await _gateway(handler, timeout=2.5).send(_request())

    assert result.success is False
    assert result.status_code == 500
    assert seen["timeout"]["read"] == 2.5

@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"<html>oops</html>", b"[1, 2, 3]"])
async def test_gateway_malformed_payload_is_not_raised(body: bytes) -> None:
    result = await _gateway(lambda request: httpx.Response(502, content=body)).send(_request())

    assert result.success is False
    assert result.status_code == 500


@pytest.mark.asyncio
async def test_gateway_without_key_skips_http() -> None:
    calls: list = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"return": True})

    result = await _gateway(handler, api_key="").send(_request())

    assert result.success is False
    assert calls == []


@pytest.mark.asyncio
async def test_dispatcher_sends_once_per_submit(fake_gateway: FakeGateway) -> None:
    dispatcher = NotificationDispatcher(fake_gateway, destination="9999999999", tz_name="UTC")
    dispatcher.start()
    try:
        request = dispatcher.submit(alert(AlertKind.TOO_COLD, 1.2, minute=3))
        await dispatcher.drain()
    finally:
        await dispatcher.stop()

    assert request is not None
    assert fake_gateway.requests == [request]
    assert request.body == "ALERT: TooCold detected! Value: 1.2. Time: 2024-01-01 10:03:00 UTC"
    assert dispatcher.stats.sent == 1
    assert dispatcher.stats.failed == 0


@pytest.mark.asyncio
async def test_dispatcher_counts_failures_without_retry() -> None:
    gateway = FakeGateway(error=RuntimeError("gateway exploded"))
    dispatcher = NotificationDispatcher(gateway, destination="9999999999", tz_name="UTC")
    dispatcher.start()
    try:
        dispatcher.submit(alert(AlertKind.TOO_HOT, 9.0, minute=1))
        await dispatcher.drain()
        assert dispatcher.running
    finally:
        await dispatcher.stop()

    assert len(gateway.requests) == 1
    assert dispatcher.stats.failed == 1
    assert dispatcher.last_result is not None and dispatcher.last_result.success is False


@pytest.mark.asyncio
async def test_dispatcher_without_destination_drops(fake_gateway: FakeGateway) -> None:
    dispatcher = NotificationDispatcher(fake_gateway, destination="")

    assert dispatcher.submit(alert(AlertKind.TOO_HOT, 9.0, minute=1)) is None
    assert dispatcher.stats.queued == 0


@pytest.mark.asyncio
async def test_dispatcher_queue_full_drops(fake_gateway: FakeGateway) -> None:
    dispatcher = NotificationDispatcher(fake_gateway, destination="1", tz_name="UTC", maxsize=1)

    assert dispatcher.submit(alert(AlertKind.TOO_HOT, 9.0, minute=1)) is not None
    assert dispatcher.submit(alert(AlertKind.TOO_HOT, 9.0, minute=2)) is None
    assert dispatcher.stats.dropped == 1


@pytest.mark.asyncio
async def test_stop_waits_for_in_flight_call() -> None:
    release = asyncio.Event()

    class SlowGateway(FakeGateway):
        async def send(self, request):
            self.requests.append(request)
            await release.wait()
            return self.result

    gateway = SlowGateway()
    dispatcher = NotificationDispatcher(gateway, destination="1", tz_name="UTC")
    dispatcher.start()
    dispatcher.submit(alert(AlertKind.TOO_HOT, 9.0, minute=1))
    dispatcher.submit(alert(AlertKind.TOO_HOT, 9.0, minute=2))
    await eventually(lambda: len(gateway.requests) == 1)

    stopping = asyncio.create_task(dispatcher.stop())
    await asyncio.sleep(0.02)
    assert not stopping.done()

    release.set()
    await stopping

    assert dispatcher.stats.sent == 1
    assert dispatcher.stats.dropped == 1
    assert len(gateway.requests) == 1
