from __future__ import annotations

import asyncio
import json
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional

import httpx

from ..core.timeutil import format_local
from ..domain.interfaces import SmsGateway
from ..domain.models import AlertEvent, NotificationRequest, NotificationResult

logger = logging.getLogger(__name__)


def _format_value(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def format_alert_message(event: AlertEvent, tz_name: Optional[str] = None) -> str:
    return (
        f"ALERT: {event.kind.value} detected! "
        f"Value: {_format_value(event.value)}. "
        f"Time: {format_local(event.occurred_at, tz_name)}"
    )


class Fast2SmsGateway:
    """Client for the Fast2SMS bulk endpoint (quick route, English)."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, request: NotificationRequest) -> NotificationResult:
        if not self._api_key:
            logger.warning("SMS not sent: no gateway API key configured")
            return NotificationResult(False, 500, "SMS gateway is not configured")

        try:
            resp = await self._client.post(
                self._url,
                headers={"authorization": self._api_key},
                data={
                    "message": request.body,
                    "language": "english",
                    "route": "q",
                    "numbers": request.destination,
                },
                timeout=self._timeout,
            )
            data = resp.json()
            if not isinstance(data, dict):
                raise ValueError(f"unexpected gateway payload: {data!r}")
        except (httpx.HTTPError, json.JSONDecodeError, ValueError) as e:
            logger.warning("SMS gateway call failed: %s", e, exc_info=True)
            return NotificationResult(False, 500, "Internal server error")

        if data.get("return") is True:
            request_id = data.get("request_id")
            logger.info("SMS sent to %s request_id=%s", request.destination, request_id)
            return NotificationResult(
                True, 200, "SMS sent successfully",
                request_id=str(request_id) if request_id is not None else None,
            )

        logger.warning(
            "SMS gateway rejected message (http=%s): %s", resp.status_code, data.get("message")
        )
        return NotificationResult(False, 400, "Failed to send SMS")

    async def close(self) -> None:
        await self._client.aclose()


@dataclass
class DispatchStats:
    queued: int = 0
    sent: int = 0
    failed: int = 0
    dropped: int = 0


class NotificationDispatcher:
    """Independent worker that drains a queue of SMS requests.

    ``submit`` never waits on the gateway. Each request is tried once; the
    outcome is logged and counted, nothing is retried.
    """

    def __init__(
        self,
        gateway: SmsGateway,
        destination: str,
        tz_name: Optional[str] = None,
        maxsize: int = 100,
    ) -> None:
        self._gateway = gateway
        self._destination = destination
        self._tz_name = tz_name
        self._queue: asyncio.Queue[NotificationRequest] = asyncio.Queue(maxsize=maxsize)
        self._task: Optional[asyncio.Task] = None
        self.stats = DispatchStats()
        self.last_result: Optional[NotificationResult] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="sms_dispatcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            self.stats.dropped += 1
        # The in-flight call, if any, runs to completion (bounded by the gateway timeout).
        await self._queue.join()
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("SMS dispatcher stopped (%s)", self.stats)

    def submit(self, event: AlertEvent) -> Optional[NotificationRequest]:
        if not self._destination:
            logger.warning("Alert %s not forwarded: no SMS destination configured", event.kind.value)
            return None

        request = NotificationRequest(
            body=format_alert_message(event, self._tz_name),
            destination=self._destination,
        )
        try:
            self._queue.put_nowait(request)
        except asyncio.QueueFull:
            self.stats.dropped += 1
            logger.error("Notification queue full, dropping alert %s", event.kind.value)
            return None
        self.stats.queued += 1
        return request

    async def drain(self) -> None:
        """Wait until every queued request has been attempted."""
        await self._queue.join()

    async def _run(self) -> None:
        logger.info("SMS dispatcher started")
        while True:
            request = await self._queue.get()
            try:
                result = await self._gateway.send(request)
            except Exception as e:
                logger.exception("SMS dispatch crashed: %s", e)
                result = NotificationResult(False, 500, str(e))
            finally:
                self._queue.task_done()

            self.last_result = result
            if result.success:
                self.stats.sent += 1
            else:
                self.stats.failed += 1
