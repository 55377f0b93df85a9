from __future__ import annotations

import asyncio
import os
from datetime import datetime, timezone
from typing import Callable, Optional

# Keep test runs from writing a rotating log file into the working tree.
os.environ.setdefault("LOG_FILE", "")

import pytest

from coldchain.domain.models import (
    AlertEvent,
    AlertKind,
    NotificationRequest,
    NotificationResult,
    ThresholdConfig,
)


class FakeGateway:
    """Records every request; returns ``result`` or raises ``error``."""

    def __init__(
        self,
        result: Optional[NotificationResult] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.result = result or NotificationResult(True, 200, "SMS sent successfully", request_id="req-1")
        self.error = error
        self.requests: list[NotificationRequest] = []
        self.closed = False

    async def send(self, request: NotificationRequest) -> NotificationResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self) -> None:
        self.closed = True


async def eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not reached before timeout")
        await asyncio.sleep(0.01)


def alert(kind: AlertKind, value: float, minute: int) -> AlertEvent:
    return AlertEvent(
        kind=kind,
        value=value,
        occurred_at=datetime(2024, 1, 1, 10, minute, tzinfo=timezone.utc),
    )


@pytest.fixture
def default_thresholds() -> ThresholdConfig:
    return ThresholdConfig(temp_min=2.0, temp_max=8.0, humidity_max=75.0, gas_max=400.0)


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()
