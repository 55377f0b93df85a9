from __future__ import annotations
from typing import Any, AsyncIterator, Protocol, runtime_checkable
from .models import NotificationRequest, NotificationResult


class StoreError(RuntimeError):
    """The realtime store could not be reached or rejected the request."""


@runtime_checkable
class Store(Protocol):
    def watch(self, path: str) -> AsyncIterator[Any]:
        """Yield the value at ``path`` now, then after every committed change."""
        ...

    async def get(self, path: str) -> Any:
        ...

    async def set(self, path: str, value: Any) -> None:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class SmsGateway(Protocol):
    async def send(self, request: NotificationRequest) -> NotificationResult:
        ...

    async def close(self) -> None:
        ...
