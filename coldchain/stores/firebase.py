from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import httpx

from ..domain.interfaces import StoreError
from .tree import merge_node, split_path, write_node

logger = logging.getLogger(__name__)


@dataclass
class FirebaseConfig:
    base_url: str
    auth_token: str = ""
    timeout_s: float = 10.0
    stream_read_timeout_s: float = 90.0   # server sends keep-alive every ~30s
    reconnect_backoff_s: float = 1.0
    max_reconnect_backoff_s: float = 30.0


async def _iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    event = "message"
    data: list[str] = []
    async for line in lines:
        if line == "":
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if field == "event":
            event = value
        elif field == "data":
            data.append(value)
    if data:
        yield event, "\n".join(data)


class FirebaseRealtimeStore:
    """Realtime Database client over the REST streaming (Server-Sent Events) API.

    Each ``watch`` holds one long-lived streaming GET. The server opens with
    a ``put`` of the whole node, which becomes the initial snapshot, then
    streams ``put``/``patch`` deltas that are applied to a local copy.
    Dropped connections reconnect with bounded backoff.
    """

    def __init__(self, cfg: FirebaseConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self.cfg = cfg
        self._base_url = cfg.base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(cfg.timeout_s),
            follow_redirects=True,
        )

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{'/'.join(split_path(path))}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self.cfg.auth_token} if self.cfg.auth_token else {}

    async def watch(self, path: str) -> AsyncIterator[Any]:
        backoff = self.cfg.reconnect_backoff_s
        stream_timeout = httpx.Timeout(self.cfg.timeout_s, read=self.cfg.stream_read_timeout_s)

        while True:
            snapshot: Any = None
            try:
                async with self._client.stream(
                    "GET",
                    self._url(path),
                    params=self._params(),
                    headers={"Accept": "text/event-stream"},
                    timeout=stream_timeout,
                ) as resp:
                    resp.raise_for_status()
                    logger.info("Store stream connected path=%s", path)
                    backoff = self.cfg.reconnect_backoff_s

                    async for event, data in _iter_sse(resp.aiter_lines()):
                        if event == "keep-alive":
                            continue
                        if event in ("cancel", "auth_revoked"):
                            raise StoreError(f"Store stream for {path!r} ended by server: {event}")
                        if event not in ("put", "patch"):
                            continue

                        body = json.loads(data)
                        at = split_path(body["path"])
                        if event == "put":
                            snapshot = write_node(snapshot, at, body["data"])
                        else:
                            snapshot = merge_node(snapshot, at, body["data"] or {})
                        yield snapshot

                logger.warning("Store stream closed by server path=%s", path)
            except StoreError:
                raise
            except (httpx.HTTPError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
                logger.warning(
                    "Store stream error path=%s: %s (reconnect in %.1fs)", path, e, backoff
                )

            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, self.cfg.max_reconnect_backoff_s)

    async def get(self, path: str) -> Any:
        try:
            resp = await self._client.get(self._url(path), params=self._params())
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise StoreError(f"Store read failed for {path!r}: {e}") from e

    async def set(self, path: str, value: Any) -> None:
        try:
            resp = await self._client.put(self._url(path), params=self._params(), json=value)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreError(f"Store write failed for {path!r}: {e}") from e
        logger.info("Store write OK path=%s", path)

    async def close(self) -> None:
        await self._client.aclose()
