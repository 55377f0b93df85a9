from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import aclosing, suppress
from typing import Any, Awaitable, Callable, Optional, Union

from ..domain.interfaces import Store

logger = logging.getLogger(__name__)


Handler = Callable[[Any], Union[None, Awaitable[None]]]


class FeedSubscription:
    """Handle for one live feed. ``unsubscribe`` is idempotent."""

    def __init__(self, feed: str, path: str, handler: Handler) -> None:
        self.feed = feed
        self.path = path
        self.handler = handler
        self.released = False
        self.deliveries = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return not self.released and self._task is not None and not self._task.done()

    async def unsubscribe(self) -> None:
        if self.released:
            return
        self.released = True
        await self._stop()

    async def _stop(self) -> None:
        if self._task:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        logger.info("Released feed %s (%s)", self.feed, self.path)


class SubscriptionHub:
    """Fans every feed into one coordinator so handlers never run concurrently.

    One pump task per feed reads ``store.watch(path)`` and enqueues snapshots;
    the coordinator task drains the queue and calls the feed's handler.
    Per-feed order is the store's commit order. Nothing is ordered across
    feeds. Snapshots still queued for a released feed are dropped.
    """

    def __init__(self, store: Store) -> None:
        self._store = store
        self._queue: asyncio.Queue[tuple[FeedSubscription, Any]] = asyncio.Queue()
        self._subs: dict[str, FeedSubscription] = {}
        self._coordinator: Optional[asyncio.Task] = None

    def subscriptions(self) -> list[FeedSubscription]:
        return list(self._subs.values())

    def start(self) -> None:
        if self._coordinator is None or self._coordinator.done():
            self._coordinator = asyncio.create_task(self._coordinate(), name="feed_coordinator")

    def subscribe(self, feed: str, path: str, handler: Handler) -> FeedSubscription:
        existing = self._subs.get(feed)
        if existing is not None and not existing.released:
            raise ValueError(f"Feed {feed!r} is already subscribed")

        self.start()
        sub = FeedSubscription(feed, path, handler)
        sub._task = asyncio.create_task(self._pump(sub), name=f"feed:{feed}")
        self._subs[feed] = sub
        logger.info("Subscribed feed %s (%s)", feed, path)
        return sub

    async def release_all(self) -> None:
        subs = [s for s in self._subs.values() if not s.released]
        for sub in subs:
            sub.released = True
        for sub in subs:
            await sub._stop()

        if self._coordinator:
            self._coordinator.cancel()
            with suppress(asyncio.CancelledError):
                await self._coordinator
            self._coordinator = None

        while not self._queue.empty():
            self._queue.get_nowait()
        self._subs.clear()
        logger.info("All feeds released (%d)", len(subs))

    async def _pump(self, sub: FeedSubscription) -> None:
        try:
            async with aclosing(self._store.watch(sub.path)) as stream:
                async for value in stream:
                    await self._queue.put((sub, value))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Feed %s (%s) stopped: %s", sub.feed, sub.path, e)

    async def _coordinate(self) -> None:
        while True:
            sub, value = await self._queue.get()
            if sub.released:
                continue
            try:
                result = sub.handler(value)
                if inspect.isawaitable(result):
                    await result
                sub.deliveries += 1
            except Exception as e:
                logger.exception("Handler for feed %s failed: %s", sub.feed, e)
