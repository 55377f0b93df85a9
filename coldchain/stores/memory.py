from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional

from .tree import overlaps, read_node, split_path, write_node

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Push-based key-value tree with the realtime database's watch semantics.

    Watchers get the current value on subscribe and a fresh snapshot whenever
    a write touches their path, an ancestor, or a descendant.
    """

    def __init__(self, initial: Optional[dict] = None) -> None:
        self._tree: Any = write_node(None, (), initial) if initial else None
        self._watchers: list[tuple[tuple[str, ...], asyncio.Queue]] = []

    @property
    def watcher_count(self) -> int:
        return len(self._watchers)

    async def watch(self, path: str) -> AsyncIterator[Any]:
        key = split_path(path)
        queue: asyncio.Queue = asyncio.Queue()
        watcher = (key, queue)
        self._watchers.append(watcher)
        logger.debug("watch open path=%s", path)
        try:
            yield read_node(self._tree, key)
            while True:
                yield await queue.get()
        finally:
            self._watchers.remove(watcher)
            logger.debug("watch closed path=%s", path)

    async def get(self, path: str) -> Any:
        return read_node(self._tree, split_path(path))

    async def set(self, path: str, value: Any) -> None:
        key = split_path(path)
        self._tree = write_node(self._tree, key, value)
        for watched, queue in list(self._watchers):
            if overlaps(watched, key):
                queue.put_nowait(read_node(self._tree, watched))

    async def close(self) -> None:
        return None
