"""Watch semantics of the in-memory realtime store."""

from __future__ import annotations

from contextlib import aclosing

import pytest

from coldchain.stores.memory import InMemoryStore
from coldchain.stores.tree import merge_node, overlaps, split_path, write_node


def test_tree_helpers() -> None:
    tree = write_node(None, split_path("a/b/c"), 1)
    assert tree == {"a": {"b": {"c": 1}}}

    tree = merge_node(tree, split_path("/a"), {"x": 2, "b/c": None})
    assert tree == {"a": {"x": 2}}

    assert write_node(tree, ("a",), None) is None
    assert overlaps(split_path("a/b"), split_path("a"))
    assert overlaps(split_path("a"), split_path("a/b/c"))
    assert not overlaps(split_path("a/b"), split_path("a/c"))


@pytest.mark.asyncio
async def test_watch_delivers_initial_snapshot_even_when_empty() -> None:
    store = InMemoryStore()

    async with aclosing(store.watch("cold-chain/latest")) as stream:
        assert await stream.__anext__() is None


@pytest.mark.asyncio
async def test_watch_sees_changes_in_commit_order() -> None:
    store = InMemoryStore({"cold-chain": {"latest": {"temp": 1.0}}})

    async with aclosing(store.watch("cold-chain/latest")) as stream:
        assert await stream.__anext__() == {"temp": 1.0}
        await store.set("cold-chain/latest", {"temp": 2.0})
        await store.set("cold-chain/latest", {"temp": 3.0})
        assert await stream.__anext__() == {"temp": 2.0}
        assert await stream.__anext__() == {"temp": 3.0}


@pytest.mark.asyncio
async def test_child_write_notifies_parent_watcher() -> None:
    store = InMemoryStore()

    async with aclosing(store.watch("cold-chain/alerts/history")) as stream:
        await stream.__anext__()
        await store.set("cold-chain/alerts/history/2024-01-01T10:00:00Z", {"type": "TooHot", "value": 9})
        assert await stream.__anext__() == {"2024-01-01T10:00:00Z": {"type": "TooHot", "value": 9}}


@pytest.mark.asyncio
async def test_unrelated_write_is_not_delivered() -> None:
    store = InMemoryStore()

    async with aclosing(store.watch("cold-chain/latest")) as stream:
        await stream.__anext__()
        await store.set("cold-chain/thresholds", {"temp_min": 1})
        await store.set("cold-chain/latest", {"temp": 5})
        assert await stream.__anext__() == {"temp": 5}


@pytest.mark.asyncio
async def test_closing_watch_releases_watcher() -> None:
    store = InMemoryStore()

    async with aclosing(store.watch("cold-chain/latest")) as stream:
        await stream.__anext__()
        assert store.watcher_count == 1

    assert store.watcher_count == 0


@pytest.mark.asyncio
async def test_get_returns_copy() -> None:
    store = InMemoryStore({"a": {"b": 1}})

    value = await store.get("a")
    value["b"] = 99

    assert await store.get("a/b") == 1
