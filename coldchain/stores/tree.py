from __future__ import annotations

import copy
from typing import Any


def split_path(path: str) -> tuple[str, ...]:
    return tuple(p for p in path.strip("/").split("/") if p)


def read_node(tree: Any, parts: tuple[str, ...]) -> Any:
    node = tree
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return copy.deepcopy(node)


def _prune(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    pruned = {}
    for key, child in node.items():
        child = _prune(child)
        if child is not None:
            pruned[key] = child
    return pruned or None


def write_node(tree: Any, parts: tuple[str, ...], value: Any) -> Any:
    """Replace the node at ``parts`` and return the new root.

    ``None`` deletes; empty containers collapse to ``None`` the way the
    realtime database reports them.
    """
    if not parts:
        return _prune(copy.deepcopy(value))

    root = copy.deepcopy(tree) if isinstance(tree, dict) else {}
    node = root
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = copy.deepcopy(value)
    return _prune(root)


def merge_node(tree: Any, parts: tuple[str, ...], children: dict) -> Any:
    """Apply a patch: each key of ``children`` replaces one child of the node."""
    for key, value in children.items():
        tree = write_node(tree, parts + split_path(key), value)
    return tree


def overlaps(a: tuple[str, ...], b: tuple[str, ...]) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    n = min(len(a), len(b))
    return a[:n] == b[:n]
