"""Schema-tolerant reads from untyped JSON trees.

The upstream payload has no published schema, so every access goes through
these helpers: one type check per step, ``None`` instead of an exception.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence


def _step(node: Any, key: str | int) -> tuple[bool, Any]:
    if isinstance(key, int) and not isinstance(key, bool):
        if isinstance(node, list) and -len(node) <= key < len(node):
            return True, node[key]
        return False, None
    if isinstance(node, dict) and key in node:
        return True, node[key]
    return False, None


def lookup(tree: Any, path: Sequence[str | int], expected: type | tuple[type, ...] | None = None) -> Any:
    node = tree
    for key in path:
        found, node = _step(node, key)
        if not found:
            return None
    if expected is not None and not isinstance(node, expected):
        return None
    return node


def first_text(entry: dict[str, Any], keys: Iterable[str]) -> str | None:
    """First candidate key holding a string that is non-empty once trimmed."""
    for key in keys:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def first_present(entry: dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None


def _size(node: Any) -> int | None:
    if isinstance(node, (list, dict)):
        return len(node)
    return None


def describe_shape(tree: Any, path: Sequence[str | int]) -> dict[str, Any]:
    """Log-friendly summary of how far ``path`` resolves inside ``tree``."""
    info: dict[str, Any] = {
        "root_type": type(tree).__name__,
        "top_level_keys": sorted(str(k) for k in tree)[:20] if isinstance(tree, dict) else None,
        "resolved": [],
        "failed_at": None,
        "container_len": _size(tree),
    }
    node = tree
    for key in path:
        found, child = _step(node, key)
        if not found:
            info["failed_at"] = key
            info["container_len"] = _size(node)
            break
        info["resolved"].append(key)
        node = child
    else:
        info["leaf_type"] = type(node).__name__
        info["container_len"] = _size(node)
    return info
