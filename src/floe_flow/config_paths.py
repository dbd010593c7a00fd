"""Nested configuration helpers for floe-flow specs.

Spec configuration is a nested mapping addressed by dotted paths, so
``"flow.name"`` refers to ``{"flow": {"name": ...}}``. Every helper here is
purely functional: inputs are never mutated and a new structure is returned.

Merge policy (template defaults vs. flow overrides):
    - dict + dict -> recursive merge by key
    - anything else -> the override wins (lists are replaced, not merged)
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import Any

PATH_SEPARATOR = "."

_MISSING = object()


def split_path(path: str) -> list[str]:
    """Split a dotted path into its keys.

    Raises:
        ValueError: If the path is empty or has an empty segment.
    """
    keys = path.split(PATH_SEPARATOR)
    if not path or any(not key for key in keys):
        raise ValueError(f"Invalid configuration path: '{path}'")
    return keys


def expand_dotted_keys(config: Mapping[str, Any]) -> dict[str, Any]:
    """Expand dotted keys into nested mappings.

    ``{"flow.name": "a", "flow": {"group": "g"}}`` becomes
    ``{"flow": {"name": "a", "group": "g"}}``. Declaration order is kept.

    Args:
        config: Mapping whose keys may be dotted paths.

    Returns:
        A new nested dictionary.

    Raises:
        ValueError: If a path runs through a non-mapping value or is declared twice.
    """
    result: dict[str, Any] = {}
    for key, value in config.items():
        if not isinstance(key, str):
            raise ValueError(f"Configuration keys must be strings, got {type(key).__name__}")
        if isinstance(value, Mapping):
            value = expand_dotted_keys(value)
        else:
            value = deepcopy(value)
        _merge_into(result, split_path(key), value, key)
    return result


def _merge_into(target: dict[str, Any], keys: list[str], value: Any, full_path: str) -> None:
    node = target
    for key in keys[:-1]:
        child = node.setdefault(key, {})
        if not isinstance(child, dict):
            raise ValueError(f"Configuration path '{full_path}' conflicts with value at '{key}'")
        node = child

    leaf = keys[-1]
    existing = node.get(leaf, _MISSING)
    if existing is _MISSING:
        node[leaf] = value
    elif isinstance(existing, dict) and isinstance(value, dict):
        for key, child in value.items():
            _merge_into(existing, [key], child, f"{full_path}{PATH_SEPARATOR}{key}")
    else:
        raise ValueError(f"Duplicate configuration path: '{full_path}'")


def has_path(config: Mapping[str, Any], path: str) -> bool:
    """Return True if ``path`` resolves to a value in ``config``."""
    return get_path(config, path, _MISSING) is not _MISSING


def get_path(config: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Look up a dotted path.

    Example:
        >>> get_path({"flow": {"name": "flowA"}}, "flow.name")
        'flowA'
    """
    node: Any = config
    for key in split_path(path):
        if not isinstance(node, Mapping) or key not in node:
            return default
        node = node[key]
    return node


def with_value(config: Mapping[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``config`` with ``path`` set to ``value``.

    Intermediate mappings are created as needed; a non-mapping value in the
    way is replaced.
    """
    result = deepcopy(dict(config))
    keys = split_path(path)
    node = result
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[keys[-1]] = deepcopy(value)
    return result


def without_path(config: Mapping[str, Any], path: str) -> dict[str, Any]:
    """Return a copy of ``config`` with ``path`` removed.

    Removing an absent path is a no-op. Only the leaf is removed: a parent
    mapping left empty stays in place as an empty mapping.
    """
    result = deepcopy(dict(config))
    _remove(result, split_path(path))
    return result


def _remove(node: dict[str, Any], keys: list[str]) -> None:
    head = keys[0]
    if head not in node:
        return
    if len(keys) == 1:
        del node[head]
        return
    child = node[head]
    if isinstance(child, dict):
        _remove(child, keys[1:])


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``override`` on top of ``base``.

    Nested mappings merge recursively; on any other collision the override
    value wins. Neither input is mutated.

    Example:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}})
        {'a': {'x': 1, 'y': 3}}
    """
    result: dict[str, Any] = deepcopy(dict(base))
    for key, override_value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, Mapping) and isinstance(override_value, Mapping):
            result[key] = deep_merge(base_value, override_value)
        else:
            result[key] = deepcopy(override_value)
    return result


def to_properties(config: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten a nested config into a ``{"dotted.path": "value"}`` view.

    Booleans render as ``true``/``false``, lists as comma-separated values and
    None as an empty string.
    """
    properties: dict[str, str] = {}
    for key, value in config.items():
        path = f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key
        if isinstance(value, Mapping):
            properties.update(to_properties(value, path))
        else:
            properties[path] = _render(value)
    return properties


def _render(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_render(item) for item in value)
    return str(value)
