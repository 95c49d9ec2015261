"""Strategies for folding transition data into an instance's context."""

import copy
from typing import Any, Dict, Mapping, Optional

from app.domain.types import MergeStrategy


def shallow_merge(current: Mapping[str, Any], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Top-level keys in ``data`` overwrite; nested objects are replaced wholesale."""
    merged = dict(current)
    merged.update(data)
    return merged


def deep_merge(current: Mapping[str, Any], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge nested mappings; any non-mapping value in ``data`` wins."""
    merged = copy.deepcopy(dict(current))
    for key, value in data.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def replace_context(current: Mapping[str, Any], data: Mapping[str, Any]) -> Dict[str, Any]:
    return dict(data)


_STRATEGIES = {
    MergeStrategy.SHALLOW: shallow_merge,
    MergeStrategy.DEEP: deep_merge,
    MergeStrategy.REPLACE: replace_context,
}


def merge_context(
    current: Optional[Mapping[str, Any]],
    data: Optional[Mapping[str, Any]],
    strategy: MergeStrategy = MergeStrategy.SHALLOW,
) -> Dict[str, Any]:
    """Merge ``data`` into ``current`` using ``strategy``.

    Absent ``data`` leaves the context unchanged under every strategy.
    """
    current = current or {}
    if data is None:
        return dict(current)
    return _STRATEGIES[MergeStrategy(strategy)](current, data)
