"""Layered merging of config dicts (system < user < project < env)."""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with ``override`` layered on top of ``base``.

    Nested dicts merge recursively, lists and scalars are replaced, and a
    ``None`` in ``override`` leaves the base value untouched.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_configs(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge config layers from lowest to highest priority."""
    merged: dict[str, Any] = {}
    for layer in filter(None, layers):
        merged = deep_merge(merged, layer)
    return merged
