"""Normalization of frontmatter values and tags.

Obsidian plugins hand out property values and tags either as plain scalars or
wrapped in small value objects (``{"value": ..., "raw": ...}``). These helpers
flatten both shapes so the classifier only compares plain scalars.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _unwrap(obj: Any, *fields: str) -> Any:
    """Return the first truthy field of a wrapped value, or the object itself."""
    for name in fields:
        if isinstance(obj, Mapping):
            candidate = obj.get(name)
        else:
            candidate = getattr(obj, name, None)
        if candidate:
            return candidate
    return obj


def _is_wrapped(obj: Any) -> bool:
    if isinstance(obj, Mapping):
        return True
    return any(hasattr(obj, name) for name in ("value", "raw", "tag"))


def extract_property_value(value: Any) -> Any:
    """Unwrap a frontmatter property value.

    Falsy values are returned as-is, wrapped values yield their ``value`` or
    ``raw`` field, and scalars pass through unchanged.
    """
    if not value:
        return value
    if isinstance(value, (str, int, float, bool, list, tuple)):
        return value
    if _is_wrapped(value):
        return _unwrap(value, "value", "raw")
    return value


def extract_tag_label(tag: Any) -> str:
    """Return a tag's label without its leading ``#``, or "" if it has none."""
    if not tag:
        return ""
    label = tag
    if not isinstance(tag, str) and _is_wrapped(tag):
        label = _unwrap(tag, "value", "raw", "tag")
    if not isinstance(label, str):
        return ""
    return label[1:] if label.startswith("#") else label
