"""Canonical serialization and equality for JSON-like values."""

from __future__ import annotations

import json
from typing import Any


def get_kind(value: Any) -> str:
    """Get the JSON kind of a value."""
    if value is None:
        return "null"
    elif isinstance(value, bool):
        return "boolean"
    elif isinstance(value, (int, float)):
        return "number"
    elif isinstance(value, str):
        return "string"
    elif isinstance(value, (list, tuple)):
        return "array"
    elif isinstance(value, dict):
        return "object"
    else:
        return type(value).__name__


def _scalar_text(value: Any) -> str:
    # JSON has one number type: 1 and 1.0 are the same value
    if isinstance(value, float) and value.is_integer():
        return json.dumps(int(value))
    return json.dumps(value)


def canonicalize(value: Any) -> str:
    """
    Produce a deterministic canonical JSON string for any value.

    Object keys are sorted and array elements are sorted by their own
    canonical form, so neither key order nor array order affects the result.

    Args:
        value: Acyclic JSON-compatible data

    Returns:
        Canonical JSON text
    """
    if isinstance(value, dict):
        pairs = [
            f"{json.dumps(str(key))}:{canonicalize(value[key])}"
            for key in sorted(value, key=str)
        ]
        return "{" + ",".join(pairs) + "}"

    if isinstance(value, (list, tuple)):
        items = sorted(canonicalize(item) for item in value)
        return "[" + ",".join(items) + "]"

    return _scalar_text(value)


def values_equal(saved: Any, current: Any) -> bool:
    """
    Check if two property values are equal.

    Values of different JSON kinds are never equal (``True`` is not ``1``,
    ``"1"`` is not ``1``). Arrays and objects are compared as opaque
    canonical blobs.
    """
    if saved is current:
        return True
    if saved is None or current is None:
        return False

    kind = get_kind(saved)
    if kind != get_kind(current):
        return False

    if kind in ("array", "object"):
        return canonicalize(saved) == canonicalize(current)

    return saved == current


def stringify_id(value: Any) -> str:
    """Convert an identity field value to the string used to index it."""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple)):
        return canonicalize(value)
    return _scalar_text(value)
