# src/watts_tester/core/canonical.py
"""
Canonical JSON serialization for deterministic identities and payloads.

Two-phase approach:
1. Normalize: Check the value tree is JSON-safe (our code)
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

RFC 8785 output is compact, sorts object keys, and leaves "/" and
non-ASCII characters unescaped, which is what user-id derivation needs.

IMPORTANT: NaN and Infinity are strictly REJECTED, not silently converted.
"""

import math
from typing import Any

import rfc8785


def _normalize_value(obj: Any) -> Any:
    """Check a single value is a JSON-safe primitive or container.

    Tuples are accepted and converted to lists.

    Raises:
        ValueError: If value contains NaN or Infinity
        TypeError: If value is not representable as JSON
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(
                f"Cannot canonicalize non-finite float: {obj}. "
                "Use None for missing values, not NaN."
            )
        return obj

    if obj is None or isinstance(obj, (str, int, bool)):
        return obj

    if isinstance(obj, (list, tuple)):
        return [_normalize_value(item) for item in obj]

    if isinstance(obj, dict):
        normalized = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise TypeError(f"Object keys must be strings, got {type(key).__name__}")
            normalized[key] = _normalize_value(value)
        return normalized

    raise TypeError(f"Cannot canonicalize value of type {type(obj).__name__}")


def canonical_bytes(obj: Any) -> bytes:
    """Serialize a JSON value to canonical UTF-8 bytes."""
    return rfc8785.dumps(_normalize_value(obj))


def canonical_json(obj: Any) -> str:
    """Serialize a JSON value to a canonical string."""
    return canonical_bytes(obj).decode("utf-8")
