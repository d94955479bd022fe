"""JSON value representation shared by the merger, validator, and runner.

Decoded JSON is kept as plain Python data. JsonKind classifies a value
exactly once so callers can dispatch on the kind instead of scattering
isinstance checks. bool is never treated as a number.
"""

import json
import math
from typing import Any, TypeAlias

from watts_tester.contracts.enums import JsonKind

JsonValue: TypeAlias = (
    None | bool | int | float | str | list["JsonValue"] | dict[str, "JsonValue"]
)
JsonObject: TypeAlias = dict[str, JsonValue]


def json_kind(value: Any) -> JsonKind:
    """Classify a decoded JSON value.

    Raises:
        TypeError: If value is not a JSON value (harness defect)
    """
    if value is None:
        return JsonKind.NULL
    # bool before int: bool is a subclass of int
    if isinstance(value, bool):
        return JsonKind.BOOL
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, list):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def json_equal(left: Any, right: Any) -> bool:
    """Exact JSON equality.

    Unlike ==, kinds must match: True is not equal to 1 and 0 is not
    equal to False. Numbers compare by value (1 == 1.0).
    """
    kind = json_kind(left)
    if kind is not json_kind(right):
        return False
    if kind is JsonKind.ARRAY:
        return len(left) == len(right) and all(
            json_equal(a, b) for a, b in zip(left, right, strict=True)
        )
    if kind is JsonKind.OBJECT:
        return left.keys() == right.keys() and all(
            json_equal(value, right[key]) for key, value in left.items()
        )
    return bool(left == right)


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Non-finite number {token} is not valid JSON")


def _parse_float(token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        _reject_constant(token)
    return value


def decode_json(raw: bytes | str) -> JsonValue:
    """Strictly decode JSON text.

    NaN and Infinity literals are rejected rather than silently accepted.

    Raises:
        ValueError: If raw is not valid UTF-8 JSON
    """
    return json.loads(raw, parse_float=_parse_float, parse_constant=_reject_constant)
