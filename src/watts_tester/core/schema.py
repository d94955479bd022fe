# src/watts_tester/core/schema.py
"""Declarative rule trees for plugin messages and their evaluator.

A schema is a tree of frozen rule nodes built once at import time and
interpreted by a single function, validate(). The rule set is small and
fixed; this is not a general JSON-Schema implementation.

Rule nodes:
- AnyValue: accepts every value
- TypedPrimitive(kind): value kind must match exactly (no coercion)
- Exact(kind, literal): kind match plus equality to a literal
- Regex(pattern): value is a string fully matched by pattern
- ObjectShape(fields, keys): object with required/optional fields,
  extra fields ignored, optionally every key checked against `keys`
- ArrayOf(element): array whose elements all satisfy element
- OneOf(*alternatives): at least one alternative passes
- Optional(rule): field may be absent, otherwise rule applies

Evaluation stops at the first failure and reports the full path from the
root. OneOf reports the failure of its FIRST alternative when none pass.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeAlias

from watts_tester.contracts import JsonKind, ValidationOutcome, json_equal, json_kind
from watts_tester.contracts.results import PathElement


@dataclass(frozen=True)
class AnyValue:
    pass


@dataclass(frozen=True)
class TypedPrimitive:
    kind: JsonKind


@dataclass(frozen=True)
class Exact:
    kind: JsonKind
    literal: Any


@dataclass(frozen=True)
class Regex:
    pattern: str
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def matches(self, value: str) -> bool:
        return self._compiled.fullmatch(value) is not None


@dataclass(frozen=True)
class ObjectShape:
    """Object rule. Fields wrapped in Optional may be absent."""

    fields: Mapping[str, Rule] = field(default_factory=dict)
    keys: Regex | None = None

    def __post_init__(self) -> None:
        # Freeze the field table; field order is the check order
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))


@dataclass(frozen=True)
class ArrayOf:
    element: Rule


@dataclass(frozen=True, init=False)
class OneOf:
    alternatives: tuple[Rule, ...]

    def __init__(self, *alternatives: Rule) -> None:
        if not alternatives:
            raise ValueError("OneOf requires at least one alternative")
        object.__setattr__(self, "alternatives", alternatives)


@dataclass(frozen=True)
class Optional:
    rule: Rule


Rule: TypeAlias = (
    AnyValue | TypedPrimitive | Exact | Regex | ObjectShape | ArrayOf | OneOf | Optional
)

# Shorthands used by the schema tables
STRING = TypedPrimitive(JsonKind.STRING)
NUMBER = TypedPrimitive(JsonKind.NUMBER)
BOOL = TypedPrimitive(JsonKind.BOOL)
OBJECT = ObjectShape()
ANY = AnyValue()


def validate(rule: Rule, value: Any) -> ValidationOutcome:
    """Check value against a rule tree.

    Returns:
        ValidationOutcome with an empty path on success, or the path to
        and cause of the first failure
    """
    return _check(rule, value, ())


def _describe(value: Any) -> str:
    try:
        return json_kind(value).value
    except TypeError:
        return type(value).__name__


def _check(rule: Rule, value: Any, path: tuple[PathElement, ...]) -> ValidationOutcome:
    match rule:
        case AnyValue():
            return ValidationOutcome.ok()

        case TypedPrimitive(kind=kind):
            if _kind_of(value) is not kind:
                return ValidationOutcome.fail(
                    path, f"expected {kind.value}, got {_describe(value)}"
                )
            return ValidationOutcome.ok()

        case Exact(kind=kind, literal=literal):
            if _kind_of(value) is not kind:
                return ValidationOutcome.fail(
                    path, f"expected {kind.value}, got {_describe(value)}"
                )
            if not json_equal(value, literal):
                return ValidationOutcome.fail(
                    path, f"expected {literal!r}, got {value!r}"
                )
            return ValidationOutcome.ok()

        case Regex() as regex:
            if not isinstance(value, str):
                return ValidationOutcome.fail(
                    path, f"expected string, got {_describe(value)}"
                )
            if not regex.matches(value):
                return ValidationOutcome.fail(
                    path, f"{value!r} does not match {regex.pattern}"
                )
            return ValidationOutcome.ok()

        case ObjectShape(fields=fields, keys=keys):
            return _check_object(fields, keys, value, path)

        case ArrayOf(element=element):
            if not isinstance(value, list):
                return ValidationOutcome.fail(
                    path, f"expected array, got {_describe(value)}"
                )
            for index, item in enumerate(value):
                outcome = _check(element, item, (*path, index))
                if not outcome.passed:
                    return outcome
            return ValidationOutcome.ok()

        case OneOf(alternatives=alternatives):
            first_failure: ValidationOutcome | None = None
            for alternative in alternatives:
                outcome = _check(alternative, value, path)
                if outcome.passed:
                    return outcome
                if first_failure is None:
                    first_failure = outcome
            assert first_failure is not None  # OneOf always has alternatives
            return first_failure

        case Optional(rule=inner):
            # Absence is handled by the enclosing ObjectShape
            return _check(inner, value, path)

    raise TypeError(f"Unknown rule node: {rule!r}")


def _check_object(
    fields: Mapping[str, Rule],
    keys: Regex | None,
    value: Any,
    path: tuple[PathElement, ...],
) -> ValidationOutcome:
    if not isinstance(value, dict):
        return ValidationOutcome.fail(path, f"expected object, got {_describe(value)}")

    for name, field_rule in fields.items():
        if name not in value:
            if isinstance(field_rule, Optional):
                continue
            return ValidationOutcome.fail((*path, name), "missing required field")
        outcome = _check(field_rule, value[name], (*path, name))
        if not outcome.passed:
            return outcome

    if keys is not None:
        for key in value:
            outcome = _check(keys, key, (*path, key))
            if not outcome.passed:
                return ValidationOutcome.fail(outcome.path, f"invalid key: {outcome.cause}")

    return ValidationOutcome.ok()


def _kind_of(value: Any) -> JsonKind | None:
    try:
        return json_kind(value)
    except TypeError:
        return None
