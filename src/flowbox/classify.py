"""Bad-value classification.

A value resolved by a pipeline stage falls into exactly one of three kinds:

- success: anything that is neither an error nor matched by a bad-value rule
- bad: matched by one of the configured rules
- error: an exception instance
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")


def identity(value: T) -> T:
    return value


def is_error(value: Any) -> bool:
    """Return True if value is an exception instance."""
    return isinstance(value, Exception)


def is_nan(value: Any) -> bool:
    """Return True for NaN floats, complex numbers and Decimals."""
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, complex):
        return math.isnan(value.real) or math.isnan(value.imag)
    if isinstance(value, Decimal):
        return value.is_nan()
    return False


def _matches(value: Any, rule: Any) -> bool:
    if callable(rule):
        return bool(rule(value))
    if value is rule:
        return True
    # Strict equality: 1 must not match True, 0 must not match 0.0
    return type(value) is type(rule) and bool(value == rule)


def is_bad_value(value: Any, rules: Iterable[Any] | None) -> bool:
    """Check a value against an ordered list of bad-value rules.

    Each rule is either a literal compared by strict equality or a
    one-argument predicate. The first matching rule wins.

    Args:
        value: The resolved value to classify
        rules: Literals and/or predicates; None or empty never matches

    Returns:
        True if any rule matches
    """
    return any(_matches(value, rule) for rule in rules or ())


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """
    Explicit discriminant for a resolved value.

    Kinds:
    - success: the value should flow into the next callback
    - bad: the value matched a bad-value rule and short-circuits
    - error: the value is an exception and short-circuits
    """

    kind: Literal["success", "bad", "error"]
    value: T

    @property
    def is_success(self) -> bool:
        return self.kind == "success"

    @staticmethod
    def Success(value: Any) -> "Resolution[Any]":
        return Resolution(kind="success", value=value)

    @staticmethod
    def Bad(value: Any) -> "Resolution[Any]":
        return Resolution(kind="bad", value=value)

    @staticmethod
    def Error(value: Exception) -> "Resolution[Exception]":
        return Resolution(kind="error", value=value)


def classify(value: Any, rules: Iterable[Any] | None) -> Resolution[Any]:
    """Classify a settled value.

    Errors are recognised before the rules are consulted, so an exception
    is reported as an error even when the rules do not mention errors.
    """
    if is_error(value):
        return Resolution.Error(value)
    if is_bad_value(value, rules):
        return Resolution.Bad(value)
    return Resolution.Success(value)
