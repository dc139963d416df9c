# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Comparison operators used by the assertion engine."""

import re
from collections.abc import Callable
from typing import Any

from tspec_runner.core.errors import UnknownOperatorError

_TYPE_NAMES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list, tuple),
    "null": (type(None),),
}


def _to_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


def _equals(actual: Any, expected: Any) -> bool:
    # bool is an int subclass, keep true != 1 like JSON does
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    if isinstance(actual, (list, tuple)) and isinstance(expected, (list, tuple)):
        return len(actual) == len(expected) and all(
            _equals(a, e) for a, e in zip(actual, expected)
        )
    if isinstance(actual, dict) and isinstance(expected, dict):
        return actual.keys() == expected.keys() and all(
            _equals(actual[key], expected[key]) for key in actual
        )
    return bool(actual == expected)


def _not_empty(actual: Any, _: Any) -> bool:
    if isinstance(actual, (str, list, tuple)):
        return len(actual) > 0
    return actual is not None


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return isinstance(expected, str) and expected in actual
    if isinstance(actual, (list, tuple)):
        return any(_equals(item, expected) for item in actual)
    return False


def _not_contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (str, list, tuple)):
        return not _contains(actual, expected)
    return True


def _matches(actual: Any, expected: Any) -> bool:
    if not isinstance(actual, str):
        return False
    try:
        return re.search(str(expected), actual) is not None
    except re.error:
        return False


def _type(actual: Any, expected: Any) -> bool:
    if actual is None:
        return expected in ("null", "undefined")
    types = _TYPE_NAMES.get(str(expected))
    if types is None:
        return False
    if isinstance(actual, bool):
        return bool in types
    return isinstance(actual, types)


def _length(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (str, list, tuple)):
        return len(actual) == _to_number(expected)
    return False


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "eq": _equals,
    "not_equals": lambda a, e: not _equals(a, e),
    "neq": lambda a, e: not _equals(a, e),
    "exists": lambda a, _: a is not None,
    "not_exists": lambda a, _: a is None,
    "not_empty": _not_empty,
    "contains": _contains,
    "not_contains": _not_contains,
    "matches": _matches,
    "gt": lambda a, e: _to_number(a) > _to_number(e),
    "gte": lambda a, e: _to_number(a) >= _to_number(e),
    "lt": lambda a, e: _to_number(a) < _to_number(e),
    "lte": lambda a, e: _to_number(a) <= _to_number(e),
    "type": _type,
    "length": _length,
}


def compare_values(actual: Any, operator: str, expected: Any) -> bool:
    """Apply ``operator`` to an actual and an expected value.

    Args:
        actual: Value derived from the response
        operator: Operator name (see ``OPERATORS``)
        expected: Expected value, pattern or type name

    Returns:
        True if the comparison holds.

    Raises:
        UnknownOperatorError: If ``operator`` is not recognised.
    """
    comparison = OPERATORS.get(operator)
    if comparison is None:
        raise UnknownOperatorError(operator)
    return comparison(actual, expected)
