# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Unit tests for comparison operators."""

import pytest

from tspec_runner.assertion.operators import compare_values
from tspec_runner.core.errors import UnknownOperatorError


class TestEquality:
    """Tests for equals/not_equals."""

    def test_deep_equality(self) -> None:
        assert compare_values({"a": [1, {"b": 2}]}, "equals", {"a": [1, {"b": 2}]})
        assert compare_values([1, 2], "eq", [1, 2])

    def test_structural_mismatch(self) -> None:
        assert not compare_values({"a": 1}, "equals", {"a": 1, "b": 2})
        assert compare_values([1, 2], "neq", [2, 1])

    def test_bool_is_not_number(self) -> None:
        assert not compare_values(True, "equals", 1)
        assert compare_values(1, "not_equals", True)

    def test_no_type_coercion(self) -> None:
        assert not compare_values("200", "equals", 200)


class TestPresence:
    """Tests for exists/not_exists/not_empty."""

    def test_exists(self) -> None:
        assert compare_values(0, "exists", None)
        assert not compare_values(None, "exists", None)
        assert compare_values(None, "not_exists", None)

    @pytest.mark.parametrize(
        "actual,expected",
        [("", False), ("x", True), ([], False), ([0], True), (None, False), (0, True)],
    )
    def test_not_empty(self, actual: object, expected: bool) -> None:
        assert compare_values(actual, "not_empty", None) is expected


class TestContainment:
    """Tests for contains/not_contains/matches."""

    def test_substring(self) -> None:
        assert compare_values("hello world", "contains", "world")
        assert compare_values("hello world", "not_contains", "mars")

    def test_membership(self) -> None:
        assert compare_values([1, {"id": 2}], "contains", {"id": 2})
        assert not compare_values([1, 2], "contains", 3)

    def test_matches(self) -> None:
        assert compare_values("abc-123", "matches", r"^[a-z]+-\d+$")
        assert not compare_values(123, "matches", r"\d+")

    def test_matches_invalid_pattern_fails(self) -> None:
        assert not compare_values("abc", "matches", "(unclosed")


class TestNumeric:
    """Tests for gt/gte/lt/lte with numeric coercion."""

    def test_comparisons(self) -> None:
        assert compare_values(10, "gt", 5)
        assert compare_values("10", "gte", 10)
        assert compare_values(3, "lt", "5")
        assert compare_values(5, "lte", 5)

    def test_non_numeric_never_compares(self) -> None:
        assert not compare_values("abc", "gt", 1)
        assert not compare_values(None, "lt", 1)


class TestTypeAndLength:
    """Tests for type/length."""

    @pytest.mark.parametrize(
        "actual,type_name",
        [("s", "string"), (1.5, "number"), (True, "boolean"), ({}, "object"), ([], "array"), (None, "null")],
    )
    def test_type(self, actual: object, type_name: str) -> None:
        assert compare_values(actual, "type", type_name)

    def test_bool_is_not_number_type(self) -> None:
        assert not compare_values(True, "type", "number")

    def test_length(self) -> None:
        assert compare_values([1, 2, 3], "length", 3)
        assert compare_values("abcd", "length", "4")
        assert not compare_values(12345, "length", 5)


class TestUnknownOperator:
    """An unrecognised operator is a specification error, not a failure."""

    def test_raises(self) -> None:
        with pytest.raises(UnknownOperatorError, match="Unknown operator: bogus"):
            compare_values(1, "bogus", 1)
